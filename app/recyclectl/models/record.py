"""Audit record model.

Every attempted mutation (moving a target into the recycle bin, restoring
an item, or a retention pass) is described by one AuditRecord. Records
are written as single JSON lines and are never modified afterwards.

Records carry a fixed core of well-known fields plus an open metadata
map. Unknown keys read from disk land in the metadata map and are written
back out unchanged, so older and newer writers can share one log.
"""

import json
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AuditAction(str, Enum):
    """Type of mutation described by a record.

    Attributes:
        CLEANUP: A target was (or would have been) moved into the recycle bin.
        RESTORE: A recycled item was (or would have been) moved back.
        RECYCLE_MAINTAIN: Summary of one retention pass.
    """

    CLEANUP = "cleanup"
    RESTORE = "restore"
    RECYCLE_MAINTAIN = "recycle_maintain"


class RecordStatus(str, Enum):
    """Outcome of the mutation described by a record.

    Skip-policy callbacks may record their own status strings in addition
    to these values.
    """

    SUCCESS = "success"
    FAILED = "failed"
    DRY_RUN = "dry_run"
    SKIPPED_MISSING_SOURCE = "skipped_missing_source"
    SKIPPED_INVALID_PATH = "skipped_invalid_path"
    SKIPPED_MISSING_RECYCLE = "skipped_missing_recycle"
    SKIPPED_CONFLICT = "skipped_conflict"
    SKIPPED_RISK_REJECTED = "skipped_risk_rejected"
    SKIPPED_DISABLED = "skipped_disabled"
    SKIPPED_NO_CANDIDATE = "skipped_no_candidate"
    PARTIAL_FAILED = "partial_failed"


# Wire key -> attribute name for the fixed core.
_CORE_KEYS: dict[str, str] = {
    "action": "action",
    "time": "time",
    "status": "status",
    "scope": "scope",
    "batchId": "batch_id",
    "sourcePath": "source_path",
    "recyclePath": "recycle_path",
    "sizeBytes": "size_bytes",
    "dryRun": "dry_run",
    "error": "error",
    "error_type": "error_type",
    "invalid_reason": "invalid_reason",
}


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class AuditRecord:
    """Immutable fact about one attempted mutation.

    Attributes:
        action: Record type (see AuditAction). Kept as a plain string so
            records written by other tools are still readable.
        time: Epoch milliseconds when the outcome was recorded.
        status: Outcome (see RecordStatus, or a policy-supplied status).
        scope: Cleanup mode that produced the batch (e.g. "cleanup_monthly").
        batch_id: Batch identifier shared by all items of one run.
        source_path: Original location of the item.
        recycle_path: Location inside the recycle bin, None if never moved.
        size_bytes: Declared size of the item.
        dry_run: Whether the run was a dry-run.
        error: Free-text failure message.
        error_type: Machine-readable failure kind (see ErrorType).
        invalid_reason: Reason code for a path safety rejection.
        metadata: All other fields (account, category, restore details, ...).
    """

    action: str
    time: int
    status: str
    scope: str | None = None
    batch_id: str | None = None
    source_path: str | None = None
    recycle_path: str | None = None
    size_bytes: int | None = None
    dry_run: bool = False
    error: str | None = None
    error_type: str | None = None
    invalid_reason: str | None = None
    metadata: dict[str, Any] = field(default_factory=lambda: {})

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the flat wire dictionary.

        Optional core fields are omitted when None, except ``recyclePath``
        which is always present on cleanup and restore records. Metadata
        keys never override core fields.

        Returns:
            Dictionary representation of the record.
        """
        result: dict[str, Any] = {}
        for wire_key, attr in _CORE_KEYS.items():
            value = getattr(self, attr)
            if isinstance(value, Enum):
                value = value.value
            if value is None and not (
                wire_key == "recyclePath" and self.action != AuditAction.RECYCLE_MAINTAIN
            ):
                continue
            result[wire_key] = value

        for key, value in self.metadata.items():
            if key not in result and key not in _CORE_KEYS:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditRecord":
        """Deserialize from a wire dictionary.

        Missing core fields fall back to defaults; unknown keys are kept in
        ``metadata``.

        Args:
            data: Dictionary parsed from one log line.

        Returns:
            AuditRecord instance.

        Raises:
            ValueError: If the record has no usable ``action`` or carries a
                non-finite ``time`` or ``sizeBytes``.
        """
        action = data.get("action")
        if not isinstance(action, str) or not action:
            msg = "Audit record has no action"
            raise ValueError(msg)

        raw_time = _opt_int(data.get("time"), "time")
        return cls(
            action=action,
            time=raw_time if raw_time is not None else 0,
            status=str(data.get("status") or ""),
            scope=_opt_str(data.get("scope")),
            batch_id=_opt_str(data.get("batchId")),
            source_path=_opt_str(data.get("sourcePath")),
            recycle_path=_opt_str(data.get("recyclePath")),
            size_bytes=_opt_int(data.get("sizeBytes"), "sizeBytes"),
            dry_run=bool(data.get("dryRun", False)),
            error=_opt_str(data.get("error")),
            error_type=_opt_str(data.get("error_type")),
            invalid_reason=_opt_str(data.get("invalid_reason")),
            metadata={k: v for k, v in data.items() if k not in _CORE_KEYS},
        )

    def to_json_line(self) -> str:
        """Serialize to a JSON line (no trailing newline)."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> "AuditRecord":
        """Deserialize from a JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            ValueError: If the line is not a JSON object or has no action.
        """
        data = json.loads(line.strip())
        if not isinstance(data, dict):
            msg = "Audit line is not a JSON object"
            raise ValueError(msg)
        return cls.from_dict(data)

    @property
    def declared_bytes(self) -> int:
        """Declared size, treating a missing value as zero."""
        return self.size_bytes or 0


def _opt_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _opt_int(value: object, key: str) -> int | None:
    """Coerce a JSON number to int; non-finite numbers make the line corrupt."""
    if not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        msg = f"Audit record field {key!r} is not a finite number"
        raise ValueError(msg)
    return int(value)
