"""Batch and cleanup target models.

A Batch is never stored on disk. It is derived from the audit log by
grouping cleanup records that share a batch ID and are still restorable.
"""

from dataclasses import dataclass, field
from typing import Any

from recyclectl.models.record import AuditRecord

# Scope used by whole-system cleanups whose restores are checked against
# the governance roots instead of the profile roots.
GOVERNANCE_SCOPE = "space_governance"
DEFAULT_SCOPE = "cleanup_monthly"


@dataclass(slots=True)
class Batch:
    """Restorable items moved into the recycle bin by one cleanup run.

    Attributes:
        batch_id: Sortable batch identifier (``yyyymmdd-hhmmss-<hex>``).
        first_time: Earliest record time in epoch milliseconds.
        entries: Cleanup records that are still restorable, in log order.
        total_bytes: Sum of the entries' declared sizes.
    """

    batch_id: str
    first_time: int
    entries: list[AuditRecord] = field(default_factory=lambda: [])
    total_bytes: int = 0

    @property
    def scope(self) -> str:
        """Scope of the run that produced this batch."""
        for entry in self.entries:
            if entry.scope:
                return entry.scope
        return DEFAULT_SCOPE

    @property
    def is_governance(self) -> bool:
        """Whether this batch came from a whole-system governance cleanup."""
        return self.scope == GOVERNANCE_SCOPE

    def add(self, record: AuditRecord) -> None:
        """Add a restorable cleanup record to the batch."""
        self.entries.append(record)
        if record.time:
            self.first_time = min(self.first_time, record.time)
        self.total_bytes += record.declared_bytes

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "batchId": self.batch_id,
            "firstTime": self.first_time,
            "scope": self.scope,
            "entryCount": len(self.entries),
            "totalBytes": self.total_bytes,
            "entries": [entry.to_dict() for entry in self.entries],
        }


@dataclass(frozen=True, slots=True)
class CleanupTarget:
    """A live path selected for cleanup by a scanner.

    Attributes:
        path: Absolute path of the directory or file to recycle.
        size_bytes: Declared size, computed by the scanner.
        metadata: Descriptive fields carried into audit records
            (account, category, month, ...).
    """

    path: str
    size_bytes: int = 0
    metadata: dict[str, Any] = field(default_factory=lambda: {})

    def __post_init__(self) -> None:
        """Validate target data after initialization."""
        if not self.path:
            msg = "Target path cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0:
            msg = f"Target size cannot be negative, got {self.size_bytes}"
            raise ValueError(msg)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CleanupTarget":
        """Deserialize from a scanner target dictionary.

        Accepts both ``sizeBytes`` and ``size_bytes``; every other key is
        kept as metadata.

        Raises:
            KeyError: If ``path`` is missing.
            ValueError: If the path or size is invalid.
        """
        size = data.get("sizeBytes", data.get("size_bytes", 0))
        return cls(
            path=str(data["path"]),
            size_bytes=int(size or 0),
            metadata={
                k: v for k, v in data.items() if k not in ("path", "sizeBytes", "size_bytes")
            },
        )
