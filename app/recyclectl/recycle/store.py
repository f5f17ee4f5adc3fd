"""Recycle store: move cleanup targets into the recycle bin.

Each invocation creates one batch. Targets are processed strictly one at
a time and every outcome is appended to the audit log before the next
target is touched, so a crash mid-run leaves an accurate log behind.
"""

import logging
import os
import re
import secrets
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from recyclectl.core.audit import AuditLog
from recyclectl.core.errors import ErrorType, classify_error_type
from recyclectl.core.safety import InvalidReason, validate_within_roots
from recyclectl.models.batch import DEFAULT_SCOPE, CleanupTarget
from recyclectl.models.record import AuditAction, AuditRecord, RecordStatus, now_ms
from recyclectl.models.summary import CleanupSummary, ItemError
from recyclectl.recycle.moves import move_path, path_exists

logger = logging.getLogger(__name__)

# Returns a status string to veto a target, or None to let it through.
SkipPolicy = Callable[[CleanupTarget], str | None]
# Called with (current, total) before each item; returning False stops the run.
ProgressCallback = Callable[[int, int], bool | None]

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def generate_batch_id(now: datetime | None = None) -> str:
    """Create a sortable batch identifier.

    Format: ``yyyymmdd-hhmmss-<6 hex chars>`` in local time.
    """
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{stamp}-{secrets.token_hex(3)}"


def sanitize_name(source_path: str | Path) -> str:
    """Turn a source basename into a safe recycle bin file name.

    Every character outside ``[A-Za-z0-9._-]`` becomes ``_``. An empty
    result becomes ``unknown``.
    """
    base = os.path.basename(os.fspath(source_path).rstrip(os.sep))
    return _UNSAFE_NAME_CHARS.sub("_", base) or "unknown"


def recycle_item_path(batch_root: Path, seq: int, source_path: str | Path) -> Path:
    """Destination of the ``seq``-th target (1-based) inside a batch."""
    return batch_root / f"{seq:04d}_{sanitize_name(source_path)}"


class RecycleStore:
    """Moves live paths into a per-batch area of the recycle bin.

    Attributes:
        recycle_root: Root of the recycle bin.
        audit_log: Log receiving one cleanup record per target.
        allowed_roots: Roots every source must lie under. None disables
            the containment check.
        dry_run: If True, decide and record outcomes without moving anything.
    """

    def __init__(
        self,
        recycle_root: Path,
        audit_log: AuditLog,
        allowed_roots: Sequence[str | Path] | None = None,
        dry_run: bool = False,
    ) -> None:
        self.recycle_root = Path(recycle_root)
        self.audit_log = audit_log
        self.allowed_roots = allowed_roots
        self.dry_run = dry_run

    def execute(
        self,
        targets: Sequence[CleanupTarget],
        scope: str = DEFAULT_SCOPE,
        should_skip: SkipPolicy | None = None,
        on_progress: ProgressCallback | None = None,
        batch_id: str | None = None,
    ) -> CleanupSummary:
        """Recycle a list of targets as one batch.

        Per target, in order: skip-policy veto, missing source, dry-run,
        path safety, then the move. A failure on one target is recorded and the
        run continues with the next.

        Args:
            targets: Targets to recycle, in processing order.
            scope: Cleanup mode recorded on every record.
            should_skip: Optional policy returning a status string to skip.
            on_progress: Optional callback; returning False stops the run
                before the next target.
            batch_id: Explicit batch ID. Generated when omitted.

        Returns:
            CleanupSummary with counts, reclaimed bytes, and failures.

        Raises:
            OSError: If the audit log cannot be written.
        """
        batch_id = batch_id or generate_batch_id()
        batch_root = self.recycle_root / batch_id
        summary = CleanupSummary(batch_id=batch_id, dry_run=self.dry_run)
        total = len(targets)

        logger.info(
            "Starting cleanup batch %s (%d target(s), dry_run=%s)", batch_id, total, self.dry_run
        )

        for idx, target in enumerate(targets, start=1):
            if on_progress is not None and on_progress(idx, total) is False:
                summary.stopped_early = True
                logger.info("Cleanup batch %s stopped before item %d", batch_id, idx)
                break

            self._process(target, idx, batch_id, batch_root, scope, should_skip, summary)

        logger.info(
            "Finished cleanup batch %s: %d ok, %d skipped, %d failed",
            batch_id,
            summary.success_count,
            summary.skipped_count,
            summary.failed_count,
        )
        return summary

    def _process(
        self,
        target: CleanupTarget,
        seq: int,
        batch_id: str,
        batch_root: Path,
        scope: str,
        should_skip: SkipPolicy | None,
        summary: CleanupSummary,
    ) -> None:
        """Decide, act on, and record a single target."""

        def record(status: str, recycle_path: Path | None = None, **fields: Any) -> None:
            summary.count(status)
            self.audit_log.append(
                AuditRecord(
                    action=AuditAction.CLEANUP.value,
                    time=now_ms(),
                    status=status,
                    scope=scope,
                    batch_id=batch_id,
                    source_path=target.path,
                    recycle_path=str(recycle_path) if recycle_path is not None else None,
                    size_bytes=target.size_bytes,
                    dry_run=self.dry_run,
                    metadata=dict(target.metadata),
                    **fields,
                )
            )

        policy_status = should_skip(target) if should_skip is not None else None
        if policy_status:
            summary.skipped_count += 1
            record(policy_status, error_type=ErrorType.POLICY_SKIPPED.value)
            return

        if not path_exists(target.path):
            summary.skipped_count += 1
            record(RecordStatus.SKIPPED_MISSING_SOURCE.value)
            return

        if self.dry_run:
            summary.success_count += 1
            summary.reclaimed_bytes += target.size_bytes
            record(RecordStatus.DRY_RUN.value)
            return

        if self.allowed_roots is not None:
            check = validate_within_roots(
                target.path, self.allowed_roots, InvalidReason.SOURCE_OUTSIDE_ALLOWED_ROOT
            )
            if not check.allowed:
                reason = check.invalid_reason or InvalidReason.SOURCE_OUTSIDE_ALLOWED_ROOT
                logger.warning("Refusing to recycle %s: %s", target.path, reason.value)
                summary.skipped_count += 1
                record(
                    RecordStatus.SKIPPED_INVALID_PATH.value,
                    error_type=ErrorType.PATH_VALIDATION_FAILED.value,
                    invalid_reason=reason.value,
                )
                return

        recycle_path = recycle_item_path(batch_root, seq, target.path)
        try:
            move_path(target.path, recycle_path)
        except OSError as e:
            message = str(e)
            error_type = classify_error_type(message)
            logger.warning("Failed to recycle %s: %s", target.path, message)
            summary.failed_count += 1
            summary.errors.append(
                ItemError(
                    path=target.path,
                    message=message,
                    error_type=error_type.value,
                    recycle_path=str(recycle_path),
                )
            )
            record(
                RecordStatus.FAILED.value,
                recycle_path,
                error=message,
                error_type=error_type.value,
            )
            return

        summary.success_count += 1
        summary.reclaimed_bytes += target.size_bytes
        record(RecordStatus.SUCCESS.value, recycle_path)


def execute_cleanup(
    targets: Sequence[CleanupTarget],
    recycle_root: Path,
    index_path: Path,
    dry_run: bool = False,
    allowed_roots: Sequence[str | Path] | None = None,
    scope: str = DEFAULT_SCOPE,
    should_skip: SkipPolicy | None = None,
    on_progress: ProgressCallback | None = None,
) -> CleanupSummary:
    """Recycle targets as one batch. Convenience wrapper around RecycleStore.

    The caller must hold the process lock for the state directory.
    """
    store = RecycleStore(
        recycle_root=recycle_root,
        audit_log=AuditLog(index_path),
        allowed_roots=allowed_roots,
        dry_run=dry_run,
    )
    return store.execute(targets, scope=scope, should_skip=should_skip, on_progress=on_progress)
