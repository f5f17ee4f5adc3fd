"""Retention policy engine for the recycle bin.

Selects whole batches for permanent deletion. Age is the primary rule;
total size is the backstop:

1. the newest ``min_keep_batches`` batches are always kept;
2. any other batch at least ``max_age_days`` old is selected "by age";
3. while the remaining total still exceeds the size threshold, further
   batches are selected oldest first "by size".

The size backstop is greedy and oldest-first, so it can evict a small
batch just past the protected window while a larger, newer one survives.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from recyclectl.core.audit import AuditLog
from recyclectl.core.config import RetentionPolicy, normalize_retention_policy
from recyclectl.core.errors import ErrorType, classify_error_type
from recyclectl.core.safety import InvalidReason, batch_directory
from recyclectl.models.batch import Batch
from recyclectl.models.record import AuditAction, AuditRecord, RecordStatus, now_ms
from recyclectl.models.summary import BatchError
from recyclectl.recycle.batches import list_restorable_batches
from recyclectl.recycle.moves import calculate_directory_size, remove_path
from recyclectl.recycle.store import ProgressCallback

logger = logging.getLogger(__name__)

DAY_MS = 24 * 3600 * 1000

SELECTED_BY_AGE = "age"
SELECTED_BY_SIZE = "size"


@dataclass(frozen=True, slots=True)
class RecycleStats:
    """Snapshot of the recycle bin.

    Attributes:
        batches: Restorable batches, newest first.
        total_batches: Number of restorable batches.
        total_bytes: Bytes on disk below the recycle root.
        indexed_bytes: Sum of declared sizes of restorable entries.
        oldest_time: Earliest batch time, None if the bin is empty.
    """

    batches: list[Batch]
    total_batches: int
    total_bytes: int
    indexed_bytes: int
    oldest_time: int | None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output (without batch entries)."""
        return {
            "totalBatches": self.total_batches,
            "totalBytes": self.total_bytes,
            "indexedBytes": self.indexed_bytes,
            "oldestTime": self.oldest_time,
        }


@dataclass(frozen=True, slots=True)
class SelectedBatch:
    """A batch chosen for deletion and the rule that chose it."""

    batch: Batch
    selected_by: str


@dataclass(frozen=True, slots=True)
class MaintenanceSelection:
    """Result of applying a retention policy to a batch list.

    Attributes:
        keep_recent: Protected newest batches.
        candidates: Selected batches, newest first.
        total_bytes: Declared size of all batches.
        threshold_bytes: Size threshold of the policy.
        estimated_after_bytes: Declared size left after deleting candidates.
    """

    keep_recent: list[Batch]
    candidates: list[SelectedBatch]
    total_bytes: int
    threshold_bytes: int
    estimated_after_bytes: int

    def count_by(self, rule: str) -> int:
        """Number of candidates selected by the given rule."""
        return sum(1 for c in self.candidates if c.selected_by == rule)


@dataclass(slots=True)
class MaintenanceSummary:
    """Outcome of one retention pass."""

    status: str
    dry_run: bool
    policy: RetentionPolicy
    before: RecycleStats
    after: RecycleStats
    threshold_bytes: int
    over_threshold: bool
    candidate_count: int = 0
    selected_by_age: int = 0
    selected_by_size: int = 0
    deleted_batches: int = 0
    deleted_bytes: int = 0
    failed_batches: int = 0
    errors: list[BatchError] = field(default_factory=lambda: [])

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "status": self.status,
            "dryRun": self.dry_run,
            "policy": self.policy.model_dump(),
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
            "thresholdBytes": self.threshold_bytes,
            "overThreshold": self.over_threshold,
            "candidateCount": self.candidate_count,
            "selectedByAge": self.selected_by_age,
            "selectedBySize": self.selected_by_size,
            "deletedBatches": self.deleted_batches,
            "deletedBytes": self.deleted_bytes,
            "failedBatches": self.failed_batches,
            "errors": [
                {
                    "batchId": e.batch_id,
                    "message": e.message,
                    "errorType": e.error_type,
                    "invalidReason": e.invalid_reason,
                }
                for e in self.errors
            ],
        }


def age_days(ts_millis: int, now_millis: int) -> int:
    """Whole days between a timestamp and now (never negative)."""
    return max(0, now_millis - ts_millis) // DAY_MS


def collect_recycle_stats(
    index_path: Path,
    recycle_root: Path,
    create_if_missing: bool = True,
) -> RecycleStats:
    """Take a snapshot of the recycle bin.

    Args:
        index_path: Audit log path.
        recycle_root: Recycle bin root.
        create_if_missing: Create the recycle root if it doesn't exist.
            Read-only callers pass False.

    Returns:
        RecycleStats for the current state.
    """
    if create_if_missing:
        recycle_root.mkdir(parents=True, exist_ok=True)

    batches = list_restorable_batches(index_path)
    return RecycleStats(
        batches=batches,
        total_batches=len(batches),
        total_bytes=calculate_directory_size(recycle_root),
        indexed_bytes=sum(b.total_bytes for b in batches),
        oldest_time=min((b.first_time for b in batches), default=None),
    )


def select_batches_for_maintenance(
    batches: list[Batch],
    policy: RetentionPolicy,
    now: int | None = None,
) -> MaintenanceSelection:
    """Choose batches to delete under a retention policy.

    Pure function of the batch list, the policy and the clock. Dry-run
    and live passes both call it, so they always agree on the selection.

    Args:
        batches: Restorable batches in any order.
        policy: Retention policy to apply.
        now: Current time in epoch milliseconds.

    Returns:
        MaintenanceSelection describing kept and selected batches.
    """
    now = now if now is not None else now_ms()
    ordered = sorted(batches, key=lambda b: b.first_time, reverse=True)
    keep_recent = ordered[: max(0, policy.min_keep_batches)]
    keep_ids = {b.batch_id for b in keep_recent}
    threshold = policy.threshold_bytes
    total_bytes = sum(b.total_bytes for b in ordered)

    selected: dict[str, SelectedBatch] = {}
    for batch in ordered:
        if batch.batch_id in keep_ids:
            continue
        if age_days(batch.first_time, now) >= policy.max_age_days:
            selected[batch.batch_id] = SelectedBatch(batch, SELECTED_BY_AGE)

    remaining = total_bytes - sum(s.batch.total_bytes for s in selected.values())

    if remaining > threshold:
        by_size = sorted(
            (b for b in ordered if b.batch_id not in keep_ids and b.batch_id not in selected),
            key=lambda b: b.first_time,
        )
        for batch in by_size:
            selected[batch.batch_id] = SelectedBatch(batch, SELECTED_BY_SIZE)
            remaining -= batch.total_bytes
            if remaining <= threshold:
                break

    candidates = sorted(selected.values(), key=lambda s: s.batch.first_time, reverse=True)
    return MaintenanceSelection(
        keep_recent=keep_recent,
        candidates=candidates,
        total_bytes=total_bytes,
        threshold_bytes=threshold,
        estimated_after_bytes=max(0, remaining),
    )


def _delete_batch(recycle_root: Path, batch: Batch) -> BatchError | None:
    """Permanently delete one batch directory after re-verifying it.

    Returns:
        None on success, or a BatchError describing the failure.
    """
    target = batch_directory(
        recycle_root, batch.batch_id, (e.recycle_path for e in batch.entries)
    )
    if target is None:
        logger.warning("Batch %s has inconsistent recycle paths, not deleting", batch.batch_id)
        return BatchError(
            batch_id=batch.batch_id,
            message=f"recycle paths of batch {batch.batch_id} are not all under its directory",
            error_type=ErrorType.PATH_VALIDATION_FAILED.value,
            invalid_reason=InvalidReason.INCONSISTENT_BATCH_ROOTS.value,
        )

    try:
        remove_path(target)
    except OSError as e:
        message = str(e)
        logger.warning("Failed to delete batch %s: %s", batch.batch_id, message)
        return BatchError(
            batch_id=batch.batch_id,
            message=message,
            error_type=classify_error_type(message).value,
        )

    logger.info("Deleted batch %s (%s)", batch.batch_id, os.fspath(target))
    return None


def maintain_recycle_bin(
    index_path: Path,
    recycle_root: Path,
    policy: RetentionPolicy | dict[str, Any] | None = None,
    dry_run: bool = False,
    on_progress: ProgressCallback | None = None,
    now: int | None = None,
) -> MaintenanceSummary:
    """Run one retention pass over the recycle bin.

    Appends exactly one ``recycle_maintain`` record summarizing the pass.
    A batch that cannot be deleted is reported and the pass continues.
    The caller must hold the process lock for the state directory.

    Args:
        index_path: Audit log path.
        recycle_root: Recycle bin root.
        policy: Retention policy (malformed fields fall back to defaults).
        dry_run: Compute the selection without deleting anything.
        on_progress: Optional callback; returning False stops the pass
            before the next batch.
        now: Current time in epoch milliseconds.

    Returns:
        MaintenanceSummary describing the pass.

    Raises:
        OSError: If the audit log cannot be written.
    """
    normalized = normalize_retention_policy(policy)
    now = now if now is not None else now_ms()
    audit_log = AuditLog(index_path)

    before = collect_recycle_stats(index_path, recycle_root, create_if_missing=not dry_run)
    selection = select_batches_for_maintenance(before.batches, normalized, now)
    enabled = normalized.enabled

    summary = MaintenanceSummary(
        status=RecordStatus.SUCCESS.value,
        dry_run=dry_run,
        policy=normalized,
        before=before,
        after=before,
        threshold_bytes=selection.threshold_bytes,
        over_threshold=before.total_bytes > selection.threshold_bytes,
        candidate_count=len(selection.candidates) if enabled else 0,
        selected_by_age=selection.count_by(SELECTED_BY_AGE) if enabled else 0,
        selected_by_size=selection.count_by(SELECTED_BY_SIZE) if enabled else 0,
    )

    if not enabled:
        summary.status = RecordStatus.SKIPPED_DISABLED.value
    elif not selection.candidates:
        summary.status = RecordStatus.SKIPPED_NO_CANDIDATE.value
    else:
        total = len(selection.candidates)
        for idx, candidate in enumerate(selection.candidates, start=1):
            if on_progress is not None and on_progress(idx, total) is False:
                break
            batch = candidate.batch

            if dry_run:
                summary.deleted_batches += 1
                summary.deleted_bytes += batch.total_bytes
                continue

            error = _delete_batch(recycle_root, batch)
            if error is None:
                summary.deleted_batches += 1
                summary.deleted_bytes += batch.total_bytes
            else:
                summary.failed_batches += 1
                summary.errors.append(error)

        if not dry_run:
            summary.after = collect_recycle_stats(index_path, recycle_root)
        if summary.failed_batches:
            summary.status = RecordStatus.PARTIAL_FAILED.value
        elif dry_run:
            summary.status = RecordStatus.DRY_RUN.value

    audit_log.append(_maintenance_record(summary, recycle_root))
    logger.info(
        "Recycle maintenance %s: deleted %d batch(es), %d failed",
        summary.status,
        summary.deleted_batches,
        summary.failed_batches,
    )
    return summary


def _maintenance_record(summary: MaintenanceSummary, recycle_root: Path) -> AuditRecord:
    """Build the single audit record describing a retention pass."""
    metadata: dict[str, Any] = {
        "recycle_root": os.fspath(recycle_root),
        "policy": summary.policy.model_dump(),
        "threshold_bytes": summary.threshold_bytes,
        "over_threshold": summary.over_threshold,
        "before_batches": summary.before.total_batches,
        "before_bytes": summary.before.total_bytes,
        "deleted_batches": summary.deleted_batches,
        "deleted_bytes": summary.deleted_bytes,
        "failed_batches": summary.failed_batches,
        "selected_by_age": summary.selected_by_age,
        "selected_by_size": summary.selected_by_size,
        "remaining_batches": summary.after.total_batches,
        "remaining_bytes": summary.after.total_bytes,
    }
    error_type = None
    if summary.failed_batches:
        error_type = summary.errors[0].error_type if summary.errors else ErrorType.UNKNOWN.value

    return AuditRecord(
        action=AuditAction.RECYCLE_MAINTAIN.value,
        time=now_ms(),
        status=summary.status,
        dry_run=summary.dry_run,
        error_type=error_type,
        metadata=metadata,
    )
