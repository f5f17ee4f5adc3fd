"""Reconstruct restorable batches by replaying the audit log.

There is no batch manifest on disk. What can be restored right now is
computed from the log on every call:

1. recycle paths that already have a successful restore record are done;
2. every other cleanup record with a recycle path is a candidate;
3. candidates whose recycle item has disappeared are dropped silently;
4. the survivors are grouped by batch ID.
"""

from pathlib import Path

from recyclectl.core.audit import AuditLog
from recyclectl.models.batch import Batch
from recyclectl.models.record import AuditAction, AuditRecord, RecordStatus, now_ms
from recyclectl.recycle.moves import path_exists

UNKNOWN_BATCH_ID = "unknown"


def build_restorable_batches(records: list[AuditRecord]) -> list[Batch]:
    """Group still-restorable cleanup records into batches.

    Args:
        records: All audit records, in log order.

    Returns:
        Batches sorted newest first by their earliest record time.
    """
    restored = {
        r.recycle_path
        for r in records
        if r.action == AuditAction.RESTORE
        and r.status == RecordStatus.SUCCESS
        and r.recycle_path is not None
    }

    batches: dict[str, Batch] = {}
    for record in records:
        if record.action != AuditAction.CLEANUP or record.recycle_path is None:
            continue
        if record.recycle_path in restored:
            continue
        if not path_exists(record.recycle_path):
            continue

        batch_id = record.batch_id or UNKNOWN_BATCH_ID
        batch = batches.get(batch_id)
        if batch is None:
            batch = Batch(batch_id=batch_id, first_time=record.time or now_ms())
            batches[batch_id] = batch
        batch.add(record)

    return sorted(batches.values(), key=lambda b: b.first_time, reverse=True)


def list_restorable_batches(index_path: Path) -> list[Batch]:
    """List batches that can still be restored, newest first.

    Args:
        index_path: Path of the audit log.

    Returns:
        Restorable batches, newest first. Empty if the log is missing.
    """
    return build_restorable_batches(AuditLog(index_path).read_all())


def find_batch(index_path: Path, batch_id: str) -> Batch | None:
    """Find one restorable batch by ID.

    Returns:
        The batch, or None if it has nothing left to restore.
    """
    for batch in list_restorable_batches(index_path):
        if batch.batch_id == batch_id:
            return batch
    return None
