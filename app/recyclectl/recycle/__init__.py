"""Recycle bin subsystem.

This module exports the cleanup executor, batch reconstruction, restore
engine and retention engine.
"""

from recyclectl.recycle.batches import find_batch, list_restorable_batches
from recyclectl.recycle.restore import (
    ConflictDecision,
    ConflictStrategy,
    RestoreConflict,
    RestoreEngine,
    RiskDecision,
    RiskPrompt,
    restore_batch,
)
from recyclectl.recycle.retention import (
    MaintenanceSummary,
    RecycleStats,
    collect_recycle_stats,
    maintain_recycle_bin,
    select_batches_for_maintenance,
)
from recyclectl.recycle.store import RecycleStore, execute_cleanup, generate_batch_id

__all__ = [
    "ConflictDecision",
    "ConflictStrategy",
    "MaintenanceSummary",
    "RecycleStats",
    "RecycleStore",
    "RestoreConflict",
    "RestoreEngine",
    "RiskDecision",
    "RiskPrompt",
    "collect_recycle_stats",
    "execute_cleanup",
    "find_batch",
    "generate_batch_id",
    "list_restorable_batches",
    "maintain_recycle_bin",
    "restore_batch",
    "select_batches_for_maintenance",
]
