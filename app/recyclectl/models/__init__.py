"""Data models for recyclectl.

This module exports the audit record, batch, target, and summary models.
"""

from recyclectl.models.batch import DEFAULT_SCOPE, GOVERNANCE_SCOPE, Batch, CleanupTarget
from recyclectl.models.record import AuditAction, AuditRecord, RecordStatus, now_ms
from recyclectl.models.summary import (
    BatchError,
    CleanupSummary,
    ItemError,
    RestoreSummary,
)

__all__ = [
    "DEFAULT_SCOPE",
    "GOVERNANCE_SCOPE",
    "AuditAction",
    "AuditRecord",
    "Batch",
    "BatchError",
    "CleanupSummary",
    "CleanupTarget",
    "ItemError",
    "RecordStatus",
    "RestoreSummary",
    "now_ms",
]
