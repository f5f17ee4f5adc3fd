"""Run summaries returned to presentation layers.

Each top-level operation returns one summary object. The CLI renders them
as Rich tables or JSON; other callers can inspect the counters directly.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ItemError:
    """A single failed item.

    Attributes:
        path: Source path of the item.
        message: Underlying error text.
        error_type: Classified error kind.
        recycle_path: Recycle bin location, if known.
    """

    path: str
    message: str
    error_type: str
    recycle_path: str | None = None


@dataclass(slots=True)
class CleanupSummary:
    """Outcome of moving a target list into the recycle bin."""

    batch_id: str
    dry_run: bool
    success_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    reclaimed_bytes: int = 0
    status_counts: dict[str, int] = field(default_factory=lambda: {})
    errors: list[ItemError] = field(default_factory=lambda: [])
    stopped_early: bool = False

    @property
    def processed_count(self) -> int:
        """Number of targets that produced an outcome."""
        return self.success_count + self.skipped_count + self.failed_count

    def count(self, status: str) -> None:
        """Increment the per-status breakdown."""
        self.status_counts[status] = self.status_counts.get(status, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return asdict(self)


@dataclass(slots=True)
class RestoreSummary:
    """Outcome of restoring one batch."""

    batch_id: str
    dry_run: bool
    success_count: int = 0
    skip_count: int = 0
    fail_count: int = 0
    restored_bytes: int = 0
    status_counts: dict[str, int] = field(default_factory=lambda: {})
    errors: list[ItemError] = field(default_factory=lambda: [])
    stopped_early: bool = False

    def count(self, status: str) -> None:
        """Increment the per-status breakdown."""
        self.status_counts[status] = self.status_counts.get(status, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return asdict(self)


@dataclass(frozen=True, slots=True)
class BatchError:
    """A batch the retention pass could not delete.

    Attributes:
        batch_id: Affected batch.
        message: Underlying error text.
        error_type: Classified error kind.
        invalid_reason: Path safety reason code, if the batch was rejected.
    """

    batch_id: str
    message: str
    error_type: str
    invalid_reason: str | None = None
