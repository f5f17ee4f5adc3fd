"""Restore engine: move recycled items back to where they came from.

Entries of a batch are restored one at a time. For each entry the engine
checks that the recycle item still exists and that the destination lies
inside the allow-listed roots. A destination outside the profile root
needs confirmation. Only then is the conflict resolver consulted if the
destination is already occupied. Every outcome is appended to the audit
log; a failure on one entry never stops the batch.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from recyclectl.core.audit import AuditLog
from recyclectl.core.errors import ErrorType, classify_error_type
from recyclectl.core.safety import InvalidReason, PathCheck, validate_within_roots
from recyclectl.models.batch import Batch
from recyclectl.models.record import AuditAction, AuditRecord, RecordStatus, now_ms
from recyclectl.models.summary import ItemError, RestoreSummary
from recyclectl.recycle.moves import move_path, path_exists, remove_path

logger = logging.getLogger(__name__)

RISK_OUT_OF_PROFILE_ROOT = "out_of_profile_root"


class ConflictStrategy(str, Enum):
    """What to do when a restore destination already exists.

    Attributes:
        SKIP: Leave destination and recycle item untouched.
        OVERWRITE: Remove the existing destination, then restore.
        RENAME: Restore next to it as ``<original>.restored-<timestamp>``.
    """

    SKIP = "skip"
    OVERWRITE = "overwrite"
    RENAME = "rename"


@dataclass(frozen=True, slots=True)
class RestoreConflict:
    """A restore destination that already exists.

    Attributes:
        original_path: Occupied destination (the item's source path).
        recycle_path: Recycle item waiting to be restored.
        entry: Cleanup record of the item.
    """

    original_path: str
    recycle_path: str
    entry: AuditRecord


@dataclass(frozen=True, slots=True)
class ConflictDecision:
    """Answer from a conflict resolver.

    Attributes:
        strategy: Strategy for this conflict.
        apply_to_all: Reuse the strategy for every later conflict in the batch.
    """

    strategy: ConflictStrategy
    apply_to_all: bool = False


ConflictResolver = Callable[[RestoreConflict], ConflictDecision]
# Called with (current, total) before each entry; returning False stops the run.
ProgressCallback = Callable[[int, int], bool | None]


def build_rename_target(original_path: str, timestamp: int | None = None) -> str:
    """Destination used by the RENAME strategy."""
    return f"{original_path}.restored-{timestamp if timestamp is not None else now_ms()}"


def resolve_conflict(
    conflict: RestoreConflict,
    on_conflict: ConflictResolver | None,
    remembered: ConflictStrategy | None,
) -> tuple[ConflictStrategy, ConflictStrategy | None]:
    """Pick a strategy for one conflict.

    Args:
        conflict: The occupied destination.
        on_conflict: Resolver to ask. Without one, conflicts are skipped.
        remembered: Strategy carried over from an earlier "apply to all".

    Returns:
        Tuple of (strategy for this conflict, strategy to carry forward).
    """
    if remembered is not None:
        return remembered, remembered
    if on_conflict is None:
        return ConflictStrategy.SKIP, None

    decision = on_conflict(conflict)
    strategy = ConflictStrategy(decision.strategy)
    return strategy, strategy if decision.apply_to_all else None


@dataclass(frozen=True, slots=True)
class RiskPrompt:
    """A restore that would write outside the profile root.

    Attributes:
        original_path: Destination of the restore.
        recycle_path: Recycle item waiting to be restored.
        profile_root: Profile root the destination lies outside of.
        entry: Cleanup record of the item.
    """

    original_path: str
    recycle_path: str
    profile_root: Path
    entry: AuditRecord


@dataclass(frozen=True, slots=True)
class RiskDecision:
    """Answer to a RiskPrompt.

    Attributes:
        allow: Restore the item anyway.
        apply_to_all: Reuse the answer for every later risky entry in the batch.
    """

    allow: bool
    apply_to_all: bool = False


RiskConfirm = Callable[[RiskPrompt], RiskDecision]


def confirm_risk(
    prompt: RiskPrompt,
    on_risk_confirm: RiskConfirm | None,
    remembered: bool | None,
) -> tuple[bool, bool | None]:
    """Decide whether a restore outside the profile root may proceed.

    Args:
        prompt: The risky restore.
        on_risk_confirm: Callback to ask. Without one, the restore is allowed.
        remembered: Answer carried over from an earlier "apply to all".

    Returns:
        Tuple of (allow this entry, answer to carry forward).
    """
    if remembered is not None:
        return remembered, remembered
    if on_risk_confirm is None:
        return True, None

    decision = on_risk_confirm(prompt)
    allow = bool(decision.allow)
    return allow, allow if decision.apply_to_all else None


@dataclass(frozen=True, slots=True)
class RestoreRoots:
    """Allow-listed destination roots for a restore.

    Attributes:
        profile_root: Main profiles directory.
        extra_roots: Additional roots accepted for ordinary batches.
        governance_roots: Roots accepted for governance batches.
    """

    profile_root: Path | None = None
    extra_roots: tuple[Path, ...] = ()
    governance_roots: tuple[Path, ...] = ()

    def check(self, batch: Batch, destination: str | None) -> PathCheck:
        """Validate a destination for an entry of the given batch."""
        if batch.is_governance:
            return validate_within_roots(
                destination, self.governance_roots, InvalidReason.SOURCE_OUTSIDE_ALLOWED_ROOT
            )
        roots = ([self.profile_root] if self.profile_root else []) + list(self.extra_roots)
        return validate_within_roots(
            destination, roots, InvalidReason.SOURCE_OUTSIDE_PROFILE_ROOT
        )

    def risk(self, destination: str) -> str | None:
        """Flag destinations that leave the profile root."""
        if self.profile_root is None:
            return None
        inside = validate_within_roots(destination, [self.profile_root]).allowed
        return None if inside else RISK_OUT_OF_PROFILE_ROOT


@dataclass(slots=True)
class _BatchChoices:
    """Apply-to-all answers remembered across the entries of one batch."""

    strategy: ConflictStrategy | None = None
    allow_risk: bool | None = None


class RestoreEngine:
    """Restores recycled batches under the allow-listed roots.

    Attributes:
        audit_log: Log receiving one restore record per entry.
        roots: Allow-listed destination roots.
        recycle_root: If set, recycle items must lie inside it.
        dry_run: If True, decide and record outcomes without touching disk.
    """

    def __init__(
        self,
        audit_log: AuditLog,
        roots: RestoreRoots,
        recycle_root: Path | None = None,
        dry_run: bool = False,
    ) -> None:
        self.audit_log = audit_log
        self.roots = roots
        self.recycle_root = recycle_root
        self.dry_run = dry_run

    def restore(
        self,
        batch: Batch,
        on_conflict: ConflictResolver | None = None,
        on_progress: ProgressCallback | None = None,
        on_risk_confirm: RiskConfirm | None = None,
    ) -> RestoreSummary:
        """Restore every entry of a batch.

        Args:
            batch: Batch reconstructed from the audit log.
            on_conflict: Resolver for occupied destinations. Without one,
                conflicts are skipped.
            on_progress: Optional callback; returning False stops the run
                before the next entry.
            on_risk_confirm: Asked before restoring outside the profile
                root. Without one, such restores go ahead.

        Returns:
            RestoreSummary with counts and restored bytes.

        Raises:
            OSError: If the audit log cannot be written.
        """
        summary = RestoreSummary(batch_id=batch.batch_id, dry_run=self.dry_run)
        choices = _BatchChoices()
        total = len(batch.entries)

        logger.info(
            "Restoring batch %s (%d entr%s, dry_run=%s)",
            batch.batch_id,
            total,
            "y" if total == 1 else "ies",
            self.dry_run,
        )

        for idx, entry in enumerate(batch.entries, start=1):
            if on_progress is not None and on_progress(idx, total) is False:
                summary.stopped_early = True
                break
            self._restore_entry(batch, entry, on_conflict, on_risk_confirm, choices, summary)

        logger.info(
            "Finished restoring batch %s: %d ok, %d skipped, %d failed",
            batch.batch_id,
            summary.success_count,
            summary.skip_count,
            summary.fail_count,
        )
        return summary

    def _restore_entry(
        self,
        batch: Batch,
        entry: AuditRecord,
        on_conflict: ConflictResolver | None,
        on_risk_confirm: RiskConfirm | None,
        choices: _BatchChoices,
        summary: RestoreSummary,
    ) -> None:
        """Restore one entry, updating the remembered batch choices."""
        recycle_path = entry.recycle_path or ""
        original_path = entry.source_path

        def record(status: str, **fields: Any) -> None:
            summary.count(status)
            metadata = {k: v for k, v in fields.items() if k not in _RECORD_CORE and v is not None}
            self.audit_log.append(
                AuditRecord(
                    action=AuditAction.RESTORE.value,
                    time=now_ms(),
                    status=status,
                    scope=batch.scope,
                    batch_id=batch.batch_id,
                    source_path=original_path,
                    recycle_path=recycle_path,
                    size_bytes=entry.size_bytes,
                    dry_run=self.dry_run,
                    error=fields.get("error"),
                    error_type=fields.get("error_type"),
                    invalid_reason=fields.get("invalid_reason"),
                    metadata=metadata,
                )
            )

        if not path_exists(recycle_path):
            summary.skip_count += 1
            record(RecordStatus.SKIPPED_MISSING_RECYCLE.value)
            return

        if self.recycle_root is not None:
            inside = validate_within_roots(
                recycle_path, [self.recycle_root], InvalidReason.RECYCLE_OUTSIDE_RECYCLE_ROOT
            )
            if not inside.allowed:
                self._skip_invalid(inside, record, summary)
                return

        check = self.roots.check(batch, original_path)
        if not check.allowed or original_path is None:
            logger.warning(
                "Refusing to restore %s: %s",
                original_path,
                check.invalid_reason.value if check.invalid_reason else "invalid",
            )
            self._skip_invalid(check, record, summary)
            return

        risk_fields: dict[str, Any] = {}
        profile_root = self.roots.profile_root
        if profile_root is not None and self.roots.risk(original_path):
            prompt = RiskPrompt(original_path, recycle_path, profile_root, entry)
            allow, choices.allow_risk = confirm_risk(prompt, on_risk_confirm, choices.allow_risk)
            risk_fields = {
                "risk": RISK_OUT_OF_PROFILE_ROOT,
                "user_confirmed": allow,
                "profile_root": str(profile_root),
            }
            if not allow:
                logger.info("Restore of %s outside the profile root declined", original_path)
                summary.skip_count += 1
                record(RecordStatus.SKIPPED_RISK_REJECTED.value, **risk_fields)
                return

        target_path = original_path
        strategy: ConflictStrategy | None = None

        if path_exists(original_path):
            conflict = RestoreConflict(original_path, recycle_path, entry)
            strategy, choices.strategy = resolve_conflict(conflict, on_conflict, choices.strategy)

            if strategy is ConflictStrategy.SKIP:
                summary.skip_count += 1
                record(
                    RecordStatus.SKIPPED_CONFLICT.value,
                    error_type=ErrorType.CONFLICT.value,
                    **risk_fields,
                )
                return
            if strategy is ConflictStrategy.RENAME:
                target_path = build_rename_target(original_path)

        extra: dict[str, Any] = {"restoredPath": target_path, **risk_fields}
        if strategy is not None:
            extra["conflict_strategy"] = strategy.value

        if self.dry_run:
            summary.success_count += 1
            summary.restored_bytes += entry.declared_bytes
            record(RecordStatus.DRY_RUN.value, **extra)
            return

        try:
            if strategy is ConflictStrategy.OVERWRITE:
                remove_path(original_path)
            move_path(recycle_path, target_path)
        except OSError as e:
            message = str(e)
            error_type = classify_error_type(message).value
            logger.warning("Failed to restore %s: %s", original_path, message)
            summary.fail_count += 1
            summary.errors.append(
                ItemError(
                    path=original_path,
                    message=message,
                    error_type=error_type,
                    recycle_path=recycle_path,
                )
            )
            record(RecordStatus.FAILED.value, error=message, error_type=error_type, **risk_fields)
            return

        summary.success_count += 1
        summary.restored_bytes += entry.declared_bytes
        record(RecordStatus.SUCCESS.value, **extra)

    @staticmethod
    def _skip_invalid(
        check: PathCheck, record: Callable[..., None], summary: RestoreSummary
    ) -> None:
        reason = check.invalid_reason or InvalidReason.SOURCE_PATH_UNRESOLVABLE
        summary.skip_count += 1
        record(
            RecordStatus.SKIPPED_INVALID_PATH.value,
            error_type=ErrorType.PATH_VALIDATION_FAILED.value,
            invalid_reason=reason.value,
        )


_RECORD_CORE = ("error", "error_type", "invalid_reason")


def restore_batch(
    batch: Batch,
    index_path: Path,
    dry_run: bool = False,
    profile_root: Path | None = None,
    extra_roots: Sequence[Path] = (),
    governance_roots: Sequence[Path] = (),
    recycle_root: Path | None = None,
    on_conflict: ConflictResolver | None = None,
    on_progress: ProgressCallback | None = None,
    on_risk_confirm: RiskConfirm | None = None,
) -> RestoreSummary:
    """Restore a batch. Convenience wrapper around RestoreEngine.

    The caller must hold the process lock for the state directory.
    """
    engine = RestoreEngine(
        audit_log=AuditLog(index_path),
        roots=RestoreRoots(
            profile_root=profile_root,
            extra_roots=tuple(extra_roots),
            governance_roots=tuple(governance_roots),
        ),
        recycle_root=recycle_root,
        dry_run=dry_run,
    )
    return engine.restore(
        batch,
        on_conflict=on_conflict,
        on_progress=on_progress,
        on_risk_confirm=on_risk_confirm,
    )
