"""Shared Rich display functions for batches and run summaries.

Provides reusable table builders and summary printers for the clean,
restore, batches and maintain commands.
"""

import json
from typing import Any

from rich.table import Table

from recyclectl.core.errors import error_type_label
from recyclectl.models.batch import Batch
from recyclectl.models.summary import CleanupSummary, ItemError, RestoreSummary
from recyclectl.recycle.retention import MaintenanceSummary
from recyclectl.utils.formatting import (
    console,
    format_bytes,
    format_status,
    format_timestamp,
    print_success,
    print_warning,
)


def print_json(data: Any) -> None:
    """Print data as indented JSON without Rich markup processing."""
    console.print_json(json.dumps(data, ensure_ascii=False))


def create_batches_table(batches: list[Batch]) -> Table:
    """Create a Rich table listing restorable batches, newest first.

    Args:
        batches: Batches to display.

    Returns:
        Rich Table configured for batch display.
    """
    table = Table(
        title="Restorable Batches",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Batch", no_wrap=True)
    table.add_column("Time", style="muted")
    table.add_column("Scope")
    table.add_column("Items", justify="right")
    table.add_column("Size", style="info", justify="right")

    for batch in batches:
        table.add_row(
            batch.batch_id,
            format_timestamp(batch.first_time),
            batch.scope,
            str(len(batch.entries)),
            format_bytes(batch.total_bytes),
        )
    return table


def create_entries_table(batch: Batch) -> Table:
    """Create a Rich table listing the restorable items of one batch."""
    table = Table(
        title=f"Batch {batch.batch_id}",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Original path", overflow="fold")
    table.add_column("Recycle path", style="muted", overflow="fold")
    table.add_column("Size", style="info", justify="right")

    for entry in batch.entries:
        table.add_row(
            entry.source_path or "-",
            entry.recycle_path or "-",
            format_bytes(entry.size_bytes),
        )
    return table


def create_errors_table(errors: list[ItemError]) -> Table:
    """Create a Rich table listing failed items with their error kind."""
    table = Table(
        title="Failures",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Path", overflow="fold")
    table.add_column("Kind", style="warning")
    table.add_column("Message", style="muted")

    for error in errors:
        table.add_row(error.path, error_type_label(error.error_type), error.message)
    return table


def _print_status_counts(status_counts: dict[str, int]) -> None:
    for status, count in sorted(status_counts.items()):
        console.print(f"  {format_status(status)}: {count}")


def print_cleanup_summary(summary: CleanupSummary) -> None:
    """Print the outcome of a cleanup run."""
    verb = "Would recycle" if summary.dry_run else "Recycled"
    console.print(f"\n[bold]Batch[/] {summary.batch_id}")
    _print_status_counts(summary.status_counts)

    if summary.errors:
        console.print(create_errors_table(summary.errors))
    if summary.stopped_early:
        print_warning(f"Cleanup stopped after {summary.processed_count} target(s).")

    print_success(
        f"{verb} {summary.success_count} item(s), {format_bytes(summary.reclaimed_bytes)}; "
        f"skipped {summary.skipped_count}, failed {summary.failed_count}."
    )


def print_restore_summary(summary: RestoreSummary) -> None:
    """Print the outcome of a restore run."""
    verb = "Would restore" if summary.dry_run else "Restored"
    console.print(f"\n[bold]Batch[/] {summary.batch_id}")
    _print_status_counts(summary.status_counts)

    if summary.errors:
        console.print(create_errors_table(summary.errors))
    if summary.stopped_early:
        print_warning("Restore stopped before all items were processed.")

    print_success(
        f"{verb} {summary.success_count} item(s), {format_bytes(summary.restored_bytes)}; "
        f"skipped {summary.skip_count}, failed {summary.fail_count}."
    )


def print_maintenance_summary(summary: MaintenanceSummary) -> None:
    """Print the outcome of a retention pass."""
    policy = summary.policy
    console.print(
        f"[muted]Policy: max age {policy.max_age_days} day(s), keep newest "
        f"{policy.min_keep_batches}, threshold {policy.size_threshold_gb} GB[/]"
    )
    console.print(
        f"Recycle bin: {summary.before.total_batches} batch(es), "
        f"{format_bytes(summary.before.total_bytes)}"
    )
    console.print(f"Status: {format_status(summary.status)}")

    if summary.candidate_count:
        verb = "Would delete" if summary.dry_run else "Deleted"
        console.print(
            f"{verb} {summary.deleted_batches} batch(es), {format_bytes(summary.deleted_bytes)} "
            f"(by age: {summary.selected_by_age}, by size: {summary.selected_by_size})"
        )

    for error in summary.errors:
        reason = f" ({error.invalid_reason})" if error.invalid_reason else ""
        print_warning(
            f"Batch {error.batch_id}: {error_type_label(error.error_type)}{reason}: {error.message}"
        )
