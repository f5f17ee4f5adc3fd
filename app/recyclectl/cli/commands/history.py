"""History command for viewing the audit log.

This module provides the `recyclectl history` command for viewing the
most recent cleanup, restore and retention records.
"""

from enum import Enum
from typing import Annotated

import typer
from rich.table import Table

from recyclectl.cli.display import print_json
from recyclectl.cli.types import get_config
from recyclectl.core.audit import AuditLog
from recyclectl.models.record import AuditAction, AuditRecord, RecordStatus
from recyclectl.utils.formatting import console, format_status, format_timestamp, print_info

app = typer.Typer(
    name="history",
    help="View the audit log.",
    invoke_without_command=True,
)


class ActionFilter(str, Enum):
    """Record types accepted by --action."""

    CLEANUP = AuditAction.CLEANUP.value
    RESTORE = AuditAction.RESTORE.value
    RECYCLE_MAINTAIN = AuditAction.RECYCLE_MAINTAIN.value


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    action: Annotated[
        ActionFilter | None,
        typer.Option(
            "--action",
            "-a",
            help="Only show records of this type.",
            case_sensitive=False,
        ),
    ] = None,
    batch_id: Annotated[
        str | None,
        typer.Option(
            "--batch",
            "-b",
            help="Only show records of this batch.",
        ),
    ] = None,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of records to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show the most recent audit records, newest first.

    Examples:
        recyclectl history                  # Last 20 records
        recyclectl history -a restore -n 50
        recyclectl history -b <batch-id> --json
    """
    if ctx.invoked_subcommand is not None:
        return

    config = get_config(ctx)
    audit_log = AuditLog(config.index_file)
    records = [
        r
        for r in audit_log.iter_records(action=action.value if action else None)
        if batch_id is None or r.batch_id == batch_id
    ]
    records.reverse()
    records = records[:limit] if limit > 0 else records

    if json_output:
        print_json([r.to_dict() for r in records])
        return

    if not records:
        print_info("No history entries found.")
        return

    _print_table(records)


def _print_table(records: list[AuditRecord]) -> None:
    """Print audit records as a Rich table."""
    table = Table(
        title="Audit Log",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Time", style="muted", no_wrap=True)
    table.add_column("Action")
    table.add_column("Status")
    table.add_column("Batch", style="dim", no_wrap=True)
    table.add_column("Path", overflow="fold")

    for record in records:
        path = record.source_path or record.metadata.get("recycle_root") or "-"
        status = format_status(record.status)
        if record.dry_run and record.status != RecordStatus.DRY_RUN:
            status += " [dry_run](dry-run)[/]"
        table.add_row(
            format_timestamp(record.time),
            record.action,
            status,
            record.batch_id or "-",
            str(path),
        )

    console.print(table)
