"""Batches command for listing what can be restored.

This module provides the `recyclectl batches` command, which replays the
audit log and shows the batches whose items are still in the recycle bin.
"""

from typing import Annotated

import typer

from recyclectl.cli.display import create_batches_table, create_entries_table, print_json
from recyclectl.cli.types import get_config
from recyclectl.recycle.batches import list_restorable_batches
from recyclectl.utils.formatting import console, format_bytes, print_error, print_info

app = typer.Typer(
    name="batches",
    help="List restorable recycle bin batches.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def batches(
    ctx: typer.Context,
    batch_id: Annotated[
        str | None,
        typer.Option(
            "--batch",
            "-b",
            help="Show the items of one batch.",
        ),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of batches to show.",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """List batches that still have items in the recycle bin.

    Examples:
        recyclectl batches                 # Newest first
        recyclectl batches -b <batch-id>   # Items of one batch
        recyclectl batches --json
    """
    if ctx.invoked_subcommand is not None:
        return

    config = get_config(ctx)
    found = list_restorable_batches(config.index_file)

    if batch_id is not None:
        selected = [b for b in found if b.batch_id == batch_id]
        if not selected:
            print_error(f"No restorable batch with ID {batch_id}.")
            raise typer.Exit(code=1)
        if json_output:
            print_json(selected[0].to_dict())
        else:
            console.print(create_entries_table(selected[0]))
        return

    if not found:
        if json_output:
            print_json([])
        else:
            print_info("No restorable batches.")
        return

    shown = found[:limit] if limit else found
    if json_output:
        print_json([{k: v for k, v in b.to_dict().items() if k != "entries"} for b in shown])
        return

    console.print(create_batches_table(shown))
    total = sum(b.total_bytes for b in found)
    console.print(f"\n[dim]{len(found)} batch(es), {format_bytes(total)} restorable[/dim]")
    if limit and len(shown) < len(found):
        console.print(f"[dim](showing {len(shown)} of {len(found)}, limited to {limit})[/dim]")
