"""Stats command for inspecting the recycle bin.

This module provides the `recyclectl stats` command. It is read-only and
never creates the recycle bin.
"""

from typing import Annotated

import typer

from recyclectl.cli.display import print_json
from recyclectl.cli.types import get_config
from recyclectl.recycle.retention import collect_recycle_stats, select_batches_for_maintenance
from recyclectl.utils.formatting import console, format_bytes, format_timestamp

app = typer.Typer(
    name="stats",
    help="Show recycle bin usage.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def stats(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show recycle bin size, batch count and pending retention work.

    Examples:
        recyclectl stats
        recyclectl stats --json
    """
    if ctx.invoked_subcommand is not None:
        return

    config = get_config(ctx)
    policy = config.recycle_retention
    snapshot = collect_recycle_stats(
        config.index_file, config.recycle_dir, create_if_missing=False
    )
    selection = select_batches_for_maintenance(snapshot.batches, policy)

    if json_output:
        print_json(
            {
                **snapshot.to_dict(),
                "recycleRoot": str(config.recycle_dir),
                "policy": policy.model_dump(),
                "thresholdBytes": policy.threshold_bytes,
                "overThreshold": snapshot.total_bytes > policy.threshold_bytes,
                "dueBatches": len(selection.candidates),
            }
        )
        return

    console.print(f"[bold]Recycle bin[/] {config.recycle_dir}")
    console.print(f"  Batches:        {snapshot.total_batches}")
    console.print(f"  Size on disk:   {format_bytes(snapshot.total_bytes)}")
    console.print(f"  Indexed size:   {format_bytes(snapshot.indexed_bytes)}")
    console.print(f"  Oldest batch:   {format_timestamp(snapshot.oldest_time)}")
    console.print(
        f"  Threshold:      {policy.size_threshold_gb} GB"
        + (" [warning](exceeded)[/]" if snapshot.total_bytes > policy.threshold_bytes else "")
    )
    console.print(f"  Last retention: {format_timestamp(policy.last_run_at)}")
    if not policy.enabled:
        console.print("  [muted]Retention is disabled.[/]")
    elif selection.candidates:
        console.print(
            f"  [warning]{len(selection.candidates)} batch(es) due for deletion[/] "
            "(run `recyclectl maintain`)"
        )
