"""Clean command for moving targets into the recycle bin.

This module provides the `recyclectl clean` command. Targets come from a
JSON file produced by a scanner: either a list of target objects or an
object with a ``targets`` list. Each target needs a ``path`` and may
carry ``sizeBytes`` plus any descriptive fields.
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer

from recyclectl.cli.display import print_cleanup_summary, print_json
from recyclectl.cli.types import get_config, is_quiet, state_lock
from recyclectl.models.batch import DEFAULT_SCOPE, CleanupTarget
from recyclectl.recycle.store import execute_cleanup
from recyclectl.utils.formatting import (
    console,
    format_bytes,
    print_error,
    print_info,
    print_warning,
)

app = typer.Typer(
    name="clean",
    help="Move scanned targets into the recycle bin.",
    invoke_without_command=True,
)


def load_targets(path: Path) -> list[CleanupTarget]:
    """Load cleanup targets from a JSON file.

    Args:
        path: JSON file with a list of targets or ``{"targets": [...]}``.

    Returns:
        Parsed targets in file order.

    Raises:
        ValueError: If the file is not valid JSON or a target is malformed.
        OSError: If the file cannot be read.
    """
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("targets")
    if not isinstance(data, list):
        msg = "target file must contain a list of targets"
        raise ValueError(msg)

    targets: list[CleanupTarget] = []
    for idx, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            msg = f"target {idx} is not an object"
            raise ValueError(msg)
        try:
            targets.append(CleanupTarget.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            msg = f"target {idx} is invalid: {e}"
            raise ValueError(msg) from e
    return targets


@app.callback(invoke_without_command=True)
def clean(
    ctx: typer.Context,
    targets_file: Annotated[
        Path,
        typer.Option(
            "--targets",
            "-t",
            help="JSON file listing the targets to recycle.",
            exists=True,
            dir_okay=False,
        ),
    ],
    scope: Annotated[
        str,
        typer.Option(
            "--scope",
            "-s",
            help="Cleanup scope recorded on the batch (e.g. space_governance).",
        ),
    ] = DEFAULT_SCOPE,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Record what would be recycled without moving anything.",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt.",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the run summary as JSON.",
        ),
    ] = False,
) -> None:
    """Move the targets of a scan into a new recycle bin batch.

    Every target is checked against the allowed roots before it is
    moved. Each outcome is written to the audit log, so the batch can
    be restored later with `recyclectl restore`.

    Examples:
        recyclectl clean -t targets.json --dry-run
        recyclectl clean -t targets.json -y
    """
    if ctx.invoked_subcommand is not None:
        return

    config = get_config(ctx)
    try:
        targets = load_targets(targets_file)
    except (OSError, ValueError) as e:
        print_error(f"Cannot load targets from {targets_file}: {e}")
        raise typer.Exit(code=1) from None

    if not targets:
        print_info("No targets to clean.")
        return

    if not config.cleanup_roots:
        print_warning("No profile_root or scan_roots configured; every target will be rejected.")

    total_bytes = sum(t.size_bytes for t in targets)
    if not json_output and not is_quiet(ctx):
        console.print(
            f"{len(targets)} target(s), {format_bytes(total_bytes)} declared, "
            f"recycle bin: {config.recycle_dir}"
        )

    if not dry_run and not yes:
        confirmed = typer.confirm(
            f"Move {len(targets)} target(s) into the recycle bin?",
            default=False,
        )
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    with state_lock(config, "cleanup"):
        try:
            summary = execute_cleanup(
                targets,
                recycle_root=config.recycle_dir,
                index_path=config.index_file,
                dry_run=dry_run,
                allowed_roots=config.cleanup_roots,
                scope=scope,
            )
        except OSError as e:
            print_error(f"Cannot write audit log: {e}")
            raise typer.Exit(code=1) from None

    if json_output:
        print_json(summary.to_dict())
    else:
        print_cleanup_summary(summary)

    if summary.failed_count:
        raise typer.Exit(code=1)
