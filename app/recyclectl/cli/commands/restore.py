"""Restore command for moving a recycled batch back into place.

This module provides the `recyclectl restore` command. Without a batch
ID the newest restorable batch is used.
"""

from typing import Annotated

import typer

from recyclectl.cli.display import create_entries_table, print_json, print_restore_summary
from recyclectl.cli.types import ConflictChoice, get_config, state_lock
from recyclectl.recycle.batches import list_restorable_batches
from recyclectl.recycle.restore import (
    ConflictDecision,
    ConflictResolver,
    ConflictStrategy,
    RestoreConflict,
    RiskDecision,
    RiskPrompt,
    restore_batch,
)
from recyclectl.utils.formatting import console, print_error, print_info

app = typer.Typer(
    name="restore",
    help="Restore a recycle bin batch.",
    invoke_without_command=True,
)

_ANSWERS: dict[str, ConflictStrategy] = {
    "s": ConflictStrategy.SKIP,
    "o": ConflictStrategy.OVERWRITE,
    "r": ConflictStrategy.RENAME,
}


def parse_conflict_answer(answer: str) -> ConflictDecision:
    """Turn a prompt answer into a ConflictDecision.

    The first letter picks the strategy (s/o/r); a trailing ``!`` applies
    it to every later conflict. Anything unrecognized means skip.
    """
    text = answer.strip().lower()
    apply_to_all = text.endswith("!")
    strategy = _ANSWERS.get(text[:1], ConflictStrategy.SKIP)
    return ConflictDecision(strategy=strategy, apply_to_all=apply_to_all)


def prompt_conflict(conflict: RestoreConflict) -> ConflictDecision:
    """Ask the user how to handle an occupied destination."""
    console.print(f"[warning]Destination already exists:[/] {conflict.original_path}")
    answer = typer.prompt(
        "[s]kip, [o]verwrite or [r]ename? (append ! to apply to all)",
        default="s",
    )
    return parse_conflict_answer(answer)


def build_resolver(choice: ConflictChoice) -> ConflictResolver:
    """Build the conflict resolver for a --on-conflict choice."""
    if choice is ConflictChoice.ASK:
        return prompt_conflict
    decision = ConflictDecision(strategy=ConflictStrategy(choice.value), apply_to_all=True)
    return lambda _conflict: decision


def parse_risk_answer(answer: str) -> RiskDecision:
    """Turn a prompt answer into a RiskDecision.

    Only an answer starting with ``y`` allows the restore; a trailing ``!``
    reuses the answer for every later entry outside the profile root.
    """
    text = answer.strip().lower()
    return RiskDecision(allow=text.startswith("y"), apply_to_all=text.endswith("!"))


def prompt_risk(prompt: RiskPrompt) -> RiskDecision:
    """Ask the user before restoring outside the profile root."""
    console.print(
        f"[warning]Destination is outside the profile root {prompt.profile_root}:[/] "
        f"{prompt.original_path}"
    )
    answer = typer.prompt("Restore anyway? [y]es or [n]o (append ! to apply to all)", default="n")
    return parse_risk_answer(answer)


@app.callback(invoke_without_command=True)
def restore(
    ctx: typer.Context,
    batch_id: Annotated[
        str | None,
        typer.Option(
            "--batch",
            "-b",
            help="Batch to restore (default: newest).",
        ),
    ] = None,
    on_conflict: Annotated[
        ConflictChoice,
        typer.Option(
            "--on-conflict",
            help="What to do when a destination already exists.",
            case_sensitive=False,
        ),
    ] = ConflictChoice.ASK,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Record what would be restored without moving anything.",
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
    """Move the items of a batch back to their original locations.

    Destinations must lie under the profile root or an extra root
    (governance batches: under the governance root). Occupied
    destinations are skipped, overwritten or renamed. Restoring outside
    the profile root asks for confirmation unless --yes or --dry-run is given.

    Examples:
        recyclectl restore                          # Newest batch
        recyclectl restore -b <batch-id> --dry-run
        recyclectl restore --on-conflict rename -y
    """
    if ctx.invoked_subcommand is not None:
        return

    config = get_config(ctx)

    with state_lock(config, "restore"):
        found = list_restorable_batches(config.index_file)
        if not found:
            print_info("No restorable batches.")
            return

        if batch_id is None:
            batch = found[0]
        else:
            matches = [b for b in found if b.batch_id == batch_id]
            if not matches:
                print_error(f"No restorable batch with ID {batch_id}.")
                raise typer.Exit(code=1)
            batch = matches[0]

        if not json_output:
            console.print(create_entries_table(batch))

        if not dry_run and not yes:
            confirmed = typer.confirm(
                f"Restore {len(batch.entries)} item(s) from batch {batch.batch_id}?",
                default=False,
            )
            if not confirmed:
                print_info("Aborted.")
                raise typer.Exit(code=0)

        try:
            summary = restore_batch(
                batch,
                index_path=config.index_file,
                dry_run=dry_run,
                profile_root=config.profile_dir,
                extra_roots=config.extra_dirs,
                governance_roots=config.governance_roots,
                recycle_root=config.recycle_dir,
                on_conflict=build_resolver(on_conflict),
                on_risk_confirm=None if yes or dry_run else prompt_risk,
            )
        except OSError as e:
            print_error(f"Cannot write audit log: {e}")
            raise typer.Exit(code=1) from None

    if json_output:
        print_json(summary.to_dict())
    else:
        print_restore_summary(summary)

    if summary.fail_count:
        raise typer.Exit(code=1)
