"""Lock command for inspecting and clearing the process lock.

This module provides the `recyclectl lock` command, which shows who holds
the state directory lock and can remove a lock left behind by a crash.
"""

from typing import Annotated

import typer

from recyclectl.cli.display import print_json
from recyclectl.cli.types import get_config
from recyclectl.core.lock import break_lock, is_process_running, read_lock_info
from recyclectl.core.paths import get_lock_path
from recyclectl.utils.formatting import (
    console,
    format_timestamp,
    print_error,
    print_info,
    print_success,
)

app = typer.Typer(
    name="lock",
    help="Show or clear the process lock.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def lock(
    ctx: typer.Context,
    break_it: Annotated[
        bool,
        typer.Option(
            "--break",
            help="Remove the lock file if its owner is no longer running.",
        ),
    ] = False,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="With --break, remove the lock even if its owner is running.",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show the owner of the state directory lock.

    Examples:
        recyclectl lock
        recyclectl lock --break
    """
    if ctx.invoked_subcommand is not None:
        return

    config = get_config(ctx)
    lock_path = get_lock_path(config.state_dir)
    info = read_lock_info(lock_path)
    exists = lock_path.exists()
    alive = info is not None and is_process_running(info.get("pid"))

    if break_it:
        if not exists:
            print_info("No lock file present.")
            return
        if alive and not force:
            print_error(
                f"Lock is held by running process {info.get('pid') if info else '?'}; "
                "use --force to remove it anyway."
            )
            raise typer.Exit(code=1)
        if break_lock(config.state_dir):
            print_success(f"Removed lock file {lock_path}.")
        return

    if json_output:
        print_json({"path": str(lock_path), "exists": exists, "alive": alive, "owner": info})
        return

    if not exists:
        print_info(f"Not locked ({lock_path}).")
        return

    if info is None:
        console.print(f"[warning]Lock file {lock_path} is unreadable.[/]")
        return

    state = "[success]running[/]" if alive else "[warning]stale[/]"
    console.print(f"[bold]Lock[/] {lock_path}")
    console.print(f"  Owner pid: {info.get('pid')} ({state})")
    console.print(f"  Mode:      {info.get('mode', '-')}")
    console.print(f"  Host:      {info.get('hostname', '-')}")
    started = info.get("startedAt")
    console.print(f"  Started:   {format_timestamp(started if isinstance(started, int) else None)}")
