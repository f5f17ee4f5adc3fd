"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from recyclectl import __version__
from recyclectl.cli.commands import batches, clean, config, history, lock, maintain, restore, stats
from recyclectl.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="recyclectl",
    help="Reversible, audited cleanup with a batch recycle bin.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"recyclectl version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr through Rich when verbose."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to config.toml (default: ~/.config/recyclectl/config.toml).",
        ),
    ] = None,
) -> None:
    """recyclectl - move directories into an audited recycle bin and back.

    Every cleanup becomes a batch that can be listed, restored, or
    expired by the retention policy.
    """
    configure_logging(verbose)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config_path


# Register commands
app.add_typer(clean.app, name="clean")
app.add_typer(batches.app, name="batches")
app.add_typer(restore.app, name="restore")
app.add_typer(maintain.app, name="maintain")
app.add_typer(stats.app, name="stats")
app.add_typer(history.app, name="history")
app.add_typer(lock.app, name="lock")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
