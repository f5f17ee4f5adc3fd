"""Config commands for creating and inspecting config.toml.

Provides `recyclectl config show`, `recyclectl config init` and
`recyclectl config path`.
"""

from pathlib import Path
from typing import Annotated

import tomli_w
import typer

from recyclectl.cli.display import print_json
from recyclectl.cli.types import get_config
from recyclectl.core.config import ConfigError, RecyclectlConfig, save_config
from recyclectl.core.paths import get_config_path
from recyclectl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Create and inspect the configuration file.",
    invoke_without_command=True,
    no_args_is_help=True,
)


def _selected_path(ctx: typer.Context) -> Path:
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    return obj.get("config_path") or get_config_path()


@app.command()
def path(ctx: typer.Context) -> None:
    """Print the config file location."""
    console.print(str(_selected_path(ctx)), markup=False, highlight=False, soft_wrap=True)


@app.command()
def show(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON."),
    ] = False,
) -> None:
    """Show the effective configuration and resolved locations."""
    config = get_config(ctx)

    if json_output:
        print_json(
            {
                **config.model_dump(),
                "resolved": {
                    "state_root": str(config.state_dir),
                    "recycle_root": str(config.recycle_dir),
                    "index_path": str(config.index_file),
                    "cleanup_roots": [str(p) for p in config.cleanup_roots],
                    "governance_roots": [str(p) for p in config.governance_roots],
                },
            }
        )
        return

    data = {k: v for k, v in config.model_dump().items() if v is not None and v != []}
    console.print(tomli_w.dumps(data), markup=False, highlight=False)
    console.print("[muted]Resolved locations:[/]")
    console.print(f"  state dir:   {config.state_dir}")
    console.print(f"  recycle bin: {config.recycle_dir}")
    console.print(f"  audit log:   {config.index_file}")


@app.command()
def init(
    ctx: typer.Context,
    profile_root: Annotated[
        str | None,
        typer.Option("--profile-root", "-p", help="Profiles directory to manage."),
    ] = None,
    extra_root: Annotated[
        list[str] | None,
        typer.Option("--extra-root", "-e", help="Additional allowed root (repeatable)."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file with default retention settings."""
    config_path = _selected_path(ctx)
    if config_path.exists() and not force:
        print_info(f"Config already exists: {config_path} (use --force to overwrite)")
        return

    config = RecyclectlConfig(profile_root=profile_root, extra_roots=extra_root or [])
    try:
        saved = save_config(config, config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None
    print_success(f"Wrote {saved}")
