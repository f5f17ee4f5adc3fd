"""Maintain command for applying the retention policy.

This module provides the `recyclectl maintain` command, which permanently
deletes recycle bin batches that are too old or push the bin over its
size threshold.
"""

from typing import Annotated, Any

import typer

from recyclectl.cli.display import print_json, print_maintenance_summary
from recyclectl.cli.types import get_config, state_lock
from recyclectl.core.config import (
    ConfigError,
    RecyclectlConfig,
    RetentionPolicy,
    normalize_retention_policy,
    save_config,
)
from recyclectl.core.paths import get_config_path
from recyclectl.models.record import RecordStatus, now_ms
from recyclectl.recycle.retention import (
    collect_recycle_stats,
    maintain_recycle_bin,
    select_batches_for_maintenance,
)
from recyclectl.utils.formatting import print_error, print_info, print_warning

app = typer.Typer(
    name="maintain",
    help="Apply the recycle bin retention policy.",
    invoke_without_command=True,
)


def build_policy(
    config: RecyclectlConfig,
    max_age_days: int | None,
    min_keep: int | None,
    size_threshold_gb: int | None,
) -> RetentionPolicy:
    """Overlay command-line overrides on the configured policy."""
    overrides: dict[str, Any] = config.recycle_retention.model_dump()
    if max_age_days is not None:
        overrides["max_age_days"] = max_age_days
    if min_keep is not None:
        overrides["min_keep_batches"] = min_keep
    if size_threshold_gb is not None:
        overrides["size_threshold_gb"] = size_threshold_gb
    return normalize_retention_policy(overrides, fallback=config.recycle_retention)


def _record_last_run(ctx: typer.Context, config: RecyclectlConfig) -> None:
    """Store the time of a live pass in the config file, if there is one."""
    config_path = ctx.obj.get("config_path") if isinstance(ctx.obj, dict) else None
    path = config_path or get_config_path()
    if not path.exists():
        return
    updated = config.model_copy(
        update={
            "recycle_retention": config.recycle_retention.model_copy(
                update={"last_run_at": now_ms()}
            )
        }
    )
    try:
        save_config(updated, path)
    except ConfigError as e:
        print_warning(f"Could not record last run time: {e}")


@app.callback(invoke_without_command=True)
def maintain(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show which batches would be deleted.",
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
    max_age_days: Annotated[
        int | None,
        typer.Option(
            "--max-age-days",
            help="Override the maximum batch age in days.",
        ),
    ] = None,
    min_keep: Annotated[
        int | None,
        typer.Option(
            "--min-keep",
            help="Override the number of newest batches always kept.",
        ),
    ] = None,
    size_threshold_gb: Annotated[
        int | None,
        typer.Option(
            "--size-threshold-gb",
            help="Override the recycle bin size threshold in GB.",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the run summary as JSON.",
        ),
    ] = False,
) -> None:
    """Permanently delete batches selected by the retention policy.

    The newest batches are always kept. Older batches are deleted once
    they exceed the maximum age, and further old batches are deleted
    while the bin is larger than the size threshold.

    Examples:
        recyclectl maintain --dry-run
        recyclectl maintain --max-age-days 14 -y
    """
    if ctx.invoked_subcommand is not None:
        return

    config = get_config(ctx)
    policy = build_policy(config, max_age_days, min_keep, size_threshold_gb)

    with state_lock(config, "recycle_maintain"):
        if not dry_run and not yes and policy.enabled:
            stats = collect_recycle_stats(
                config.index_file, config.recycle_dir, create_if_missing=False
            )
            selection = select_batches_for_maintenance(stats.batches, policy)
            if not selection.candidates:
                print_info("No batches are due for deletion.")
            else:
                confirmed = typer.confirm(
                    f"Permanently delete {len(selection.candidates)} batch(es)?",
                    default=False,
                )
                if not confirmed:
                    print_info("Aborted.")
                    raise typer.Exit(code=0)

        try:
            summary = maintain_recycle_bin(
                config.index_file,
                config.recycle_dir,
                policy=policy,
                dry_run=dry_run,
            )
        except OSError as e:
            print_error(f"Cannot write audit log: {e}")
            raise typer.Exit(code=1) from None

    if not dry_run and policy.enabled:
        _record_last_run(ctx, config)

    if json_output:
        print_json(summary.to_dict())
    else:
        print_maintenance_summary(summary)

    if summary.status == RecordStatus.PARTIAL_FAILED:
        raise typer.Exit(code=1)
