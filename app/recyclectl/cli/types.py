"""Shared types and utilities for CLI commands.

This module provides the config loader and lock guard used by every
command that touches a state directory.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum

import typer

from recyclectl.core.config import ConfigError, RecyclectlConfig, load_config_or_default
from recyclectl.core.lock import LockError, ProcessLock, acquire_lock
from recyclectl.utils.formatting import print_error, print_warning


class ConflictChoice(str, Enum):
    """Conflict handling options for the restore command."""

    ASK = "ask"
    SKIP = "skip"
    OVERWRITE = "overwrite"
    RENAME = "rename"


def get_config(ctx: typer.Context) -> RecyclectlConfig:
    """Load the configuration selected by the global ``--config`` option.

    A missing file yields the defaults; a broken one is fatal.

    Raises:
        typer.Exit: If the configuration cannot be loaded.
    """
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    try:
        return load_config_or_default(obj.get("config_path"))
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None


def is_quiet(ctx: typer.Context) -> bool:
    """Whether the global ``--quiet`` flag is set."""
    return bool(isinstance(ctx.obj, dict) and ctx.obj.get("quiet"))


@contextmanager
def state_lock(config: RecyclectlConfig, mode: str) -> Iterator[ProcessLock]:
    """Hold the process lock of the configured state directory.

    Raises:
        typer.Exit: If another instance holds the lock or the lock file
            cannot be created.
    """
    try:
        lock = acquire_lock(config.state_dir, mode)
    except LockError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None
    except OSError as e:
        print_error(f"Cannot create lock file: {e}")
        raise typer.Exit(code=1) from None

    with lock:
        if lock.recovered_from_stale:
            print_warning(
                f"Recovered stale lock left by pid {lock.lock_info.get('staleLockPid')}."
            )
        yield lock
