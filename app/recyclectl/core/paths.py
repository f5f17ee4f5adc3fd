"""XDG-compliant path management for recyclectl.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and state storage, plus the fixed file
names used inside a state directory.

XDG defaults:
- Config: ~/.config/recyclectl/
- State: ~/.local/state/recyclectl/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "recyclectl"

INDEX_FILENAME = "index.jsonl"
RECYCLE_DIRNAME = "recycle-bin"
LOCK_FILENAME = ".lockfile"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/recyclectl/ (or XDG_CONFIG_HOME/recyclectl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    The state directory holds the audit log, the recycle bin and the
    process lock file.

    Returns:
        Path to ~/.local/state/recyclectl/ (or XDG_STATE_HOME/recyclectl/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_config_path() -> Path:
    """Get the default config file path.

    Returns:
        Path to ~/.config/recyclectl/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/recyclectl/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def get_index_path(state_root: Path) -> Path:
    """Get the audit log path inside a state directory."""
    return state_root / INDEX_FILENAME


def get_recycle_root(state_root: Path) -> Path:
    """Get the recycle bin root inside a state directory."""
    return state_root / RECYCLE_DIRNAME


def get_lock_path(state_root: Path) -> Path:
    """Get the lock file path for a state directory.

    The lock path is resolved to an absolute path so two invocations
    using different spellings of the same directory contend on one file.
    """
    return Path(os.path.abspath(state_root)) / LOCK_FILENAME


def expand_home(raw: str | Path) -> Path:
    """Expand a leading ``~`` in a user-supplied path.

    Args:
        raw: Path string or Path, possibly starting with ``~``.

    Returns:
        Path with the home directory expanded.
    """
    return Path(raw).expanduser()


def infer_data_root(profile_root: str | Path) -> Path | None:
    """Infer the application data root from a profiles directory.

    Profiles usually live at ``<data root>/Documents/Profiles``. The data
    root is the directory above that marker and is used as the governance
    restore root when none is configured.

    Args:
        profile_root: Configured profiles directory.

    Returns:
        The inferred data root, or None if the layout does not match.
    """
    normalized = Path(os.path.abspath(expand_home(profile_root)))
    parts = normalized.parts
    for idx in range(len(parts) - 2, 0, -1):
        if parts[idx] == "Documents" and parts[idx + 1] == "Profiles":
            return Path(*parts[:idx])
    return None
