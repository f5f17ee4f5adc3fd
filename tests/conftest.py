"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from pathlib import Path

import pytest


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    """Application data root containing Documents/Profiles."""
    root = tmp_path / "AppData"
    (root / "Documents" / "Profiles").mkdir(parents=True)
    return root


@pytest.fixture
def profile_root(data_root: Path) -> Path:
    """Profiles directory that cleanup targets live under."""
    return data_root / "Documents" / "Profiles"


@pytest.fixture
def state_root(tmp_path: Path) -> Path:
    """State directory holding the audit log, recycle bin and lock."""
    return tmp_path / "state"


@pytest.fixture
def recycle_root(state_root: Path) -> Path:
    """Recycle bin root inside the state directory."""
    return state_root / "recycle-bin"


@pytest.fixture
def index_path(state_root: Path) -> Path:
    """Audit log path inside the state directory."""
    return state_root / "index.jsonl"


def make_cache_dir(parent: Path, name: str, size: int = 5) -> Path:
    """Create a directory holding one file of ``size`` bytes."""
    directory = parent / name
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "blob.bin").write_bytes(b"x" * size)
    return directory


@pytest.fixture
def cache_dir_factory():
    """Factory fixture wrapping make_cache_dir."""
    return make_cache_dir


@pytest.fixture
def config_file(tmp_path: Path, profile_root: Path, state_root: Path) -> Path:
    """config.toml pointing the CLI at the temporary profile and state roots."""
    path = tmp_path / "config.toml"
    path.write_text(
        f'profile_root = "{profile_root}"\nstate_root = "{state_root}"\n',
        encoding="utf-8",
    )
    return path
