"""Configuration model and I/O.

This module provides the configuration model for recyclectl and the
functions that load and save it. Configuration is stored in
~/.config/recyclectl/config.toml.

Example:
    profile_root = "~/Library/Containers/app/Data/Documents/Profiles"
    extra_roots = ["/Volumes/External/AppFiles"]

    [recycle_retention]
    enabled = true
    max_age_days = 30
    min_keep_batches = 20
    size_threshold_gb = 20
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from recyclectl.core.paths import (
    expand_home,
    get_config_path,
    get_index_path,
    get_recycle_root,
    get_state_dir,
    infer_data_root,
)

logger = logging.getLogger(__name__)

GB = 1024 * 1024 * 1024


class RetentionPolicy(BaseModel):
    """Rules for permanently deleting recycle bin batches.

    Attributes:
        enabled: Whether retention passes delete anything at all.
        max_age_days: Batches at least this many whole days old are evicted.
        min_keep_batches: The newest N batches are never evicted.
        size_threshold_gb: Evict oldest batches while the bin is larger.
        last_run_at: Epoch milliseconds of the last live retention pass.
    """

    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    max_age_days: Annotated[int, Field(ge=1)] = 30
    min_keep_batches: Annotated[int, Field(ge=0)] = 20
    size_threshold_gb: Annotated[int, Field(ge=1)] = 20
    last_run_at: Annotated[int, Field(ge=0)] = 0

    @property
    def threshold_bytes(self) -> int:
        """Size threshold in bytes."""
        return self.size_threshold_gb * GB


def _coerce_int(value: object, fallback: int, minimum: int) -> int:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        try:
            num = int(value)
        except (ValueError, OverflowError):
            return fallback
    elif isinstance(value, str):
        try:
            num = int(value.strip())
        except ValueError:
            return fallback
    else:
        return fallback
    return num if num >= minimum else fallback


def normalize_retention_policy(
    raw: object,
    fallback: RetentionPolicy | None = None,
) -> RetentionPolicy:
    """Build a RetentionPolicy, replacing malformed fields with fallbacks.

    Unlike strict validation, a bad value for one field never rejects the
    whole policy: it is replaced by the fallback's value for that field.

    Args:
        raw: Mapping (or RetentionPolicy) read from config or the CLI.
        fallback: Policy supplying values for missing or invalid fields.

    Returns:
        A valid RetentionPolicy.
    """
    base = fallback or RetentionPolicy()
    if isinstance(raw, RetentionPolicy):
        return raw
    source: dict[str, Any] = raw if isinstance(raw, dict) else {}

    enabled = source.get("enabled")
    return RetentionPolicy(
        enabled=enabled if isinstance(enabled, bool) else base.enabled,
        max_age_days=_coerce_int(source.get("max_age_days"), base.max_age_days, 1),
        min_keep_batches=_coerce_int(source.get("min_keep_batches"), base.min_keep_batches, 0),
        size_threshold_gb=_coerce_int(source.get("size_threshold_gb"), base.size_threshold_gb, 1),
        last_run_at=_coerce_int(source.get("last_run_at"), base.last_run_at, 0),
    )


class RecyclectlConfig(BaseModel):
    """Configuration for recyclectl.

    Attributes:
        profile_root: Directory holding the application's profiles.
            Restores of ordinary batches must land under it (or an extra root).
        scan_roots: Roots that cleanup sources must lie under.
            Defaults to the profile root plus extra roots.
        extra_roots: Additional allowed roots (e.g. external file storage).
        governance_root: Root for whole-system governance restores. Inferred
            from a ``.../Documents/Profiles`` profile root when unset.
        state_root: Directory holding the audit log, recycle bin and lock.
        recycle_root: Recycle bin location (default: <state_root>/recycle-bin).
        index_path: Audit log location (default: <state_root>/index.jsonl).
        recycle_retention: Retention policy for the recycle bin.
    """

    model_config = ConfigDict(extra="forbid")

    profile_root: Annotated[str | None, Field(description="Profiles directory")] = None
    scan_roots: Annotated[list[str], Field(description="Allowed cleanup roots")] = []
    extra_roots: Annotated[list[str], Field(description="Extra allowed roots")] = []
    governance_root: Annotated[str | None, Field(description="Governance restore root")] = None
    state_root: Annotated[str | None, Field(description="State directory")] = None
    recycle_root: Annotated[str | None, Field(description="Recycle bin directory")] = None
    index_path: Annotated[str | None, Field(description="Audit log path")] = None
    recycle_retention: RetentionPolicy = RetentionPolicy()

    @field_validator("recycle_retention", mode="before")
    @classmethod
    def _normalize_retention(cls, v: object) -> RetentionPolicy:
        """Replace malformed retention fields with defaults."""
        return normalize_retention_policy(v)

    @property
    def state_dir(self) -> Path:
        """Resolved state directory."""
        return expand_home(self.state_root) if self.state_root else get_state_dir()

    @property
    def recycle_dir(self) -> Path:
        """Resolved recycle bin root."""
        if self.recycle_root:
            return expand_home(self.recycle_root)
        return get_recycle_root(self.state_dir)

    @property
    def index_file(self) -> Path:
        """Resolved audit log path."""
        if self.index_path:
            return expand_home(self.index_path)
        return get_index_path(self.state_dir)

    @property
    def profile_dir(self) -> Path | None:
        """Resolved profiles directory, if configured."""
        return expand_home(self.profile_root) if self.profile_root else None

    @property
    def extra_dirs(self) -> list[Path]:
        """Resolved extra roots."""
        return [expand_home(r) for r in self.extra_roots]

    @property
    def profile_roots(self) -> list[Path]:
        """Roots ordinary restores may write into."""
        return ([self.profile_dir] if self.profile_dir else []) + self.extra_dirs

    @property
    def cleanup_roots(self) -> list[Path]:
        """Roots cleanup sources must lie under."""
        if self.scan_roots:
            return [expand_home(r) for r in self.scan_roots]
        return self.profile_roots

    @property
    def governance_roots(self) -> list[Path]:
        """Roots governance restores may write into.

        Falls back to the profile roots when no data root is configured
        or can be inferred.
        """
        root: Path | None = None
        if self.governance_root:
            root = expand_home(self.governance_root)
        elif self.profile_root:
            root = infer_data_root(self.profile_root)
        if root is None:
            return self.profile_roots
        return [root] + self.extra_dirs


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> RecyclectlConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated RecyclectlConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return RecyclectlConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> RecyclectlConfig:
    """Load configuration, falling back to defaults if the file is missing.

    Raises:
        ConfigParseError: If the file exists but is not valid TOML.
        ConfigError: If the file exists but doesn't match the schema.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        logger.debug("No config file found, using defaults")
        return RecyclectlConfig()


def save_config(config: RecyclectlConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The RecyclectlConfig object to save.
        path: Path to save the config. If None, uses the default path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def _config_to_dict(config: RecyclectlConfig) -> dict[str, object]:
    """Convert RecyclectlConfig to a dictionary for TOML serialization.

    TOML has no null, so unset optional fields are left out.
    """
    result: dict[str, object] = {
        key: value
        for key, value in config.model_dump(exclude={"recycle_retention"}).items()
        if value is not None and value != []
    }
    result["recycle_retention"] = config.recycle_retention.model_dump()
    return result
