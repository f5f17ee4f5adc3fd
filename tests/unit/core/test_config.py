"""Unit tests for configuration loading and saving."""

import tomllib
from pathlib import Path

import pytest
from recyclectl.core.config import (
    GB,
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    RecyclectlConfig,
    RetentionPolicy,
    load_config,
    load_config_or_default,
    normalize_retention_policy,
    save_config,
)


class TestRetentionPolicy:
    """Tests for RetentionPolicy and its normalization."""

    def test_defaults(self) -> None:
        """Defaults are 30 days, 20 batches, 20 GB."""
        policy = RetentionPolicy()
        assert policy.enabled
        assert policy.max_age_days == 30
        assert policy.min_keep_batches == 20
        assert policy.size_threshold_gb == 20
        assert policy.last_run_at == 0
        assert policy.threshold_bytes == 20 * GB

    def test_normalize_keeps_valid_values(self) -> None:
        """Valid values pass through, numeric strings are accepted."""
        policy = normalize_retention_policy(
            {"enabled": False, "max_age_days": 7, "min_keep_batches": "3", "size_threshold_gb": 1}
        )
        assert not policy.enabled
        assert policy.max_age_days == 7
        assert policy.min_keep_batches == 3
        assert policy.size_threshold_gb == 1

    @pytest.mark.parametrize(
        "raw",
        [
            {"max_age_days": 0},
            {"max_age_days": -5},
            {"max_age_days": "soon"},
            {"max_age_days": True},
            {"max_age_days": None},
            {"max_age_days": float("inf")},
            {"max_age_days": [1]},
        ],
    )
    def test_normalize_falls_back_per_field(self, raw: dict) -> None:
        """A malformed field falls back without rejecting the policy."""
        policy = normalize_retention_policy({**raw, "min_keep_batches": 4})
        assert policy.max_age_days == 30
        assert policy.min_keep_batches == 4

    def test_normalize_uses_given_fallback(self) -> None:
        """Missing fields come from the fallback policy."""
        fallback = RetentionPolicy(max_age_days=9, min_keep_batches=0, size_threshold_gb=2)
        policy = normalize_retention_policy({"enabled": "yes"}, fallback=fallback)
        assert policy.enabled
        assert policy.max_age_days == 9
        assert policy.min_keep_batches == 0
        assert policy.size_threshold_gb == 2

    def test_normalize_non_mapping(self) -> None:
        """Anything other than a mapping yields the defaults."""
        assert normalize_retention_policy("nonsense") == RetentionPolicy()
        assert normalize_retention_policy(None) == RetentionPolicy()


class TestRecyclectlConfig:
    """Tests for the RecyclectlConfig model."""

    def test_rejects_unknown_keys(self) -> None:
        """Unknown top-level keys are errors."""
        with pytest.raises(ValueError):
            RecyclectlConfig.model_validate({"profile_rot": "/x"})

    def test_retention_is_normalized(self) -> None:
        """Malformed retention values never reject the config."""
        config = RecyclectlConfig.model_validate(
            {"recycle_retention": {"max_age_days": -1, "size_threshold_gb": 5}}
        )
        assert config.recycle_retention.max_age_days == 30
        assert config.recycle_retention.size_threshold_gb == 5

    def test_state_locations(self, tmp_path: Path) -> None:
        """Recycle bin and index default to the state directory."""
        config = RecyclectlConfig(state_root=str(tmp_path))
        assert config.state_dir == tmp_path
        assert config.recycle_dir == tmp_path / "recycle-bin"
        assert config.index_file == tmp_path / "index.jsonl"

    def test_explicit_locations(self, tmp_path: Path) -> None:
        """Explicit recycle root and index path win."""
        config = RecyclectlConfig(
            state_root=str(tmp_path),
            recycle_root=str(tmp_path / "bin"),
            index_path=str(tmp_path / "log.jsonl"),
        )
        assert config.recycle_dir == tmp_path / "bin"
        assert config.index_file == tmp_path / "log.jsonl"

    def test_roots(self, tmp_path: Path) -> None:
        """Cleanup roots default to profile root plus extra roots."""
        config = RecyclectlConfig(
            profile_root=str(tmp_path / "p"), extra_roots=[str(tmp_path / "x")]
        )
        assert config.profile_dir == tmp_path / "p"
        assert config.profile_roots == [tmp_path / "p", tmp_path / "x"]
        assert config.cleanup_roots == config.profile_roots

    def test_scan_roots_override_cleanup_roots(self, tmp_path: Path) -> None:
        """scan_roots replace the cleanup roots."""
        config = RecyclectlConfig(profile_root=str(tmp_path), scan_roots=[str(tmp_path / "s")])
        assert config.cleanup_roots == [tmp_path / "s"]

    def test_governance_root_inferred(self, profile_root: Path, data_root: Path) -> None:
        """The governance root is inferred from Documents/Profiles."""
        config = RecyclectlConfig(profile_root=str(profile_root))
        assert config.governance_roots == [data_root]

    def test_governance_root_explicit(self, tmp_path: Path) -> None:
        """An explicit governance root wins."""
        config = RecyclectlConfig(
            profile_root=str(tmp_path / "p"), governance_root=str(tmp_path / "g")
        )
        assert config.governance_roots == [tmp_path / "g"]

    def test_governance_falls_back_to_profile_roots(self, tmp_path: Path) -> None:
        """Without a data root governance uses the profile roots."""
        config = RecyclectlConfig(profile_root=str(tmp_path / "p"))
        assert config.governance_roots == [tmp_path / "p"]

    def test_home_expansion(self) -> None:
        """Paths honour a leading ~."""
        config = RecyclectlConfig(state_root="~/rstate")
        assert config.state_dir == Path.home() / "rstate"


class TestConfigIO:
    """Tests for load_config and save_config."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """load_config raises for a missing file."""
        with pytest.raises(ConfigNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_missing_file_defaults(self, tmp_path: Path) -> None:
        """load_config_or_default returns defaults for a missing file."""
        assert load_config_or_default(tmp_path / "missing.toml") == RecyclectlConfig()

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Bad TOML syntax raises ConfigParseError."""
        path = tmp_path / "config.toml"
        path.write_text("profile_root = [", encoding="utf-8")
        with pytest.raises(ConfigParseError):
            load_config(path)
        with pytest.raises(ConfigParseError):
            load_config_or_default(path)

    def test_invalid_schema(self, tmp_path: Path) -> None:
        """Schema violations raise ConfigError."""
        path = tmp_path / "config.toml"
        path.write_text('unknown = "x"\n', encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid config content"):
            load_config(path)

    def test_save_and_load(self, tmp_path: Path) -> None:
        """A saved config loads back unchanged."""
        path = tmp_path / "sub" / "config.toml"
        config = RecyclectlConfig(
            profile_root="/p",
            extra_roots=["/x"],
            recycle_retention=RetentionPolicy(max_age_days=7),
        )

        assert save_config(config, path) == path
        assert load_config(path) == config

    def test_save_omits_unset_fields(self, tmp_path: Path) -> None:
        """TOML has no null, so unset fields are left out."""
        path = tmp_path / "config.toml"
        save_config(RecyclectlConfig(profile_root="/p"), path)

        with open(path, "rb") as f:
            data = tomllib.load(f)
        assert data["profile_root"] == "/p"
        assert "state_root" not in data
        assert "extra_roots" not in data
        assert data["recycle_retention"]["max_age_days"] == 30

    def test_save_leaves_no_temp_files(self, tmp_path: Path) -> None:
        """The atomic write cleans up after itself."""
        save_config(RecyclectlConfig(), tmp_path / "config.toml")
        assert [p.name for p in tmp_path.iterdir()] == ["config.toml"]
