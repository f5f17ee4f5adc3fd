"""Unit tests for the config commands."""

import json
from pathlib import Path

from recyclectl.cli.main import app
from recyclectl.core.config import load_config
from typer.testing import CliRunner

runner = CliRunner()


class TestConfigPath:
    """Tests for recyclectl config path."""

    def test_prints_selected_path(self, tmp_path: Path) -> None:
        """The --config path is echoed back."""
        target = tmp_path / "cfg.toml"
        result = runner.invoke(app, ["--config", str(target), "config", "path"])
        assert result.exit_code == 0
        assert result.stdout.strip() == str(target)


class TestConfigInit:
    """Tests for recyclectl config init."""

    def test_writes_file(self, tmp_path: Path) -> None:
        """init writes profile and extra roots."""
        target = tmp_path / "cfg.toml"

        result = runner.invoke(
            app,
            [
                "--config",
                str(target),
                "config",
                "init",
                "-p",
                "/data/Profiles",
                "-e",
                "/mnt/a",
                "-e",
                "/mnt/b",
            ],
        )

        assert result.exit_code == 0
        config = load_config(target)
        assert config.profile_root == "/data/Profiles"
        assert config.extra_roots == ["/mnt/a", "/mnt/b"]
        assert config.recycle_retention.max_age_days == 30

    def test_keeps_existing(self, config_file: Path) -> None:
        """init does not overwrite without --force."""
        before = config_file.read_text(encoding="utf-8")
        result = runner.invoke(app, ["--config", str(config_file), "config", "init"])
        assert result.exit_code == 0
        assert "already exists" in result.stdout
        assert config_file.read_text(encoding="utf-8") == before

    def test_force_overwrites(self, config_file: Path) -> None:
        """init --force replaces the file."""
        result = runner.invoke(
            app, ["--config", str(config_file), "config", "init", "-f", "-p", "/x"]
        )
        assert result.exit_code == 0
        assert load_config(config_file).profile_root == "/x"
        assert load_config(config_file).state_root is None


class TestConfigShow:
    """Tests for recyclectl config show."""

    def test_json_includes_resolved(
        self, config_file: Path, profile_root: Path, state_root: Path
    ) -> None:
        """JSON output carries resolved locations."""
        result = runner.invoke(app, ["--config", str(config_file), "config", "show", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["profile_root"] == str(profile_root)
        assert data["resolved"]["recycle_root"] == str(state_root / "recycle-bin")
        assert data["resolved"]["index_path"] == str(state_root / "index.jsonl")
        assert data["resolved"]["cleanup_roots"] == [str(profile_root)]
        assert data["resolved"]["governance_roots"] == [str(profile_root.parent.parent)]

    def test_text(self, config_file: Path) -> None:
        """Text output is TOML followed by resolved locations."""
        result = runner.invoke(app, ["--config", str(config_file), "config", "show"])
        assert result.exit_code == 0
        assert "[recycle_retention]" in result.stdout
        assert "Resolved locations" in result.stdout

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """A broken config file is an error."""
        target = tmp_path / "cfg.toml"
        target.write_text("profile_root = [", encoding="utf-8")
        result = runner.invoke(app, ["--config", str(target), "config", "show"])
        assert result.exit_code == 1

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Unknown top-level keys are rejected."""
        target = tmp_path / "cfg.toml"
        target.write_text('colour = "blue"\n', encoding="utf-8")
        result = runner.invoke(app, ["--config", str(target), "config", "show"])
        assert result.exit_code == 1
