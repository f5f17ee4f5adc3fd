"""Unit tests for the clean command."""

import json
import os
from pathlib import Path

import pytest
from recyclectl.cli.commands.clean import load_targets
from recyclectl.cli.main import app
from recyclectl.core.audit import AuditLog
from recyclectl.core.paths import get_lock_path
from typer.testing import CliRunner

runner = CliRunner()


def _write_targets(tmp_path: Path, targets: object) -> Path:
    path = tmp_path / "targets.json"
    path.write_text(json.dumps(targets), encoding="utf-8")
    return path


class TestLoadTargets:
    """Tests for load_targets."""

    def test_list_form(self, tmp_path: Path) -> None:
        """A bare list of targets is accepted."""
        path = _write_targets(tmp_path, [{"path": "/p/a", "sizeBytes": 7, "account": "acct1"}])

        (target,) = load_targets(path)

        assert target.path == "/p/a"
        assert target.size_bytes == 7
        assert target.metadata == {"account": "acct1"}

    def test_object_form(self, tmp_path: Path) -> None:
        """An object with a targets list is accepted."""
        path = _write_targets(tmp_path, {"targets": [{"path": "/p/a"}, {"path": "/p/b"}]})
        assert [t.path for t in load_targets(path)] == ["/p/a", "/p/b"]

    @pytest.mark.parametrize(
        "payload",
        [{"nope": []}, ["not-an-object"], [{"sizeBytes": 1}], [{"path": "/p", "sizeBytes": -1}]],
    )
    def test_invalid(self, tmp_path: Path, payload: object) -> None:
        """Malformed target files raise ValueError."""
        with pytest.raises(ValueError):
            load_targets(_write_targets(tmp_path, payload))


class TestCleanCommand:
    """Tests for recyclectl clean."""

    def test_dry_run_moves_nothing(
        self, tmp_path: Path, config_file: Path, profile_root: Path, cache_dir_factory
    ) -> None:
        """--dry-run records the batch without touching the source."""
        source = cache_dir_factory(profile_root, "Cache")
        targets = _write_targets(tmp_path, [{"path": str(source), "sizeBytes": 5}])

        result = runner.invoke(
            app, ["--config", str(config_file), "clean", "-t", str(targets), "-n", "--json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["dry_run"] is True
        assert data["success_count"] == 1
        assert data["status_counts"] == {"dry_run": 1}
        assert source.exists()

    def test_recycles_with_yes(
        self,
        tmp_path: Path,
        config_file: Path,
        profile_root: Path,
        index_path: Path,
        recycle_root: Path,
        cache_dir_factory,
    ) -> None:
        """-y moves the target into the recycle bin."""
        source = cache_dir_factory(profile_root, "Cache")
        targets = _write_targets(tmp_path, [{"path": str(source), "sizeBytes": 5}])

        result = runner.invoke(
            app, ["--config", str(config_file), "clean", "-t", str(targets), "-y"]
        )

        assert result.exit_code == 0
        assert "Recycled 1 item(s)" in result.stdout
        assert not source.exists()
        (record,) = AuditLog(index_path).read_all()
        assert record.status == "success"
        assert Path(record.recycle_path).parent.parent == recycle_root

    def test_declined_confirmation(
        self, tmp_path: Path, config_file: Path, profile_root: Path, cache_dir_factory
    ) -> None:
        """Answering no aborts without moving anything."""
        source = cache_dir_factory(profile_root, "Cache")
        targets = _write_targets(tmp_path, [{"path": str(source)}])

        result = runner.invoke(
            app, ["--config", str(config_file), "clean", "-t", str(targets)], input="n\n"
        )

        assert result.exit_code == 0
        assert "Aborted" in result.stdout
        assert source.exists()

    def test_outside_root_is_skipped(
        self, tmp_path: Path, config_file: Path, cache_dir_factory
    ) -> None:
        """Targets outside the profile root are refused."""
        source = cache_dir_factory(tmp_path / "elsewhere", "Cache")
        targets = _write_targets(tmp_path, [{"path": str(source)}])

        result = runner.invoke(
            app, ["--config", str(config_file), "clean", "-t", str(targets), "-y", "--json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["status_counts"] == {"skipped_invalid_path": 1}
        assert source.exists()

    def test_empty_target_list(self, tmp_path: Path, config_file: Path) -> None:
        """An empty target list is a no-op."""
        targets = _write_targets(tmp_path, {"targets": []})
        result = runner.invoke(app, ["--config", str(config_file), "clean", "-t", str(targets)])
        assert result.exit_code == 0
        assert "No targets to clean" in result.stdout

    def test_invalid_target_file(self, tmp_path: Path, config_file: Path) -> None:
        """A malformed target file exits with an error."""
        targets = tmp_path / "targets.json"
        targets.write_text("{not json", encoding="utf-8")
        result = runner.invoke(app, ["--config", str(config_file), "clean", "-t", str(targets)])
        assert result.exit_code == 1

    def test_refuses_while_locked(
        self,
        tmp_path: Path,
        config_file: Path,
        state_root: Path,
        profile_root: Path,
        cache_dir_factory,
    ) -> None:
        """A live lock holder blocks the run."""
        source = cache_dir_factory(profile_root, "Cache")
        targets = _write_targets(tmp_path, [{"path": str(source)}])
        lock_path = get_lock_path(state_root)
        lock_path.parent.mkdir(parents=True)
        lock_path.write_text(json.dumps({"pid": os.getpid(), "mode": "restore"}), encoding="utf-8")

        result = runner.invoke(
            app, ["--config", str(config_file), "clean", "-t", str(targets), "-y"]
        )

        assert result.exit_code == 1
        assert source.exists()
