"""Unit tests for the recycle store (cleanup executor)."""

import errno
import re
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from recyclectl.core.audit import AuditLog
from recyclectl.models.batch import CleanupTarget
from recyclectl.recycle.moves import move_path
from recyclectl.recycle.store import (
    RecycleStore,
    execute_cleanup,
    generate_batch_id,
    recycle_item_path,
    sanitize_name,
)


class TestNaming:
    """Tests for batch IDs and recycle item names."""

    def test_batch_id_format(self) -> None:
        """Batch IDs are yyyymmdd-hhmmss-<6 hex>."""
        batch_id = generate_batch_id(datetime(2024, 3, 9, 7, 5, 1))
        assert re.fullmatch(r"20240309-070501-[0-9a-f]{6}", batch_id)

    def test_batch_ids_differ(self) -> None:
        """Two IDs in the same second still differ."""
        now = datetime(2024, 1, 1)
        assert len({generate_batch_id(now) for _ in range(20)}) > 1

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("/p/cache-2024.01", "cache-2024.01"),
            ("/p/a b?c", "a_b_c"),
            ("/p/微信", "__"),
            ("/p/dir/", "dir"),
            ("", "unknown"),
            ("/", "unknown"),
        ],
    )
    def test_sanitize_name(self, source: str, expected: str) -> None:
        """Unsafe characters become underscores, empty names become unknown."""
        assert sanitize_name(source) == expected

    def test_recycle_item_path(self, tmp_path: Path) -> None:
        """Items are numbered with a 4-digit 1-based sequence."""
        assert recycle_item_path(tmp_path, 7, "/p/x") == tmp_path / "0007_x"


class TestRecycleStore:
    """Tests for RecycleStore.execute."""

    def _store(
        self, recycle_root: Path, index_path: Path, roots: list[Path] | None, dry_run: bool = False
    ) -> RecycleStore:
        return RecycleStore(recycle_root, AuditLog(index_path), roots, dry_run=dry_run)

    def test_moves_target(
        self, profile_root: Path, recycle_root: Path, index_path: Path, cache_dir_factory
    ) -> None:
        """A valid target is moved into the batch directory and logged."""
        source = cache_dir_factory(profile_root, "cache")
        store = self._store(recycle_root, index_path, [profile_root])

        summary = store.execute([CleanupTarget(str(source), 5, {"accountId": "wx1"})])

        dest = recycle_root / summary.batch_id / "0001_cache"
        assert summary.success_count == 1
        assert summary.reclaimed_bytes == 5
        assert not source.exists()
        assert (dest / "blob.bin").read_bytes() == b"xxxxx"

        records = AuditLog(index_path).read_all()
        assert len(records) == 1
        assert records[0].status == "success"
        assert records[0].recycle_path == str(dest)
        assert records[0].batch_id == summary.batch_id
        assert records[0].scope == "cleanup_monthly"
        assert records[0].metadata["accountId"] == "wx1"

    def test_counts_always_add_up(
        self, tmp_path: Path, profile_root: Path, recycle_root: Path, index_path: Path,
        cache_dir_factory,
    ) -> None:
        """success + skipped + failed equals the number of targets."""
        ok = cache_dir_factory(profile_root, "ok")
        vetoed = cache_dir_factory(profile_root, "vetoed")
        outside = cache_dir_factory(tmp_path / "elsewhere", "outside")
        broken = cache_dir_factory(profile_root, "broken")
        targets = [
            CleanupTarget(str(ok), 5),
            CleanupTarget(str(profile_root / "missing"), 1),
            CleanupTarget(str(vetoed), 5),
            CleanupTarget(str(outside), 5),
            CleanupTarget(str(broken), 5),
        ]

        def flaky_move(src: str, dest: Path) -> None:
            if str(src) == str(broken):
                raise PermissionError(errno.EACCES, "Permission denied", str(src))
            move_path(src, dest)

        store = self._store(recycle_root, index_path, [profile_root])
        with patch("recyclectl.recycle.store.move_path", side_effect=flaky_move):
            summary = store.execute(
                targets,
                should_skip=lambda t: "skipped_whitelist" if t.path == str(vetoed) else None,
            )

        assert summary.success_count + summary.skipped_count + summary.failed_count == len(targets)
        assert summary.success_count == 1
        assert summary.skipped_count == 3
        assert summary.failed_count == 1
        assert summary.status_counts == {
            "success": 1,
            "skipped_missing_source": 1,
            "skipped_whitelist": 1,
            "skipped_invalid_path": 1,
            "failed": 1,
        }
        assert summary.errors[0].error_type == "permission_denied"
        assert len(AuditLog(index_path).read_all()) == len(targets)

    def test_policy_veto_records_error_type(
        self, profile_root: Path, recycle_root: Path, index_path: Path, cache_dir_factory
    ) -> None:
        """Policy vetoes are logged with kind policy_skipped."""
        source = cache_dir_factory(profile_root, "keep")
        store = self._store(recycle_root, index_path, [profile_root])

        store.execute([CleanupTarget(str(source), 5)], should_skip=lambda t: "skipped_recent")

        record = AuditLog(index_path).read_all()[0]
        assert record.status == "skipped_recent"
        assert record.error_type == "policy_skipped"
        assert source.exists()

    def test_outside_root_rejected_even_live(
        self, tmp_path: Path, profile_root: Path, recycle_root: Path, index_path: Path,
        cache_dir_factory,
    ) -> None:
        """A path outside every root is never moved."""
        outside = cache_dir_factory(tmp_path / "other", "secret")
        store = self._store(recycle_root, index_path, [profile_root])

        summary = store.execute([CleanupTarget(str(outside), 5)])

        assert summary.skipped_count == 1
        assert outside.exists()
        record = AuditLog(index_path).read_all()[0]
        assert record.status == "skipped_invalid_path"
        assert record.invalid_reason == "source_outside_allowed_root"
        assert record.error_type == "path_validation_failed"
        assert record.recycle_path is None

    def test_traversal_rejected(
        self, tmp_path: Path, profile_root: Path, recycle_root: Path, index_path: Path,
        cache_dir_factory,
    ) -> None:
        """.. segments cannot smuggle a path out of the root."""
        cache_dir_factory(tmp_path, "victim")
        sneaky = f"{profile_root}/../../../victim"
        store = self._store(recycle_root, index_path, [profile_root])

        summary = store.execute([CleanupTarget(sneaky, 5)])

        assert summary.status_counts == {"skipped_invalid_path": 1}
        assert (tmp_path / "victim").exists()

    def test_no_roots_disables_check(
        self, tmp_path: Path, recycle_root: Path, index_path: Path, cache_dir_factory
    ) -> None:
        """allowed_roots=None turns the containment check off."""
        source = cache_dir_factory(tmp_path / "anywhere", "c")
        summary = self._store(recycle_root, index_path, None).execute([CleanupTarget(str(source))])
        assert summary.success_count == 1

    def test_empty_roots_reject_everything(
        self, profile_root: Path, recycle_root: Path, index_path: Path, cache_dir_factory
    ) -> None:
        """An empty allow-list allows nothing."""
        source = cache_dir_factory(profile_root, "c")
        summary = self._store(recycle_root, index_path, []).execute([CleanupTarget(str(source))])
        assert summary.status_counts == {"skipped_invalid_path": 1}

    def test_dry_run_never_mutates(
        self, tmp_path: Path, profile_root: Path, recycle_root: Path, index_path: Path,
        cache_dir_factory,
    ) -> None:
        """Dry-run logs one dry_run record per existing target and touches nothing.

        Root containment is only checked before a real move, so a target
        outside the roots is still reported as dry_run.
        """
        sources = [cache_dir_factory(profile_root, f"c{i}") for i in range(3)]
        outside = cache_dir_factory(tmp_path / "other", "o")
        store = self._store(recycle_root, index_path, [profile_root], dry_run=True)

        summary = store.execute([CleanupTarget(str(s), 5) for s in [*sources, outside]])

        assert all(s.exists() for s in sources)
        assert outside.exists()
        assert not recycle_root.exists()
        assert summary.success_count == 4
        assert summary.reclaimed_bytes == 20
        records = AuditLog(index_path).read_all()
        assert [r.status for r in records] == ["dry_run"] * 4
        assert all(r.dry_run for r in records)
        assert all(r.recycle_path is None for r in records)

    def test_progress_can_stop(
        self, profile_root: Path, recycle_root: Path, index_path: Path, cache_dir_factory
    ) -> None:
        """Returning False from the progress callback stops between items."""
        sources = [cache_dir_factory(profile_root, f"c{i}") for i in range(3)]
        calls: list[tuple[int, int]] = []

        def on_progress(current: int, total: int) -> bool:
            calls.append((current, total))
            return current < 2

        summary = self._store(recycle_root, index_path, [profile_root]).execute(
            [CleanupTarget(str(s)) for s in sources], on_progress=on_progress
        )

        assert calls == [(1, 3), (2, 3)]
        assert summary.stopped_early
        assert summary.processed_count == 1
        assert sources[1].exists()

    def test_one_batch_per_run(
        self, profile_root: Path, recycle_root: Path, index_path: Path, cache_dir_factory
    ) -> None:
        """All items of one run share one batch ID and directory."""
        sources = [cache_dir_factory(profile_root, f"c{i}") for i in range(2)]
        summary = execute_cleanup(
            [CleanupTarget(str(s)) for s in sources],
            recycle_root=recycle_root,
            index_path=index_path,
            allowed_roots=[profile_root],
            scope="space_governance",
        )

        records = AuditLog(index_path).read_all()
        assert {r.batch_id for r in records} == {summary.batch_id}
        assert {r.scope for r in records} == {"space_governance"}
        assert sorted(p.name for p in (recycle_root / summary.batch_id).iterdir()) == [
            "0001_c0",
            "0002_c1",
        ]
