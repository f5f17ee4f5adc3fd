"""Unit tests for the audit log."""

import logging
from pathlib import Path

import pytest
from recyclectl.core.audit import AuditLog
from recyclectl.models.record import AuditAction, AuditRecord, RecordStatus


def _record(action: str = AuditAction.CLEANUP.value, **kwargs: object) -> AuditRecord:
    fields: dict = {"time": 1_700_000_000_000, "status": RecordStatus.SUCCESS.value}
    fields.update(kwargs)
    return AuditRecord(action=action, **fields)


class TestAuditLog:
    """Tests for AuditLog."""

    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        """A log that was never written has no records."""
        assert AuditLog(tmp_path / "index.jsonl").read_all() == []

    def test_append_creates_parents(self, tmp_path: Path) -> None:
        """append creates missing parent directories."""
        path = tmp_path / "a" / "b" / "index.jsonl"
        AuditLog(path).append(_record(batch_id="b1"))
        assert path.exists()

    def test_one_line_per_record(self, tmp_path: Path) -> None:
        """Each record is one newline-terminated line."""
        log = AuditLog(tmp_path / "index.jsonl")
        log.append(_record(batch_id="b1"))
        log.append(_record(batch_id="b2"))

        text = log.path.read_text(encoding="utf-8")
        assert text.endswith("\n")
        assert len(text.splitlines()) == 2

    def test_round_trip_in_order(self, tmp_path: Path) -> None:
        """Records read back in append order."""
        log = AuditLog(tmp_path / "index.jsonl")
        first = _record(batch_id="b1", source_path="/p/a", recycle_path="/r/b1/0001_a")
        second = _record(action=AuditAction.RESTORE.value, batch_id="b1", source_path="/p/a")
        log.append(first)
        log.append(second)

        records = log.read_all()
        assert [r.action for r in records] == ["cleanup", "restore"]
        assert records[0].recycle_path == "/r/b1/0001_a"

    def test_unicode_is_kept(self, tmp_path: Path) -> None:
        """Non-ASCII paths are written as-is."""
        log = AuditLog(tmp_path / "index.jsonl")
        log.append(_record(source_path="/p/微信"))
        assert "微信" in log.path.read_text(encoding="utf-8")
        assert log.read_all()[0].source_path == "/p/微信"

    def test_skips_corrupt_lines(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        """Unparsable lines, non-objects and records without action are skipped."""
        path = tmp_path / "index.jsonl"
        log = AuditLog(path)
        log.append(_record(batch_id="good1"))
        with path.open("a", encoding="utf-8") as f:
            f.write("{not json\n")
            f.write("[1, 2, 3]\n")
            f.write('{"status": "success"}\n')
            f.write("\n")
            f.write('{"action": "cleanup", "time": 1, "status": "succ')
            f.write("\n")
        log.append(_record(batch_id="good2"))

        with caplog.at_level(logging.DEBUG, logger="recyclectl.core.audit"):
            records = log.read_all()

        assert [r.batch_id for r in records] == ["good1", "good2"]
        assert "Skipping corrupt audit line 2" in caplog.text

    @pytest.mark.parametrize(
        "line",
        [
            '{"action": "cleanup", "time": 1e999, "status": "success"}',
            '{"action": "cleanup", "time": NaN, "status": "success"}',
            '{"action": "cleanup", "time": 1, "sizeBytes": -Infinity, "status": "success"}',
        ],
    )
    def test_skips_non_finite_numbers(self, tmp_path: Path, line: str) -> None:
        """A record whose time or size is not a finite number is skipped."""
        path = tmp_path / "index.jsonl"
        log = AuditLog(path)
        log.append(_record(batch_id="good"))
        with path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

        records = log.read_all()

        assert [r.batch_id for r in records] == ["good"]

    def test_iter_records_filters_by_action(self, tmp_path: Path) -> None:
        """iter_records can filter by action."""
        log = AuditLog(tmp_path / "index.jsonl")
        log.append(_record())
        log.append(_record(action=AuditAction.RESTORE.value))
        log.append(_record(action=AuditAction.RECYCLE_MAINTAIN.value))

        restores = list(log.iter_records(action=AuditAction.RESTORE.value))
        assert [r.action for r in restores] == ["restore"]

    def test_unknown_fields_survive(self, tmp_path: Path) -> None:
        """Fields written by other tools are kept in metadata."""
        path = tmp_path / "index.jsonl"
        path.write_text(
            '{"action": "cleanup", "time": 5, "status": "success", "accountId": "wx1"}\n',
            encoding="utf-8",
        )
        record = AuditLog(path).read_all()[0]
        assert record.metadata == {"accountId": "wx1"}
        assert record.to_dict()["accountId"] == "wx1"
