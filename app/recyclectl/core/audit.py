"""Append-only audit log.

This module provides the AuditLog class for persisting and replaying
audit records in a JSONL file. The log is the only durable description of
what was moved where; restorable batches and retention decisions are all
derived from it.
"""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

from recyclectl.models.record import AuditRecord

logger = logging.getLogger(__name__)


class AuditLog:
    """Append-only JSONL audit log.

    Each line is a complete JSON object describing one AuditRecord. Lines
    are only ever appended; nothing is rewritten or removed.

    Attributes:
        path: Location of the log file.
    """

    def __init__(self, path: Path) -> None:
        """Initialize AuditLog.

        Args:
            path: Location of the JSONL file. It is created on first append.
        """
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Path to the JSONL file."""
        return self._path

    def append(self, record: AuditRecord) -> None:
        """Append one record to the log.

        Creates the file and parent directories if they don't exist. The
        JSON text and its trailing newline are written with a single call
        so a crash can never leave two records sharing one line.

        Args:
            record: The record to append.

        Raises:
            OSError: If the file cannot be written.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)

        line = record.to_json_line() + "\n"

        with self._path.open(mode="a", encoding="utf-8") as f:
            f.write(line)
            f.flush()

    def read_all(self) -> list[AuditRecord]:
        """Read every record in file order.

        Blank lines, unparsable lines, and JSON values that are not records
        are skipped. A missing or unreadable file reads as empty.

        Returns:
            List of AuditRecord, oldest first.
        """
        return list(self.iter_records())

    def iter_records(self, action: str | None = None) -> Iterator[AuditRecord]:
        """Iterate over records in file order.

        Args:
            action: Only yield records with this action, if given.

        Yields:
            AuditRecord instances, oldest first.
        """
        try:
            f = self._path.open(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning("Cannot read audit log %s: %s", self._path, e)
            return

        with f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue

                try:
                    record = AuditRecord.from_json_line(line)
                except (json.JSONDecodeError, ValueError, TypeError) as e:
                    logger.debug("Skipping corrupt audit line %d: %s", line_num, str(e))
                    continue

                if action is None or record.action == action:
                    yield record
