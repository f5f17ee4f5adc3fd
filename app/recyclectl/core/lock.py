"""Cooperative single-instance lock per state directory.

Every mutating operation (cleanup, restore, retention) must hold the lock
for the state directory it touches. The lock is advisory: a JSON lock file
is created exclusively and removed on release. A lock whose owner process
is no longer alive is treated as stale and recovered once.
"""

import atexit
import json
import logging
import os
import socket
from pathlib import Path
from types import TracebackType
from typing import Any

from recyclectl import __version__
from recyclectl.core.paths import get_lock_path
from recyclectl.models.record import now_ms

logger = logging.getLogger(__name__)


class LockError(Exception):
    """Base exception for lock errors."""


class LockHeldError(LockError):
    """Raised when another live process holds the lock.

    Attributes:
        lock_path: Path of the contested lock file.
        lock_info: Owner record read from the lock file, if readable.
        is_stale: Whether the owner looked dead but could not be recovered.
    """

    def __init__(
        self,
        message: str,
        lock_path: Path,
        lock_info: dict[str, Any] | None = None,
        is_stale: bool = False,
    ) -> None:
        super().__init__(message)
        self.lock_path = lock_path
        self.lock_info = lock_info
        self.is_stale = is_stale


def is_process_running(pid: object) -> bool:
    """Probe whether a process with the given pid is alive.

    Signal 0 performs the permission and existence checks without
    delivering a signal. A process we are not allowed to signal exists.

    Args:
        pid: Process id from a lock file. Anything other than a positive
            int is treated as dead.

    Returns:
        True if the process appears to be running.
    """
    if not isinstance(pid, int) or isinstance(pid, bool) or pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def read_lock_info(lock_path: Path) -> dict[str, Any] | None:
    """Read the owner record from a lock file.

    Returns:
        The parsed JSON object, or None if missing or unreadable.
    """
    try:
        data = json.loads(lock_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def describe_lock_owner(lock_info: dict[str, Any] | None) -> str:
    """Build a human-readable description of a lock owner."""
    if not lock_info:
        return "another recyclectl instance is already running"
    mode = lock_info.get("mode") or "unknown"
    pid = lock_info.get("pid", "?")
    host = lock_info.get("hostname") or "unknown host"
    return f"another recyclectl instance is already running (mode={mode}, pid={pid}, host={host})"


def break_lock(state_root: Path) -> bool:
    """Remove a lock file unconditionally.

    Returns:
        True if a lock file was removed.
    """
    lock_path = get_lock_path(state_root)
    try:
        lock_path.unlink()
    except FileNotFoundError:
        return False
    logger.info("Removed lock file %s", lock_path)
    return True


class ProcessLock:
    """An acquired lock on a state directory.

    Use :func:`acquire_lock` to obtain one. Instances are context managers
    and are also released automatically at interpreter exit.

    Attributes:
        lock_path: Path of the lock file.
        lock_info: Owner record written to the lock file.
    """

    def __init__(self, lock_path: Path, lock_info: dict[str, Any]) -> None:
        self.lock_path = lock_path
        self.lock_info = lock_info
        self._released = False
        atexit.register(self.release)

    @property
    def recovered_from_stale(self) -> bool:
        """Whether this lock replaced a stale lock file."""
        return bool(self.lock_info.get("recoveredFromStale"))

    def release(self) -> None:
        """Release the lock. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        atexit.unregister(self.release)

        # Only remove the file if it is still ours.
        current = read_lock_info(self.lock_path)
        if current is not None and current.get("pid") != self.lock_info.get("pid"):
            logger.warning("Lock file %s now belongs to pid %s", self.lock_path, current.get("pid"))
            return
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove lock file %s: %s", self.lock_path, e)

    def __enter__(self) -> "ProcessLock":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def _write_lock_file(lock_path: Path, payload: dict[str, Any]) -> None:
    """Create the lock file exclusively and write the owner record.

    Raises:
        FileExistsError: If the lock file already exists.
    """
    fd = os.open(lock_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(json.dumps(payload, indent=2) + "\n")


def acquire_lock(state_root: Path, mode: str, allow_stale_break: bool = True) -> ProcessLock:
    """Acquire the exclusive lock for a state directory.

    If the lock file already exists and its owner is alive, fail. If the
    owner is dead, delete the stale file and retry exactly once.

    Args:
        state_root: State directory to lock.
        mode: Name of the operation taking the lock (e.g. "cleanup").
        allow_stale_break: Whether stale locks may be recovered.

    Returns:
        The acquired ProcessLock.

    Raises:
        LockHeldError: If a live process holds the lock, or stale recovery
            did not succeed.
        OSError: If the lock file cannot be created for another reason.
    """
    lock_path = get_lock_path(state_root)
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    payload: dict[str, Any] = {
        "pid": os.getpid(),
        "mode": mode or "unknown",
        "hostname": socket.gethostname(),
        "startedAt": now_ms(),
        "version": __version__,
    }
    stale_info: dict[str, Any] | None = None

    for attempt in range(2):
        if attempt == 1:
            payload = {
                **payload,
                "recoveredFromStale": True,
                "recoveredAt": now_ms(),
                "staleLockPid": (stale_info or {}).get("pid"),
            }
        try:
            _write_lock_file(lock_path, payload)
        except FileExistsError:
            lock_info = read_lock_info(lock_path)
            is_stale = not is_process_running((lock_info or {}).get("pid"))

            if is_stale and allow_stale_break and attempt == 0:
                stale_info = lock_info
                logger.warning(
                    "Recovering stale lock %s (pid %s)", lock_path, (stale_info or {}).get("pid")
                )
                try:
                    lock_path.unlink()
                except FileNotFoundError:
                    pass
                continue

            raise LockHeldError(
                describe_lock_owner(lock_info),
                lock_path=lock_path,
                lock_info=lock_info,
                is_stale=is_stale,
            ) from None

        logger.debug("Acquired lock %s for %s", lock_path, mode)
        return ProcessLock(lock_path, payload)

    msg = "lock file conflict and stale lock recovery failed"
    raise LockHeldError(msg, lock_path=lock_path, lock_info=stale_info, is_stale=True)
