"""Filesystem primitives for moving items in and out of the recycle bin.

Moves try an in-place rename first. Across filesystems (EXDEV) they fall
back to a recursive copy followed by deleting the source. The fallback is
not crash-atomic: a crash between the copy and the delete leaves the data
in both places.
"""

import errno
import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def path_exists(path: str | Path | None) -> bool:
    """Check whether a path exists, counting dangling symlinks as present."""
    if not path:
        return False
    return os.path.lexists(path)


def remove_path(path: str | Path) -> None:
    """Remove a file, symlink, or directory tree.

    Directories (but not symlinks to directories) are removed recursively.
    A missing path is not an error.

    Raises:
        OSError: If removal fails.
    """
    target = Path(path)
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()


def _copy_any(src: Path, dest: Path) -> None:
    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dest, symlinks=True, dirs_exist_ok=True)
    else:
        shutil.copy2(src, dest, follow_symlinks=False)


def move_path(src: str | Path, dest: str | Path) -> None:
    """Move a file or directory, falling back to copy+delete across devices.

    Parent directories of the destination are created as needed.

    Args:
        src: Existing path to move.
        dest: Destination path. Must not exist.

    Raises:
        OSError: If the move fails.
    """
    src_path = Path(src)
    dest_path = Path(dest)
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        os.rename(src_path, dest_path)
        return
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise

    logger.debug("Cross-device move, copying %s to %s", src_path, dest_path)
    _copy_any(src_path, dest_path)
    remove_path(src_path)


def calculate_directory_size(path: str | Path) -> int:
    """Sum the sizes of regular files below a path.

    Symlinks are not followed. Unreadable entries are ignored.

    Returns:
        Total size in bytes, 0 if the path is missing.
    """
    if os.path.islink(path):
        return 0
    if os.path.isfile(path):
        try:
            return os.path.getsize(path)
        except OSError:
            return 0
    if not os.path.isdir(path):
        return 0

    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            full = os.path.join(dirpath, name)
            if os.path.islink(full):
                continue
            try:
                total += os.path.getsize(full)
            except OSError:
                continue
    return total
