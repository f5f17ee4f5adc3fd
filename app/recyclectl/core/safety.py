"""Allow-list containment checks for moves in and out of the recycle bin.

A path is safe to move only if, after canonicalization, it lies inside
one of the configured roots. The same check guards cleanup sources and
restore destinations.
"""

import os
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class InvalidReason(str, Enum):
    """Reason code recorded when a path fails a safety check.

    Attributes:
        SOURCE_OUTSIDE_ALLOWED_ROOT: Path is outside every allowed root.
        SOURCE_OUTSIDE_PROFILE_ROOT: Restore destination is outside the
            profile roots.
        SOURCE_PATH_UNRESOLVABLE: Path is empty or cannot be resolved.
        RECYCLE_OUTSIDE_RECYCLE_ROOT: Recycle item is not inside the
            recycle bin.
        INCONSISTENT_BATCH_ROOTS: Batch entries do not share one batch
            directory inside the recycle bin.
    """

    SOURCE_OUTSIDE_ALLOWED_ROOT = "source_outside_allowed_root"
    SOURCE_OUTSIDE_PROFILE_ROOT = "source_outside_profile_root"
    SOURCE_PATH_UNRESOLVABLE = "source_path_unresolvable"
    RECYCLE_OUTSIDE_RECYCLE_ROOT = "recycle_outside_recycle_root"
    INCONSISTENT_BATCH_ROOTS = "inconsistent_batch_roots"


@dataclass(frozen=True, slots=True)
class PathCheck:
    """Result of validating a path against a set of roots.

    Attributes:
        allowed: Whether the path lies inside one of the roots.
        invalid_reason: Reason code when not allowed.
        resolved: Canonical form of the path, if it could be resolved.
        matched_root: The root that contains the path, if any.
    """

    allowed: bool
    invalid_reason: InvalidReason | None = None
    resolved: str | None = None
    matched_root: str | None = None


def canonicalize(path: str | Path) -> str:
    """Return an absolute, normalized form of a path.

    ``~`` is expanded and ``.``/``..`` segments are collapsed. Symlinks are
    not followed, so a recycled symlink is judged by where it sits rather
    than where it points.

    Raises:
        ValueError: If the path is empty or contains a NUL byte.
        OSError: If resolution fails.
    """
    text = os.fspath(path)
    if not text or "\x00" in text:
        msg = f"Unresolvable path: {text!r}"
        raise ValueError(msg)
    return os.path.abspath(os.path.expanduser(text))


def is_path_within_root(root: str | Path, candidate: str | Path) -> bool:
    """Check whether a candidate path lies inside (or is) a root.

    Both paths are canonicalized. The candidate is accepted only if its
    path relative to the root has no leading ``..`` segment and is not
    itself absolute (a different drive on Windows).

    Args:
        root: Allow-listed root directory.
        candidate: Path to check.

    Returns:
        True if the candidate is contained in the root.

    Raises:
        ValueError: If either path cannot be resolved.
        OSError: If resolution fails.
    """
    root_abs = canonicalize(root)
    candidate_abs = canonicalize(candidate)
    try:
        rel = os.path.relpath(candidate_abs, root_abs)
    except ValueError:
        return False
    if rel == os.curdir:
        return True
    first = rel.split(os.sep, 1)[0]
    return first != os.pardir and not os.path.isabs(rel)


def validate_within_roots(
    candidate: str | Path | None,
    roots: Iterable[str | Path],
    reason: InvalidReason = InvalidReason.SOURCE_OUTSIDE_ALLOWED_ROOT,
) -> PathCheck:
    """Validate a path against a set of allow-listed roots.

    Args:
        candidate: Path to check. None or empty is unresolvable.
        roots: Allow-listed roots. Empty roots are ignored; with no usable
            root nothing is allowed.
        reason: Reason code to report when the path is outside every root.

    Returns:
        PathCheck describing the outcome.
    """
    if candidate is None or not os.fspath(candidate):
        return PathCheck(allowed=False, invalid_reason=InvalidReason.SOURCE_PATH_UNRESOLVABLE)

    try:
        resolved = canonicalize(candidate)
    except (ValueError, OSError):
        return PathCheck(allowed=False, invalid_reason=InvalidReason.SOURCE_PATH_UNRESOLVABLE)

    for root in roots:
        if not root or not os.fspath(root):
            continue
        try:
            if is_path_within_root(root, candidate):
                return PathCheck(
                    allowed=True, resolved=resolved, matched_root=os.fspath(root)
                )
        except (ValueError, OSError):
            continue

    return PathCheck(allowed=False, invalid_reason=reason, resolved=resolved)


def batch_directory(
    recycle_root: str | Path,
    batch_id: str,
    recycle_paths: Iterable[str | None],
) -> Path | None:
    """Find the batch directory that holds every recycle path of a batch.

    The directory is ``<recycleRoot>/<batchId>``: the batch ID must be a
    single plain path component, and every path must lie at least one
    level below that directory. This is checked before a batch directory
    is deleted so a tampered log can never point the delete at an
    unrelated directory, including another batch's.

    Args:
        recycle_root: Root of the recycle bin.
        batch_id: ID of the batch being deleted.
        recycle_paths: Recycle paths recorded for the batch.

    Returns:
        The batch directory, or None if the paths are inconsistent.
    """
    if (
        not batch_id
        or batch_id in (os.curdir, os.pardir)
        or os.sep in batch_id
        or (os.altsep is not None and os.altsep in batch_id)
    ):
        return None
    try:
        root_abs = canonicalize(recycle_root)
    except (ValueError, OSError):
        return None

    seen = False
    for raw in recycle_paths:
        if not raw:
            return None
        try:
            rel = os.path.relpath(canonicalize(raw), root_abs)
        except (ValueError, OSError):
            return None
        parts = rel.split(os.sep)
        if os.path.isabs(rel) or len(parts) < 2 or parts[0] != batch_id:
            return None
        seen = True

    if not seen:
        return None
    return Path(root_abs) / batch_id
