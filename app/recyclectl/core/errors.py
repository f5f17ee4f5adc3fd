"""Error taxonomy for audit records.

Filesystem failures are classified into a small set of machine-readable
kinds by inspecting their message text. Classification is used purely for
audit and reporting; it never changes control flow.
"""

from enum import Enum


class ErrorType(str, Enum):
    """Kind of failure recorded alongside an audit record.

    Attributes:
        PERMISSION_DENIED: EACCES/EPERM style failures.
        PATH_NOT_FOUND: ENOENT/ENOTDIR style failures.
        PATH_VALIDATION_FAILED: Path rejected by an allow-list check.
        DIR_NOT_EMPTY: ENOTEMPTY.
        TIMEOUT: Operation timed out.
        DISK_FULL: ENOSPC.
        READ_ONLY: EROFS or read-only mounts.
        CONFLICT: Destination already exists.
        POLICY_SKIPPED: Skipped by a caller-supplied policy.
        UNKNOWN: Anything else.
    """

    PERMISSION_DENIED = "permission_denied"
    PATH_NOT_FOUND = "path_not_found"
    PATH_VALIDATION_FAILED = "path_validation_failed"
    DIR_NOT_EMPTY = "dir_not_empty"
    TIMEOUT = "timeout"
    DISK_FULL = "disk_full"
    READ_ONLY = "read_only"
    CONFLICT = "conflict"
    POLICY_SKIPPED = "policy_skipped"
    UNKNOWN = "unknown"


ERROR_TYPE_LABELS: dict[ErrorType, str] = {
    ErrorType.PERMISSION_DENIED: "Permission denied",
    ErrorType.PATH_NOT_FOUND: "Path not found",
    ErrorType.PATH_VALIDATION_FAILED: "Path validation failed",
    ErrorType.DIR_NOT_EMPTY: "Directory not empty",
    ErrorType.TIMEOUT: "Timed out",
    ErrorType.DISK_FULL: "Disk full",
    ErrorType.READ_ONLY: "Read-only location",
    ErrorType.CONFLICT: "Path conflict",
    ErrorType.POLICY_SKIPPED: "Skipped by policy",
    ErrorType.UNKNOWN: "Other error",
}

# Ordered: the first matching group wins.
_PATTERNS: list[tuple[ErrorType, tuple[str, ...]]] = [
    (
        ErrorType.PERMISSION_DENIED,
        ("eacces", "eperm", "operation not permitted", "permission denied"),
    ),
    (
        ErrorType.PATH_NOT_FOUND,
        ("enoent", "enotdir", "not found", "no such file", "not a directory"),
    ),
    (ErrorType.PATH_VALIDATION_FAILED, ("invalid", "illegal", "outside", "escape")),
    (ErrorType.DIR_NOT_EMPTY, ("enotempty", "directory not empty")),
    (ErrorType.TIMEOUT, ("timeout", "timed out")),
    (ErrorType.DISK_FULL, ("enospc", "no space")),
    (ErrorType.READ_ONLY, ("read-only", "readonly", "erofs")),
]


def classify_error_type(message: object) -> ErrorType:
    """Classify a failure message into an ErrorType.

    Args:
        message: Error text or exception. ``None`` and empty text are UNKNOWN.

    Returns:
        The matching ErrorType.
    """
    text = str(message or "").lower()
    if not text:
        return ErrorType.UNKNOWN

    for error_type, needles in _PATTERNS:
        if any(needle in text for needle in needles):
            return error_type

    return ErrorType.UNKNOWN


def error_type_label(error_type: ErrorType | str | None) -> str:
    """Get a display label for an error kind.

    Unrecognised kinds are shown with the UNKNOWN label.
    """
    try:
        return ERROR_TYPE_LABELS[ErrorType(error_type)]
    except ValueError:
        return ERROR_TYPE_LABELS[ErrorType.UNKNOWN]
