"""Utility modules for recyclectl.

This module exports commonly used utility functions.
"""

from recyclectl.utils.formatting import (
    console,
    err_console,
    format_bytes,
    format_status,
    format_timestamp,
    print_error,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "console",
    "err_console",
    "format_bytes",
    "format_status",
    "format_timestamp",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
