"""CLI command modules for recyclectl."""
