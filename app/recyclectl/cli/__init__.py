"""Command-line interface for recyclectl."""
