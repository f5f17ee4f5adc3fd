"""Core infrastructure: audit log, path safety, locking, and configuration."""
