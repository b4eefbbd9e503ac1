"""Persisted session identifier with sliding expiry, backed by a secure store."""

__version__ = "0.3.0"
