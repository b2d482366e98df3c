"""Exception hierarchy for persisted monitor state."""

from __future__ import annotations


class StorageError(Exception):
    """Persisted state could not be read or written."""
