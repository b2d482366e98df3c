"""Durable store — monitor config and already-notified proposal ids."""

from realmwatch.store.base import StateStore
from realmwatch.store.exceptions import StorageError
from realmwatch.store.json_store import JsonStateStore

__all__ = [
    "JsonStateStore",
    "StateStore",
    "StorageError",
]
