"""
Local key-value persistence.
"""

from .json_store import InMemoryStore, JsonFileStore, KeyValueStore, StateStoreError

__all__ = [
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "StateStoreError",
]
