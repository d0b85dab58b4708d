"""Integrations module for external storage.

Provides durable key-value storage through fsspec abstraction.
"""

from src.integrations.storage import (
    FileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    get_filesystem,
)

__all__ = [
    "FileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "get_filesystem",
]
