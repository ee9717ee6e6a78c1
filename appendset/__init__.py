"""
appendset: an append-only set that spills to an ephemeral SQLite database once
it holds too many distinct items to keep in memory.
"""

from .config import DEFAULT_ADD_BATCH_SIZE, DEFAULT_SPILL_THRESHOLD, SpillConfig
from .data_structures import AppendSet, InMemoryStore, SQLiteStore, Store
from .exceptions import AppendSetError, SerializationError, StorageError
from .serializer import freeze, serialize

__version__ = "0.1.0"

__all__ = [
    "AppendSet",
    "AppendSetError",
    "DEFAULT_ADD_BATCH_SIZE",
    "DEFAULT_SPILL_THRESHOLD",
    "InMemoryStore",
    "SQLiteStore",
    "SerializationError",
    "SpillConfig",
    "StorageError",
    "Store",
    "freeze",
    "serialize",
]
