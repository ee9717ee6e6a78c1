from .append_set import AppendSet
from .memory_store import InMemoryStore
from .sqlite_store import SQLiteStore
from .store import Store

__all__ = ["AppendSet", "InMemoryStore", "SQLiteStore", "Store"]
