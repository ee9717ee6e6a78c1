class AppendSetError(Exception):
    """Base class for errors raised by appendset."""


class SerializationError(AppendSetError):
    """An item cannot be turned into a canonical key."""


class StorageError(AppendSetError):
    """Opening, writing to, or querying the spill database failed."""
