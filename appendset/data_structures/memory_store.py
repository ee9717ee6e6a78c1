from typing import Any, Dict, Hashable, Iterable, Iterator

from ..exceptions import SerializationError
from ..serializer import freeze
from .store import Store, T


class InMemoryStore(Store[T]):
    """Unique-item container backed by a dict keyed on each item's frozen form."""

    def __init__(self) -> None:
        # frozen form -> first item added with that form
        self._items: Dict[Hashable, Any] = {}

    def size(self) -> int:
        return len(self._items)

    def contains(self, item: T) -> bool:
        try:
            key = freeze(item)
        except SerializationError:
            # Unhashable and unencodable, so it could never have been added
            return False
        return key in self._items

    def add(self, items: Iterable[T]) -> None:
        """Insert items. Every item is frozen before the store changes."""
        staged = [(freeze(item), item) for item in items]
        for key, item in staged:
            self._items.setdefault(key, item)

    def all(self) -> Iterator[T]:
        """Yield every distinct member, for bulk transfer to another store."""
        return iter(self._items.values())

    def any(self) -> bool:
        return bool(self._items)
