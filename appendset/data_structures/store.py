from abc import ABC, abstractmethod
from typing import Generic, Iterable, TypeVar

T = TypeVar("T")


class Store(ABC, Generic[T]):
    """
    Abstract base class for unique-item containers.

    Both backends (in-memory and SQLite) and the AppendSet facade that switches
    between them implement this interface.
    """

    @abstractmethod
    def size(self) -> int:
        """
        Count the distinct items held.

        Returns:
            Number of distinct items
        """
        pass

    @abstractmethod
    def contains(self, item: T) -> bool:
        """
        Test whether an equal item has been added.

        Args:
            item: The item to look up

        Returns:
            True if the item is a member, False otherwise
        """
        pass

    @abstractmethod
    def add(self, items: Iterable[T]) -> None:
        """
        Insert items, silently ignoring ones already present.

        Args:
            items: Iterable of items to insert
        """
        pass

    def any(self) -> bool:
        """Return True if the store holds at least one item."""
        return self.size() > 0

    def close(self) -> None:
        """Release any resources held by the store."""

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, item: T) -> bool:
        """Support 'in' operator."""
        return self.contains(item)

    def __bool__(self) -> bool:
        return self.any()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
