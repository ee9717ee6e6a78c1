import logging
import time
from itertools import islice
from typing import Iterable, Optional, cast

from ..config import DEFAULT_ADD_BATCH_SIZE, DEFAULT_SPILL_THRESHOLD, SpillConfig
from .memory_store import InMemoryStore
from .sqlite_store import SQLiteStore
from .store import Store, T

logger = logging.getLogger(__name__)


class AppendSet(Store[T]):
    """
    Append-only set that spills to disk once it grows large.

    Items live in an InMemoryStore until the distinct count reaches the spill
    threshold. At that point every member is copied into a SQLiteStore, which
    then serves all further operations. The move happens once and is never
    undone, so resident memory stays bounded regardless of the set size.

    Not thread-safe: callers sharing an instance across threads must lock.
    """

    ADD_BATCH_SIZE = DEFAULT_ADD_BATCH_SIZE
    SPILL_THRESHOLD = DEFAULT_SPILL_THRESHOLD

    def __init__(self, config: Optional[SpillConfig] = None):
        """
        Initialize an empty, in-memory set.

        Args:
            config: Batch size, spill threshold and spill directory. Defaults
                to ADD_BATCH_SIZE and SPILL_THRESHOLD in the system temp dir.
        """
        if config is None:
            config = SpillConfig(
                add_batch_size=self.ADD_BATCH_SIZE,
                spill_threshold=self.SPILL_THRESHOLD,
            )
        self.config = config
        self._store: Store[T] = InMemoryStore()
        self._spilled = False

    @property
    def spilled(self) -> bool:
        """Whether the set has moved to disk."""
        return self._spilled

    def any(self) -> bool:
        if self._spilled:
            # Spilling requires at least spill_threshold (> 0) items, so skip
            # a query against the database
            return True
        return self._store.any()

    def size(self) -> int:
        return self._store.size()

    def contains(self, item: T) -> bool:
        return self._store.contains(item)

    def add(self, items: Iterable[T]) -> None:
        """
        Add items in chunks of at most add_batch_size, checking after each
        chunk whether the set should spill.

        Args:
            items: Iterable of items to add

        Raises:
            TypeError: If items is a single str or bytes value
            SerializationError: If an item has no canonical key
            StorageError: If spilling or writing to the spill database fails
        """
        if isinstance(items, (str, bytes, bytearray)):
            raise TypeError(
                f"add() takes an iterable of items, not a single {type(items).__name__}"
            )

        iterator = iter(items)
        while True:
            batch = list(islice(iterator, self.config.add_batch_size))
            if not batch:
                break
            self._store.add(batch)
            self._spill_if_needed()

    def _spill_if_needed(self) -> None:
        if self._spilled:
            return

        memory_store = cast(InMemoryStore, self._store)
        count = memory_store.size()
        if count < self.config.spill_threshold:
            return

        logger.info(
            "Spilling %d items to disk (threshold %d)",
            count,
            self.config.spill_threshold,
        )
        start_time = time.perf_counter()

        sqlite_store: SQLiteStore = SQLiteStore(temp_dir=self.config.temp_dir)
        try:
            sqlite_store.add(memory_store.all())
        except BaseException:
            # Leave the in-memory store active and drop the partial copy
            sqlite_store.close()
            raise

        self._store = sqlite_store
        self._spilled = True

        elapsed = time.perf_counter() - start_time
        logger.info("Spill complete: %d items in %.2fs", count, elapsed)

    def close(self) -> None:
        """Release the spill database, if any."""
        self._store.close()

    def __repr__(self) -> str:
        return (
            f"AppendSet(spilled={self._spilled}, "
            f"spill_threshold={self.config.spill_threshold})"
        )
