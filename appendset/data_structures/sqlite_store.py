# Ephemeral SQLite-backed store for serialized item keys.
# The database file is unlinked right after it is opened, so it disappears from
# the filesystem immediately and its space is reclaimed when the connection
# closes, or by the OS when the process exits.

import logging
import os
import sqlite3
import tempfile
from typing import Any, Callable, Iterable, Optional

from ..exceptions import AppendSetError, SerializationError, StorageError
from ..serializer import serialize
from .store import Store, T

logger = logging.getLogger(__name__)

FILE_PREFIX = "appendset-"
FILE_SUFFIX = ".sqlite3"

# Nothing here needs to survive a crash. The rollback journal stays in memory
# so per-call transactions can still be rolled back.
# Partially based on https://github.com/avinassh/fast-sqlite3-inserts
PRAGMAS = (
    "PRAGMA synchronous=OFF",
    "PRAGMA journal_mode=MEMORY",
    "PRAGMA locking_mode=EXCLUSIVE",
    "PRAGMA temp_store=MEMORY",
)

CREATE_SQL = "CREATE TABLE items (item TEXT PRIMARY KEY)"
COUNT_SQL = "SELECT count(item) FROM items"
INSERT_SQL = "INSERT OR IGNORE INTO items (item) VALUES (?)"
EXISTS_SQL = "SELECT EXISTS(SELECT 1 FROM items WHERE item = ?)"
ANY_SQL = "SELECT EXISTS(SELECT 1 FROM items)"


class SQLiteStore(Store[T]):
    """
    Unique-item container backed by a private, unlinked SQLite database.

    Items are serialized to canonical keys and stored in a single-column table
    whose primary key enforces uniqueness. Keys are never read back.
    """

    def __init__(
        self,
        temp_dir: Optional[str] = None,
        serializer: Callable[[Any], str] = serialize,
    ):
        """
        Create the spill database.

        Args:
            temp_dir: Directory for the database file (system temp dir if None)
            serializer: Function mapping an item to its canonical key

        Raises:
            StorageError: If the file cannot be created or the database opened
        """
        self._serialize = serializer
        self._conn: Optional[sqlite3.Connection] = None
        # Set while the file still has a name on disk that close() must remove
        self._path: Optional[str] = None

        try:
            fd, path = tempfile.mkstemp(
                prefix=FILE_PREFIX, suffix=FILE_SUFFIX, dir=temp_dir
            )
            os.close(fd)
        except OSError as e:
            raise StorageError(f"Could not create spill file: {e}") from e

        self._path = path
        try:
            self._conn = sqlite3.connect(path)
            self._unlink()
            for pragma in PRAGMAS:
                self._conn.execute(pragma)
            self._conn.execute(CREATE_SQL)
            self._conn.commit()
        except sqlite3.Error as e:
            self.close()
            raise StorageError(f"Could not open spill database {path}: {e}") from e
        except BaseException:
            self.close()
            raise

        logger.debug("Opened spill database %s", path)

    def _unlink(self) -> None:
        """Remove the file from the namespace while our handle keeps it alive."""
        try:
            os.unlink(self._path)
        except OSError as e:
            # Some platforms refuse to unlink open files; remove it on close
            logger.debug("Deferring removal of %s until close: %s", self._path, e)
            return
        self._path = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Cannot operate on closed SQLiteStore")
        return self._conn

    def size(self) -> int:
        try:
            row = self._connection().execute(COUNT_SQL).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Count query failed: {e}") from e
        return row[0]

    def contains(self, item: T) -> bool:
        try:
            key = self._serialize(item)
        except SerializationError:
            # Every stored item was serializable, so this one was never added
            return False
        try:
            row = self._connection().execute(EXISTS_SQL, (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Lookup failed: {e}") from e
        return row[0] == 1

    def add(self, items: Iterable[T]) -> None:
        """
        Insert items in a single transaction.

        Either every item in the call is committed or, if serialization or the
        database fails partway, none are.
        """
        conn = self._connection()
        rows = ((self._serialize(item),) for item in items)
        try:
            with conn:
                conn.executemany(INSERT_SQL, rows)
        except sqlite3.Error as e:
            raise StorageError(f"Insert failed: {e}") from e

    def any(self) -> bool:
        try:
            row = self._connection().execute(ANY_SQL).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Emptiness query failed: {e}") from e
        return row[0] == 1

    @property
    def closed(self) -> bool:
        return self._conn is None

    def close(self) -> None:
        """Close the connection, releasing the disk space held by the file."""
        conn, self._conn = self._conn, None
        path, self._path = self._path, None

        try:
            if conn is not None:
                conn.close()
                logger.debug("Closed spill database")
        except sqlite3.Error as e:
            raise StorageError(f"Could not close spill database: {e}") from e
        finally:
            if path is not None:
                self._remove(path)

    @staticmethod
    def _remove(path: str) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Could not remove spill file {path}: {e}") from e

    def __del__(self):
        # Best effort only; owners are expected to call close()
        if getattr(self, "_conn", None) is not None or getattr(self, "_path", None):
            try:
                self.close()
            except AppendSetError as e:
                logger.debug("Ignoring error while finalizing spill database: %s", e)
