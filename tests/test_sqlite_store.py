"""
Tests for SQLiteStore.

Covers set operations, transaction atomicity, the ephemeral file lifecycle
and wrapping of SQLite failures in StorageError.
"""

import os
import sqlite3
from unittest.mock import MagicMock, patch

import pytest

from appendset.data_structures.sqlite_store import PRAGMAS, SQLiteStore
from appendset.exceptions import SerializationError, StorageError


@pytest.fixture
def store(spill_dir):
    store = SQLiteStore(temp_dir=str(spill_dir))
    yield store
    store.close()


class TestSQLiteStoreOperations:
    """Test suite for SQLiteStore set operations."""

    def test_empty(self, store):
        assert store.size() == 0
        assert store.any() is False
        assert store.contains("foo") is False

    def test_add_and_contains(self, store):
        store.add(["alice", "bob"])

        assert store.size() == 2
        assert store.contains("alice") is True
        assert store.contains("charlie") is False
        assert store.any() is True

    def test_duplicates_ignored(self, store):
        store.add(["foo"] * 100)
        store.add(["foo", "bar"])

        assert store.size() == 2

    def test_equal_items_share_a_row(self, store):
        store.add([1, True, 1.0])

        assert store.size() == 1
        assert store.contains(True) is True

    def test_composite_items(self, store):
        store.add([{"foo": "bar"}, [1, 2], (1, 2), {1, 2}])

        assert store.size() == 4
        assert store.contains({"foo": "bar"}) is True
        assert store.contains({"foo": "baz"}) is False
        assert store.contains(frozenset({2, 1})) is True

    def test_sample_items(self, store, sample_items):
        store.add(sample_items)

        assert store.size() == len(sample_items)
        for item in sample_items:
            assert store.contains(item) is True

    def test_many_items_in_one_call(self, store):
        store.add(range(5000))

        assert store.size() == 5000
        assert store.contains(4999) is True
        assert store.contains(5000) is False

    def test_contains_unencodable_item(self, store):
        assert store.contains(object()) is False

    def test_failed_add_rolls_back(self, store):
        """A serialization failure midway leaves no rows from that call."""
        store.add(["kept"])

        with pytest.raises(SerializationError):
            store.add(["a", "b", object()])

        assert store.size() == 1
        assert store.contains("a") is False

        # Store is still usable afterwards
        store.add(["a"])
        assert store.size() == 2

    def test_pragmas(self, store):
        conn = store._conn
        assert conn.execute("PRAGMA synchronous").fetchone()[0] == 0
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "memory"
        assert len(PRAGMAS) == 4

    def test_python_protocol(self, store):
        store.add(["x"])

        assert len(store) == 1
        assert "x" in store
        assert store


class TestSQLiteStoreLifecycle:
    """Test the ephemeral file lifecycle and resource release."""

    def test_file_unlinked_immediately(self, spill_dir):
        store = SQLiteStore(temp_dir=str(spill_dir))
        try:
            assert list(spill_dir.iterdir()) == []
            # Data is still reachable through the open handle
            store.add(["still here"])
            assert store.contains("still here") is True
        finally:
            store.close()

    def test_stores_are_independent(self, spill_dir):
        first = SQLiteStore(temp_dir=str(spill_dir))
        second = SQLiteStore(temp_dir=str(spill_dir))
        try:
            first.add(["only in first"])

            assert first.contains("only in first") is True
            assert second.contains("only in first") is False
        finally:
            first.close()
            second.close()

    def test_close_is_idempotent(self, spill_dir):
        store = SQLiteStore(temp_dir=str(spill_dir))

        store.close()
        store.close()

        assert store.closed is True

    @pytest.mark.parametrize(
        "operation",
        [
            lambda s: s.size(),
            lambda s: s.contains("x"),
            lambda s: s.add(["x"]),
            lambda s: s.any(),
        ],
    )
    def test_closed_store_raises(self, spill_dir, operation):
        store = SQLiteStore(temp_dir=str(spill_dir))
        store.close()

        with pytest.raises(StorageError, match="closed"):
            operation(store)

    def test_context_manager(self, spill_dir):
        with SQLiteStore(temp_dir=str(spill_dir)) as store:
            store.add(["x"])
            assert store.contains("x")

        assert store.closed is True

    def test_deferred_unlink_removed_on_close(self, spill_dir):
        """If the file cannot be unlinked while open, close removes it."""
        real_unlink = os.unlink
        calls = []

        def refuse_first_unlink(path):
            calls.append(path)
            if len(calls) == 1:
                raise PermissionError("file in use")
            real_unlink(path)

        with patch(
            "appendset.data_structures.sqlite_store.os.unlink",
            side_effect=refuse_first_unlink,
        ):
            store = SQLiteStore(temp_dir=str(spill_dir))
            assert len(list(spill_dir.iterdir())) == 1

            store.close()

        assert list(spill_dir.iterdir()) == []
        assert len(calls) == 2

    def test_custom_serializer(self, spill_dir):
        with SQLiteStore(
            temp_dir=str(spill_dir), serializer=lambda item: str(item).lower()
        ) as store:
            store.add(["Alice"])

            assert store.contains("alice") is True
            assert store.size() == 1


class TestSQLiteStoreErrors:
    """Test that storage failures surface as StorageError."""

    def test_missing_temp_dir(self, tmp_path):
        with pytest.raises(StorageError, match="spill file"):
            SQLiteStore(temp_dir=str(tmp_path / "does-not-exist"))

    def test_connect_failure_cleans_up(self, spill_dir):
        with patch(
            "appendset.data_structures.sqlite_store.sqlite3.connect",
            side_effect=sqlite3.OperationalError("unable to open database file"),
        ):
            with pytest.raises(StorageError, match="unable to open") as exc_info:
                SQLiteStore(temp_dir=str(spill_dir))

        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
        assert list(spill_dir.iterdir()) == []

    def test_insert_failure_wrapped(self, spill_dir):
        store = SQLiteStore(temp_dir=str(spill_dir))
        real_conn = store._conn
        failing = MagicMock()
        failing.executemany.side_effect = sqlite3.OperationalError(
            "database or disk is full"
        )
        store._conn = failing
        try:
            with pytest.raises(StorageError, match="disk is full"):
                store.add(["x"])
        finally:
            store._conn = real_conn
            store.close()

    def test_query_failure_wrapped(self, spill_dir):
        store = SQLiteStore(temp_dir=str(spill_dir))
        real_conn = store._conn
        failing = MagicMock()
        failing.execute.side_effect = sqlite3.DatabaseError("disk I/O error")
        store._conn = failing
        try:
            with pytest.raises(StorageError, match="I/O"):
                store.size()
            with pytest.raises(StorageError, match="I/O"):
                store.contains("x")
        finally:
            store._conn = real_conn
            store.close()

    @pytest.mark.parametrize("error", [MemoryError, KeyboardInterrupt])
    def test_non_sqlite_connect_failure_cleans_up(self, spill_dir, error):
        with patch(
            "appendset.data_structures.sqlite_store.sqlite3.connect",
            side_effect=error,
        ):
            with pytest.raises(error):
                SQLiteStore(temp_dir=str(spill_dir))

        assert list(spill_dir.iterdir()) == []

    def test_setup_failure_after_connect_releases_connection(self, spill_dir):
        connection = MagicMock()
        connection.execute.side_effect = MemoryError
        with patch(
            "appendset.data_structures.sqlite_store.sqlite3.connect",
            return_value=connection,
        ):
            with pytest.raises(MemoryError):
                SQLiteStore(temp_dir=str(spill_dir))

        connection.close.assert_called_once()
        assert list(spill_dir.iterdir()) == []

    def test_file_unlinked_before_setup(self, spill_dir):
        """The file is already gone when the first pragma runs."""
        seen = []
        real_connect = sqlite3.connect

        def connect_and_watch(path):
            conn = MagicMock(wraps=real_connect(path))
            conn.execute.side_effect = lambda *args: seen.append(
                os.path.exists(path)
            )
            return conn

        with patch(
            "appendset.data_structures.sqlite_store.sqlite3.connect",
            side_effect=connect_and_watch,
        ):
            store = SQLiteStore(temp_dir=str(spill_dir))
        store.close()

        assert seen and not any(seen)

    def test_remove_failure_on_close_wrapped(self, spill_dir):
        store = SQLiteStore(temp_dir=str(spill_dir))
        blocker = spill_dir / "blocker"
        blocker.mkdir()
        store._path = str(blocker)

        with pytest.raises(StorageError, match="Could not remove spill file"):
            store.close()

        assert store.closed is True

    def test_finalizer_ignores_close_errors(self, spill_dir):
        store = SQLiteStore(temp_dir=str(spill_dir))
        blocker = spill_dir / "blocker"
        blocker.mkdir()
        store._path = str(blocker)

        store.__del__()

        assert store.closed is True
