import contextlib
import os
import sqlite3
import tempfile
from typing import Generator

import pytest

from wallethistory.history_database import DatabaseContext, SimpleDataTable, \
    SynchronousWriter
from wallethistory.history_database.sqlite_support import LeakedSQLiteConnectionError, \
    WriteDisabledError


def _db_context() -> DatabaseContext:
    database_path = os.path.join(tempfile.mkdtemp(), "history_create")
    assert not os.path.exists(database_path)
    return DatabaseContext(database_path)


@pytest.fixture
def db_context() -> Generator[DatabaseContext, None, None]:
    value = _db_context()
    yield value
    value.close()


@pytest.fixture
def table(db_context) -> SimpleDataTable:
    table = SimpleDataTable(db_context)
    with SynchronousWriter() as writer:
        table.create_table(completion_callback=writer.get_callback())
        assert writer.succeeded()
    return table


def test_database_path_gets_extension(db_context) -> None:
    assert db_context.get_path().endswith("history_create.sqlite")


def test_special_paths(db_context) -> None:
    assert db_context.is_special_path(DatabaseContext.MEMORY_PATH)
    assert db_context.is_special_path(DatabaseContext.shared_memory_uri("abc"))
    assert not db_context.is_special_path(db_context.get_path())


def test_write_propagates_exception(db_context) -> None:
    def _write(db: sqlite3.Connection) -> None:
        1/0 # pylint: disable=pointless-statement

    with SynchronousWriter() as writer:
        db_context.queue_write(_write, writer.get_callback())
        with pytest.raises(ZeroDivisionError):
            writer.succeeded()


def test_failed_write_does_not_lose_other_writes(db_context) -> None:
    def _create(db: sqlite3.Connection) -> None:
        db.execute("CREATE TABLE FirstTable (ft_id INTEGER PRIMARY KEY, ft_name TEXT NOT NULL)")

    def _make_insert(name: str):
        def _insert(db: sqlite3.Connection) -> None:
            db.execute("INSERT INTO FirstTable (ft_name) VALUES (?)", (name,))
        return _insert

    def _fail(db: sqlite3.Connection) -> None:
        db.execute("INSERT INTO MissingTable (name) VALUES ('x')")

    with SynchronousWriter() as writer:
        db_context.queue_write(_create, writer.get_callback())
        assert writer.succeeded()

    with contextlib.ExitStack() as stack:
        completers = [ stack.enter_context(SynchronousWriter()) for i in range(4) ]
        db_context.queue_write(_make_insert("Alice"), completers[0].get_callback())
        db_context.queue_write(_fail, completers[1].get_callback())
        db_context.queue_write(_make_insert("Bob"), completers[2].get_callback())
        db_context.queue_write(_make_insert("Carol"), completers[3].get_callback())

        assert completers[0].succeeded()
        with pytest.raises(sqlite3.OperationalError):
            completers[1].succeeded()
        assert completers[2].succeeded()
        assert completers[3].succeeded()

    db = db_context.acquire_connection()
    try:
        names = [ row[0] for row in db.execute("SELECT ft_name FROM FirstTable ORDER BY ft_id") ]
    finally:
        db_context.release_connection(db)
    assert names == [ "Alice", "Bob", "Carol" ]


def test_simple_data_upsert_and_read(table) -> None:
    assert table.read_row("localHistory") is None

    with SynchronousWriter() as writer:
        table.upsert("localHistory", "{}", completion_callback=writer.get_callback())
        assert writer.succeeded()
    row = table.read_row("localHistory")
    assert row is not None
    assert row.value == "{}"

    with SynchronousWriter() as writer:
        table.upsert("localHistory", '{"pendingTxs": {}}',
            completion_callback=writer.get_callback())
        assert writer.succeeded()
    updated_row = table.read_row("localHistory")
    assert updated_row is not None
    assert updated_row.value == '{"pendingTxs": {}}'
    assert updated_row.date_created == row.date_created


def test_close_with_leaked_connection() -> None:
    db_context = _db_context()
    db_context.acquire_connection()
    with pytest.raises(LeakedSQLiteConnectionError):
        db_context.close()
    assert db_context.is_closed()


def test_write_after_close() -> None:
    db_context = _db_context()
    db_context.close()
    with pytest.raises(WriteDisabledError):
        db_context.queue_write(lambda db: None)


def test_memory_database_is_shared_with_the_writer() -> None:
    db_context = DatabaseContext(DatabaseContext.MEMORY_PATH)
    try:
        assert db_context.is_special_path(db_context.get_path())
        assert db_context.get_path() != DatabaseContext.MEMORY_PATH
        table = SimpleDataTable(db_context)
        with SynchronousWriter() as writer:
            table.create_table(completion_callback=writer.get_callback())
            assert writer.succeeded()
        with SynchronousWriter() as writer:
            table.upsert("localHistory", "{}", completion_callback=writer.get_callback())
            assert writer.succeeded()
        row = table.read_row("localHistory")
        assert row is not None and row.value == "{}"
    finally:
        db_context.close()
    assert db_context.is_closed()


def test_memory_databases_are_separate() -> None:
    first_context = DatabaseContext(DatabaseContext.MEMORY_PATH)
    second_context = DatabaseContext(DatabaseContext.MEMORY_PATH)
    try:
        assert first_context.get_path() != second_context.get_path()
    finally:
        first_context.close()
        second_context.close()
