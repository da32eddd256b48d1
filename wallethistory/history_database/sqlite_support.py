# WalletHistory - local transaction history reconciliation store
# Copyright (C) 2019-2020 The ElectrumSV Developers
#
# Permission is hereby granted, free of charge, to any person
# obtaining a copy of this software and associated documentation files
# (the "Software"), to deal in the Software without restriction,
# including without limitation the rights to use, copy, modify, merge,
# publish, distribute, sublicense, and/or sell copies of the Software,
# and to permit persons to whom the Software is furnished to do so,
# subject to the following conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS
# BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN
# ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN
# CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

"""
SQLite access for the history database.

Reads take a connection from a small pool and run on the calling thread. Every write goes
through the one writer thread owned by the `DatabaseContext`, which groups queued writes into
transactions and reports the outcome of each write to its completion callback. Code that needs
to wait on a write uses `SynchronousWriter`.
"""

from concurrent.futures import ThreadPoolExecutor
from enum import Enum
import queue
import sqlite3
import threading
import time
from types import TracebackType
import uuid
from typing import Callable, List, NamedTuple, Optional, Set, Type

from ..constants import DATABASE_EXT
from ..logs import logs


class LeakedSQLiteConnectionError(Exception):
    pass


class WriteDisabledError(Exception):
    pass


WriteCallbackType = Callable[[sqlite3.Connection], None]
CompletionCallbackType = Callable[[Optional[Exception]], None]


class WriteEntryType(NamedTuple):
    write_callback: WriteCallbackType
    completion_callback: Optional[CompletionCallbackType]
    size_hint: int


class JournalModes(Enum):
    DELETE = "DELETE"
    TRUNCATE = "TRUNCATE"
    PERSIST = "PERSIST"
    MEMORY = "MEMORY"
    WAL = "WAL"
    OFF = "OFF"


class SqliteWriteDispatcher:
    """
    The writer thread of a `DatabaseContext`.

    Up to `BATCH_SIZE` queued writes are committed in one transaction. If that transaction fails
    it is rolled back and its writes are retried one per transaction, so that only the write at
    fault reports an exception. Completion callbacks run on a thread pool, a slow callback never
    holds up the writes queued behind it.
    """
    BATCH_SIZE = 10
    POLL_SECONDS = 0.1

    def __init__(self, db_context: "DatabaseContext") -> None:
        self._db_context = db_context
        self._logger = logs.get_logger("history-db-writer")

        self._write_queue: "queue.Queue[WriteEntryType]" = queue.Queue()
        self._callback_pool = ThreadPoolExecutor(thread_name_prefix="history-db-callback")
        self._accepting_writes = True
        self._stop_event = threading.Event()

        self._thread = threading.Thread(target=self._run, name="history-db-writer",
            daemon=True)
        self._thread.start()

    def _run(self) -> None:
        connection = self._db_context.acquire_connection()
        try:
            while True:
                write_entries = self._next_batch()
                if write_entries is None:
                    break
                if write_entries:
                    self._commit(connection, write_entries)
        finally:
            self._db_context.release_connection(connection)

    def _next_batch(self) -> Optional[List[WriteEntryType]]:
        "The next writes to commit, none while idle, or `None` once stopped with nothing queued."
        try:
            write_entries = [ self._write_queue.get(timeout=self.POLL_SECONDS) ]
        except queue.Empty:
            return None if self._stop_event.is_set() else []
        while len(write_entries) < self.BATCH_SIZE:
            try:
                write_entries.append(self._write_queue.get_nowait())
            except queue.Empty:
                break
        return write_entries

    def _commit(self, connection: sqlite3.Connection,
            write_entries: List[WriteEntryType]) -> None:
        time_start = time.time()
        try:
            with connection:
                # The connection is in autocommit mode, the writes are grouped explicitly.
                connection.execute("BEGIN")
                for write_entry in write_entries:
                    write_entry.write_callback(connection)
        except Exception as e:
            # Exception: Anything raised by a write belongs to the code that queued it.
            if len(write_entries) > 1:
                self._logger.debug("Batch of %d writes failed, retrying them one at a time",
                    len(write_entries))
                for write_entry in write_entries:
                    self._commit(connection, [ write_entry ])
                return
            self._logger.exception("Database write failure")
            self._notify(write_entries[0], e)
            return

        self._logger.debug("Committed %d writes (hinted at %d bytes) in %d ms",
            len(write_entries), sum(entry.size_hint for entry in write_entries),
            int((time.time() - time_start) * 1000))
        for write_entry in write_entries:
            self._notify(write_entry, None)

    def _notify(self, write_entry: WriteEntryType, exc_value: Optional[Exception]) -> None:
        if write_entry.completion_callback is not None:
            self._callback_pool.submit(self._run_callback, write_entry.completion_callback,
                exc_value)

    def _run_callback(self, callback: CompletionCallbackType,
            exc_value: Optional[Exception]) -> None:
        try:
            callback(exc_value)
        except Exception:
            self._logger.exception("Exception within completion callback")

    def put(self, write_entry: WriteEntryType) -> None:
        if not self._accepting_writes:
            raise WriteDisabledError()
        self._write_queue.put_nowait(write_entry)

    def stop(self) -> None:
        "Refuse new writes, commit the ones already queued and wait for their callbacks."
        if not self._accepting_writes:
            return
        self._accepting_writes = False
        self._stop_event.set()
        self._thread.join()
        self._callback_pool.shutdown(wait=True)

    def is_stopped(self) -> bool:
        return not self._thread.is_alive()


class DatabaseContext:
    MEMORY_PATH = ":memory:"
    JOURNAL_MODE = JournalModes.WAL
    BUSY_TIMEOUT_MS = 5000

    def __init__(self, database_path: str) -> None:
        # Every connection to ":memory:" gets a database of its own, the writer thread and the
        # readers need to share one.
        if database_path == self.MEMORY_PATH:
            database_path = self.shared_memory_uri(f"history-{uuid.uuid4().hex}")
        if not self.is_special_path(database_path) and not database_path.endswith(DATABASE_EXT):
            database_path += DATABASE_EXT
        self._db_path = database_path
        self._logger = logs.get_logger("history-db-context")

        self._lock = threading.Lock()
        self._idle_connections: List[sqlite3.Connection] = []
        self._active_connections: Set[sqlite3.Connection] = set()
        self._write_dispatcher = SqliteWriteDispatcher(self)

    def get_path(self) -> str:
        return self._db_path

    def acquire_connection(self) -> sqlite3.Connection:
        with self._lock:
            connection = self._idle_connections.pop() if self._idle_connections \
                else self._open_connection()
            self._active_connections.add(connection)
        return connection

    def release_connection(self, connection: sqlite3.Connection) -> None:
        with self._lock:
            self._active_connections.remove(connection)
            self._idle_connections.append(connection)

    def _open_connection(self) -> sqlite3.Connection:
        is_special_path = self.is_special_path(self._db_path)
        connection = sqlite3.connect(self._db_path, check_same_thread=False,
            isolation_level=None, uri=is_special_path)
        connection.execute(f"PRAGMA busy_timeout={self.BUSY_TIMEOUT_MS}")
        # In-memory databases have no journal to configure.
        if not is_special_path:
            self._set_journal_mode(connection)
        return connection

    def _set_journal_mode(self, connection: sqlite3.Connection) -> None:
        journal_mode = connection.execute("PRAGMA journal_mode").fetchone()[0].upper()
        if journal_mode == self.JOURNAL_MODE.value:
            return
        journal_mode = connection.execute(
            f"PRAGMA journal_mode={self.JOURNAL_MODE.value}").fetchone()[0].upper()
        if journal_mode != self.JOURNAL_MODE.value:
            self._logger.error("Database stayed in journal mode %s, wanted %s", journal_mode,
                self.JOURNAL_MODE.value)
        else:
            self._logger.debug("Database now in journal mode %s", journal_mode)

    def queue_write(self, write_callback: WriteCallbackType,
            completion_callback: Optional[CompletionCallbackType]=None,
            size_hint: int=0) -> None:
        self._write_dispatcher.put(WriteEntryType(write_callback, completion_callback,
            size_hint))

    def close(self) -> None:
        self._write_dispatcher.stop()

        with self._lock:
            leaked_connections = list(self._active_connections)
            for connection in self._idle_connections + leaked_connections:
                connection.close()
            self._idle_connections.clear()
            self._active_connections.clear()

        assert self.is_closed()
        if leaked_connections:
            raise LeakedSQLiteConnectionError(f"{len(leaked_connections)} SQLite connections "
                "were still in use when the database was closed, they were closed anyway")

    def is_closed(self) -> bool:
        return self._write_dispatcher.is_stopped() and not self._idle_connections and \
            not self._active_connections

    def is_special_path(self, path: str) -> bool:
        # A private in-memory database per connection.
        if path == self.MEMORY_PATH:
            return True
        # A named in-memory database shared between connections.
        return path.startswith("file:") and "mode=memory" in path

    @classmethod
    def shared_memory_uri(cls, unique_name: str) -> str:
        return f"file:{unique_name}?mode=memory&cache=shared"


class _WriteCompleter:
    def __init__(self) -> None:
        self._event = threading.Event()
        self._gave_callback = False
        self._exc_value: Optional[Exception] = None

    def get_callback(self) -> CompletionCallbackType:
        assert not self._gave_callback, "A write completer only waits on one write"
        self._gave_callback = True

        def _on_completion(exc_value: Optional[Exception]) -> None:
            self._exc_value = exc_value
            self._event.set()
        return _on_completion

    def succeeded(self) -> bool:
        "Block until the write completes. Raises the exception of a failed write."
        self._event.wait()
        if self._exc_value is not None:
            raise self._exc_value
        return True


class SynchronousWriter:
    def __enter__(self) -> _WriteCompleter:
        self._completer = _WriteCompleter()
        return self._completer

    def __exit__(self, exc_type: Optional[Type[BaseException]],
            exc_value: Optional[BaseException], traceback: Optional[TracebackType]) -> None:
        pass
