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

import sqlite3
import time
from typing import NamedTuple, Optional

from ..logs import logs
from .sqlite_support import CompletionCallbackType, DatabaseContext


class SimpleDataRow(NamedTuple):
    key: str
    value: str
    date_created: int
    date_updated: int


class SimpleDataTable:
    """
    Whole documents stored as serialized text under an entity name.

    Reads use a pooled connection on the calling thread, writes are queued to the database
    context's writer thread.
    """
    LOGGER_NAME = "history-db-table"

    CREATE_TABLE_SQL = ("CREATE TABLE IF NOT EXISTS SimpleData ("
        "key TEXT PRIMARY KEY, "
        "value TEXT NOT NULL, "
        "date_created INTEGER NOT NULL, "
        "date_updated INTEGER NOT NULL)")
    READ_SQL = "SELECT key, value, date_created, date_updated FROM SimpleData WHERE key=?"
    UPSERT_SQL = ("INSERT INTO SimpleData (key, value, date_created, date_updated) "
        "VALUES (?, ?, ?, ?) ON CONFLICT(key) DO UPDATE "
        "SET value=excluded.value, date_updated=excluded.date_updated")

    def __init__(self, db_context: DatabaseContext) -> None:
        self._logger = logs.get_logger(self.LOGGER_NAME)
        self._db_context = db_context

    def _get_current_timestamp(self) -> int:
        "Get the current timestamp in a form suitable for database column storage."
        return int(time.time())

    def create_table(self, completion_callback: Optional[CompletionCallbackType]=None) -> None:
        def _write(db: sqlite3.Connection) -> None:
            db.execute(self.CREATE_TABLE_SQL)
        self._db_context.queue_write(_write, completion_callback)

    def read_row(self, key: str) -> Optional[SimpleDataRow]:
        db = self._db_context.acquire_connection()
        try:
            cursor = db.execute(self.READ_SQL, [key])
            row = cursor.fetchone()
            cursor.close()
        finally:
            self._db_context.release_connection(db)
        if row is not None:
            return SimpleDataRow(*row)
        return None

    def upsert(self, key: str, value: str,
            completion_callback: Optional[CompletionCallbackType]=None) -> None:
        timestamp = self._get_current_timestamp()
        data = (key, value, timestamp, timestamp)

        def _write(db: sqlite3.Connection) -> None:
            self._logger.debug("upsert '%s' (%d characters)", key, len(value))
            db.execute(self.UPSERT_SQL, data)

        self._db_context.queue_write(_write, completion_callback, len(value))
