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
Read-modify-write access to the persisted `localHistory` document.

Nothing outside this module touches the backing store. Backends are synchronous and only deal in
serialized text, `HistoryDocumentStore` runs them in the event loop's executor, decodes what
they return into a fully formed `LocalHistoryDocument` and serializes every mutation so that a
read, the computation over it and the resulting write happen as one unit.
"""

from __future__ import annotations
import asyncio
import json
import os
import stat
import threading
from typing import Any, Callable, Optional, TypeVar, Union

from .constants import DOCUMENT_EXT, LOCAL_HISTORY_ENTITY
from .exceptions import InvalidHistoryDataError
from .history_database import DatabaseContext, SimpleDataTable, SynchronousWriter
from .logs import logs
from .types import LocalHistoryDocument
from .util import make_dir


logger = logs.get_logger("history-document")

T1 = TypeVar("T1")

DocumentTransform = Callable[[LocalHistoryDocument], Optional[LocalHistoryDocument]]


class DocumentBackend:
    def load(self, name: str) -> Optional[str]:
        raise NotImplementedError

    def save(self, name: str, text: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryDocumentBackend(DocumentBackend):
    def __init__(self, documents: Optional[dict[str, str]]=None) -> None:
        self._documents: dict[str, str] = {} if documents is None else dict(documents)
        self._lock = threading.RLock()

    def load(self, name: str) -> Optional[str]:
        with self._lock:
            return self._documents.get(name)

    def save(self, name: str, text: str) -> None:
        with self._lock:
            self._documents[name] = text


class TextFileDocumentBackend(DocumentBackend):
    def __init__(self, directory: str) -> None:
        make_dir(directory)
        self._directory = directory

    def get_path(self, name: str) -> str:
        return os.path.join(self._directory, name + DOCUMENT_EXT)

    def load(self, name: str) -> Optional[str]:
        path = self.get_path(name)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding='utf-8') as f:
            return f.read()

    def save(self, name: str, text: str) -> None:
        path = self.get_path(name)
        temp_path = "%s.tmp.%s" % (path, os.getpid())
        try:
            with open(temp_path, "w", encoding='utf-8') as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
        except OSError:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

        file_exists = os.path.exists(path)
        mode = os.stat(path).st_mode if file_exists else stat.S_IREAD | stat.S_IWRITE
        os.replace(temp_path, path)
        os.chmod(path, mode)


class DatabaseDocumentBackend(DocumentBackend):
    def __init__(self, db_context: DatabaseContext) -> None:
        self._db_context = db_context
        self._table = SimpleDataTable(db_context)
        with SynchronousWriter() as writer:
            self._table.create_table(completion_callback=writer.get_callback())
            writer.succeeded()

    @classmethod
    def open(cls, database_path: str) -> DatabaseDocumentBackend:
        return cls(DatabaseContext(database_path))

    def load(self, name: str) -> Optional[str]:
        row = self._table.read_row(name)
        return row.value if row is not None else None

    def save(self, name: str, text: str) -> None:
        # Block the executor thread until the writer thread has committed, a failed write
        # raises here.
        with SynchronousWriter() as writer:
            self._table.upsert(name, text, completion_callback=writer.get_callback())
            writer.succeeded()

    def close(self) -> None:
        self._db_context.close()


class HistoryDocumentStore:
    def __init__(self, backend: DocumentBackend, entity_name: str=LOCAL_HISTORY_ENTITY) -> None:
        self._backend = backend
        self._entity_name = entity_name
        self._lock = asyncio.Lock()

    async def _run_in_thread(self, func: Callable[..., T1], *args: Any) -> T1:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _decode(self, text: Optional[str]) -> LocalHistoryDocument:
        if text is None:
            return LocalHistoryDocument()
        try:
            data = json.loads(text)
        except ValueError as e:
            raise InvalidHistoryDataError(f"'{self._entity_name}' is not valid JSON") from e
        return LocalHistoryDocument.from_data(data)

    async def _load(self) -> LocalHistoryDocument:
        text = await self._run_in_thread(self._backend.load, self._entity_name)
        return self._decode(text)

    async def _save(self, document: LocalHistoryDocument) -> None:
        text = json.dumps(document.to_data(), sort_keys=True)
        try:
            await self._run_in_thread(self._backend.save, self._entity_name, text)
        except Exception:
            logger.exception("Failed writing '%s'", self._entity_name)
            raise
        logger.debug("saved '%s' (%d pending keys, %d confirmed keys)", self._entity_name,
            len(document.pending_txs), len(document.confirmed_txs))

    async def read(self) -> LocalHistoryDocument:
        """
        The current document. Missing mappings and missing keys read as empty, and the returned
        document is a private copy the caller may modify.
        """
        return await self._load()

    async def write(self, update: Union[LocalHistoryDocument, DocumentTransform]) -> bool:
        """
        Replace the document, or apply a transform to the current document.

        A transform that returns `None` leaves the stored document as it was and nothing is
        written. Returns whether a write happened. Concurrent writes through this store are
        applied one after the other, never interleaved.
        """
        async with self._lock:
            if isinstance(update, LocalHistoryDocument):
                document: Optional[LocalHistoryDocument] = update
            else:
                document = update(await self._load())
            if document is None:
                return False
            await self._save(document)
        return True

    def close(self) -> None:
        self._backend.close()
