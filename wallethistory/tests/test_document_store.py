import asyncio
import json
import os

import pytest

from wallethistory.constants import LOCAL_HISTORY_ENTITY
from wallethistory.document_store import DatabaseDocumentBackend, HistoryDocumentStore, \
    MemoryDocumentBackend, TextFileDocumentBackend
from wallethistory.exceptions import InvalidHistoryDataError
from wallethistory.history_database import DatabaseContext
from wallethistory.merge import save_txs_transform
from wallethistory.types import LocalHistoryDocument

from .util import ACCOUNT, make_confirmed, make_pending


KEY = ACCOUNT.to_key()


def _make_document() -> LocalHistoryDocument:
    return LocalHistoryDocument(pending_txs={ KEY: [ make_pending("a", nonce=4) ] },
        confirmed_txs={ KEY: [ make_confirmed("b", txid="0xb") ] })


@pytest.mark.asyncio
async def test_read_missing_document(document_store) -> None:
    document = await document_store.read()
    assert document == LocalHistoryDocument()
    assert document.get_pending_txs(KEY) == []


@pytest.mark.asyncio
async def test_read_corrupt_document() -> None:
    store = HistoryDocumentStore(MemoryDocumentBackend({ LOCAL_HISTORY_ENTITY: "{nope" }))
    with pytest.raises(InvalidHistoryDataError):
        await store.read()


@pytest.mark.asyncio
async def test_read_wrongly_shaped_document() -> None:
    text = json.dumps({ "pendingTxs": { KEY: [ { "id": "a" } ] } })
    store = HistoryDocumentStore(MemoryDocumentBackend({ LOCAL_HISTORY_ENTITY: text }))
    with pytest.raises(InvalidHistoryDataError):
        await store.read()


@pytest.mark.asyncio
async def test_write_and_read_back(document_store, memory_backend) -> None:
    document = _make_document()
    assert await document_store.write(document)
    assert await document_store.read() == document

    memory_backend.save.assert_called_once()
    name, text = memory_backend.save.call_args[0]
    assert name == LOCAL_HISTORY_ENTITY
    data = json.loads(text)
    assert data["pendingTxs"][KEY][0]["nonce"] == 4
    assert data["confirmedTxs"][KEY][0]["txid"] == "0xb"


@pytest.mark.asyncio
async def test_read_returns_a_private_copy(document_store) -> None:
    await document_store.write(_make_document())
    document = await document_store.read()
    document.pending_txs[KEY].clear()
    assert len((await document_store.read()).pending_txs[KEY]) == 1


@pytest.mark.asyncio
async def test_transform_returning_none_does_not_write(document_store, memory_backend) -> None:
    seen = []
    def _transform(document: LocalHistoryDocument) -> None:
        seen.append(document)
        return None

    assert not await document_store.write(_transform)
    assert seen == [ LocalHistoryDocument() ]
    memory_backend.save.assert_not_called()


@pytest.mark.asyncio
async def test_failed_save_is_raised(document_store, memory_backend) -> None:
    memory_backend.save.side_effect = OSError("disk full")
    with pytest.raises(OSError):
        await document_store.write(_make_document())
    assert await document_store.read() == LocalHistoryDocument()


@pytest.mark.asyncio
async def test_concurrent_writes_are_serialized(document_store) -> None:
    transforms = [ save_txs_transform(KEY, [ make_pending(f"tx{i}") ], None, i)
        for i in range(10) ]
    results = await asyncio.gather(*(document_store.write(transform)
        for transform in transforms))
    assert all(results)
    document = await document_store.read()
    assert sorted(tx.id for tx in document.pending_txs[KEY]) == \
        sorted(f"tx{i}" for i in range(10))


@pytest.mark.asyncio
async def test_text_file_backend(text_file_backend) -> None:
    store = HistoryDocumentStore(text_file_backend)
    document = _make_document()
    assert await store.write(document)

    path = text_file_backend.get_path(LOCAL_HISTORY_ENTITY)
    assert os.path.exists(path)
    assert not [ name for name in os.listdir(os.path.dirname(path)) if ".tmp." in name ]

    reopened_store = HistoryDocumentStore(TextFileDocumentBackend(os.path.dirname(path)))
    assert await reopened_store.read() == document


@pytest.mark.asyncio
async def test_database_backend(database_backend) -> None:
    store = HistoryDocumentStore(database_backend)
    assert await store.read() == LocalHistoryDocument()

    document = _make_document()
    assert await store.write(document)
    assert await store.read() == document

    document.confirmed_txs[KEY] = []
    assert await store.write(document)
    assert (await store.read()).confirmed_txs == { KEY: [] }


@pytest.mark.asyncio
async def test_database_backend_reopen(tmp_path) -> None:
    database_path = os.path.join(tmp_path, "history")
    store = HistoryDocumentStore(DatabaseDocumentBackend.open(database_path))
    document = _make_document()
    await store.write(document)
    store.close()

    store = HistoryDocumentStore(DatabaseDocumentBackend.open(database_path))
    try:
        assert await store.read() == document
    finally:
        store.close()


@pytest.mark.asyncio
async def test_text_file_backend_failed_write_leaves_no_temporary_file(text_file_backend,
        monkeypatch) -> None:
    def _fail_fsync(fd: int) -> None:
        raise OSError("disk full")
    monkeypatch.setattr(os, "fsync", _fail_fsync)

    store = HistoryDocumentStore(text_file_backend)
    with pytest.raises(OSError):
        await store.write(_make_document())

    directory = os.path.dirname(text_file_backend.get_path(LOCAL_HISTORY_ENTITY))
    assert os.listdir(directory) == []


@pytest.mark.asyncio
async def test_database_backend_in_memory() -> None:
    store = HistoryDocumentStore(DatabaseDocumentBackend.open(DatabaseContext.MEMORY_PATH))
    try:
        assert await store.read() == LocalHistoryDocument()
        document = _make_document()
        assert await store.write(document)
        assert await store.read() == document
    finally:
        store.close()
