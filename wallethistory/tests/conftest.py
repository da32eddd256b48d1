# Pytest looks here for fixtures
import itertools
import os
from typing import Generator
import unittest.mock

import pytest

from wallethistory.document_store import DatabaseDocumentBackend, HistoryDocumentStore, \
    MemoryDocumentBackend, TextFileDocumentBackend
from wallethistory.history_store import LocalHistoryStore


class SteppingClock:
    "Each call is one millisecond later than the last, so saves can be told apart by time."

    def __init__(self, start: int=1_700_000_000_000) -> None:
        self._counter = itertools.count(start)

    def __call__(self) -> int:
        return next(self._counter)


@pytest.fixture
def memory_backend() -> unittest.mock.MagicMock:
    # Wrapping lets the tests count and inspect the calls that reach the backing store.
    return unittest.mock.MagicMock(wraps=MemoryDocumentBackend())


@pytest.fixture
def document_store(memory_backend) -> HistoryDocumentStore:
    return HistoryDocumentStore(memory_backend)


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def history_store(document_store, clock) -> LocalHistoryStore:
    return LocalHistoryStore(document_store, get_timestamp_ms=clock)


@pytest.fixture
def text_file_backend(tmp_path) -> TextFileDocumentBackend:
    return TextFileDocumentBackend(os.path.join(tmp_path, "history"))


@pytest.fixture
def database_backend(tmp_path) -> Generator[DatabaseDocumentBackend, None, None]:
    backend = DatabaseDocumentBackend.open(os.path.join(tmp_path, "history"))
    yield backend
    backend.close()

