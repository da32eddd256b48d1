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
The local transaction history of the wallet's accounts.

Transactions submitted from this wallet are saved as pending for the account, and history sync
passes later reconcile them against what indexers and the chain report, dropping pending entries
once there is evidence for them. A bounded list of confirmed transactions the indexers may not
have caught up with yet is kept alongside.
"""

from __future__ import annotations
import os
from typing import Callable, Optional, Sequence

from .constants import DATABASE_EXT, DecodedTxStatus, LOCAL_HISTORY_ENTITY, \
    MAX_CONFIRMED_TXS, StorageKind
from .document_store import DatabaseDocumentBackend, DocumentBackend, HistoryDocumentStore, \
    MemoryDocumentBackend, TextFileDocumentBackend
from .exceptions import InvalidStatusError
from .logs import logs
from .merge import clear_pending_transform, confirmed_status_transform, \
    reconcile_transform, save_txs_transform
from .nonce import get_max_nonce, get_min_nonce, get_nonce_list, Nonce
from .query import arrange_txs, collect_account_txs, filter_account_txs, find_tx_by_id
from .simple_config import SimpleConfig
from .types import AccountRef, HistoryTx, LocalHistoryDocument, ReconcileRequest
from .util import get_posix_timestamp_ms


logger = logs.get_logger("history-store")


class LocalHistoryStore:
    def __init__(self, document_store: HistoryDocumentStore,
            confirmed_txs_limit: int=MAX_CONFIRMED_TXS,
            get_timestamp_ms: Optional[Callable[[], int]]=None) -> None:
        if not 1 <= confirmed_txs_limit <= MAX_CONFIRMED_TXS:
            raise ValueError(f"confirmed_txs_limit should be from 1 to {MAX_CONFIRMED_TXS}, "
                f"got {confirmed_txs_limit}")
        self._document_store = document_store
        self._confirmed_txs_limit = confirmed_txs_limit
        self._get_timestamp_ms = get_timestamp_ms if get_timestamp_ms is not None \
            else get_posix_timestamp_ms

    def close(self) -> None:
        self._document_store.close()

    # Lookups.

    async def get_tx_by_id(self, account: AccountRef, history_id: str) -> Optional[HistoryTx]:
        key = account.to_key()
        document = await self._document_store.read()
        return find_tx_by_id(document.get_pending_txs(key), document.get_confirmed_txs(key),
            history_id)

    async def list_pending_txs(self, account: AccountRef, token_id: Optional[str]=None,
            owned_only: bool=False) -> list[HistoryTx]:
        key = account.to_key()
        txs = (await self._document_store.read()).get_pending_txs(key)
        if owned_only:
            txs = filter_account_txs(txs, account)
        return arrange_txs(txs, token_id)

    async def list_confirmed_txs(self, account: AccountRef, token_id: Optional[str]=None,
            owned_only: bool=False) -> list[HistoryTx]:
        key = account.to_key()
        txs = (await self._document_store.read()).get_confirmed_txs(key)
        if owned_only:
            txs = filter_account_txs(txs, account)
        return arrange_txs(txs, token_id)

    async def list_pending_txs_multi(self, accounts: Sequence[AccountRef]) -> list[HistoryTx]:
        keys = [ account.to_key() for account in accounts ]
        document = await self._document_store.read()
        return arrange_txs(collect_account_txs(document.pending_txs, keys))

    async def list_confirmed_txs_multi(self, accounts: Sequence[AccountRef]) \
            -> list[HistoryTx]:
        keys = [ account.to_key() for account in accounts ]
        document = await self._document_store.read()
        return arrange_txs(collect_account_txs(document.confirmed_txs, keys))

    # Nonces.

    async def get_pending_nonces(self, account: AccountRef) -> list[Optional[Nonce]]:
        return get_nonce_list(await self.list_pending_txs(account))

    async def get_max_pending_nonce(self, account: AccountRef) -> Optional[Nonce]:
        return get_max_nonce(await self.get_pending_nonces(account))

    async def get_min_pending_nonce(self, account: AccountRef) -> Optional[Nonce]:
        return get_min_nonce(await self.get_pending_nonces(account))

    # Mutations.

    async def save_txs(self, account: AccountRef,
            pending_txs: Optional[Sequence[HistoryTx]]=None,
            confirmed_txs: Optional[Sequence[HistoryTx]]=None) -> bool:
        """
        Merge newly submitted pending transactions and newly confirmed transactions into the
        history of the account. New entries win over stored entries with the same id.

        Returns whether the stored document was written.
        """
        key = account.to_key()
        if not pending_txs and not confirmed_txs:
            return False
        transform = save_txs_transform(key, pending_txs, confirmed_txs,
            self._get_timestamp_ms(), self._confirmed_txs_limit)
        return await self._document_store.write(transform)

    async def save_pending_txs(self, account: AccountRef, txs: Sequence[HistoryTx]) -> bool:
        return await self.save_txs(account, pending_txs=txs)

    async def save_confirmed_txs(self, account: AccountRef, txs: Sequence[HistoryTx]) -> bool:
        return await self.save_txs(account, confirmed_txs=txs)

    async def update_confirmed_tx_status(self, account: AccountRef, txid: str,
            status: DecodedTxStatus) -> bool:
        key = account.to_key()
        if status.is_pending():
            raise InvalidStatusError(f"confirmed transaction '{txid}' cannot become pending")
        return await self._document_store.write(confirmed_status_transform(key, txid, status))

    async def batch_reconcile(self, requests: Sequence[ReconcileRequest]) -> bool:
        """
        Apply the outcome of a history sync pass for any number of accounts in one write.

        Nothing is written when no account's lists end up changed. Returns whether the stored
        document was written.
        """
        # Keys are built up front so a bad request fails before the store is touched.
        keyed_requests = [ (request.account.to_key(), request) for request in requests ]
        if not keyed_requests:
            return False
        return await self._document_store.write(
            reconcile_transform(keyed_requests, self._confirmed_txs_limit))

    async def update_pending_txs(self, account: AccountRef,
            confirmed_txs: Optional[Sequence[HistoryTx]]=None,
            on_chain_txs: Optional[Sequence[HistoryTx]]=None,
            pending_txs: Optional[Sequence[HistoryTx]]=None) -> bool:
        return await self.batch_reconcile([ ReconcileRequest(account,
            confirmed_txs=confirmed_txs, on_chain_txs=on_chain_txs, pending_txs=pending_txs) ])

    async def update_confirmed_txs(self, account: AccountRef,
            confirmed_txs_to_save: Optional[Sequence[HistoryTx]]=None,
            confirmed_txs_to_remove: Optional[Sequence[HistoryTx | str]]=None) -> bool:
        return await self.batch_reconcile([ ReconcileRequest(account,
            confirmed_txs_to_save=confirmed_txs_to_save,
            confirmed_txs_to_remove=confirmed_txs_to_remove) ])

    async def clear_pending_txs(self) -> None:
        logger.debug("clearing pending transactions for all accounts")
        await self._document_store.write(clear_pending_transform)

    async def clear_all(self) -> None:
        logger.debug("clearing all local history")
        await self._document_store.write(LocalHistoryDocument())


def create_document_backend(config: SimpleConfig) -> DocumentBackend:
    storage_kind = config.get_storage_kind()
    if storage_kind == StorageKind.MEMORY:
        return MemoryDocumentBackend()
    assert config.path is not None
    if storage_kind == StorageKind.FILE:
        return TextFileDocumentBackend(config.path)
    return DatabaseDocumentBackend.open(os.path.join(config.path,
        LOCAL_HISTORY_ENTITY + DATABASE_EXT))


def create_local_history_store(config: SimpleConfig) -> LocalHistoryStore:
    config.get_config_version()
    log_level = config.get_log_level()
    if log_level is not None:
        logs.set_level(log_level)
    log_file_name = config.get_log_file_name()
    if log_file_name is not None:
        log_path = config.file_path(log_file_name)
        assert log_path is not None
        logs.add_file_output(log_path)

    confirmed_txs_limit = config.get_confirmed_txs_limit()
    backend = create_document_backend(config)
    logger.debug("opening local history with %s", type(backend).__name__)
    return LocalHistoryStore(HistoryDocumentStore(backend),
        confirmed_txs_limit=confirmed_txs_limit)
