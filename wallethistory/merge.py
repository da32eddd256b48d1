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
The transforms behind every mutation of the history document.

Each function here builds a `DocumentTransform` for `HistoryDocumentStore.write`. They are pure,
they never modify the document they are given, and they return `None` when applying them would
leave the document unchanged so that no write is made.
"""

from __future__ import annotations
from typing import Iterable, Optional, Sequence

from .constants import DecodedTxStatus, MAX_CONFIRMED_TXS
from .document_store import DocumentTransform
from .logs import logs
from .retention import cap_confirmed, exclude_pending, retain_confirmed, retain_pending, \
    unique_by_id
from .types import HistoryTx, LocalHistoryDocument, ReconcileRequest


logger = logs.get_logger("history-merge")


def merge_pending_txs(existing: Sequence[HistoryTx], incoming: Sequence[HistoryTx],
        timestamp_ms: int) -> list[HistoryTx]:
    # The incoming entries are stamped as just touched and win over existing entries.
    stamped = [ tx.with_timestamps(timestamp_ms) for tx in incoming ]
    return retain_pending(stamped + list(existing))


def merge_confirmed_txs(existing: Sequence[HistoryTx], incoming: Sequence[HistoryTx],
        limit: int=MAX_CONFIRMED_TXS) -> list[HistoryTx]:
    return retain_confirmed(list(incoming) + list(existing), limit)


def save_txs_transform(key: str, pending_txs: Optional[Sequence[HistoryTx]],
        confirmed_txs: Optional[Sequence[HistoryTx]], timestamp_ms: int,
        limit: int=MAX_CONFIRMED_TXS) -> DocumentTransform:
    def _transform(document: LocalHistoryDocument) -> Optional[LocalHistoryDocument]:
        updated = document.copy()
        if pending_txs is not None:
            updated.pending_txs[key] = merge_pending_txs(document.get_pending_txs(key),
                pending_txs, timestamp_ms)

        existing_confirmed_txs = document.get_confirmed_txs(key)
        if confirmed_txs is not None:
            updated.confirmed_txs[key] = merge_confirmed_txs(existing_confirmed_txs,
                confirmed_txs, limit)
        elif len(existing_confirmed_txs) > limit:
            updated.confirmed_txs[key] = cap_confirmed(existing_confirmed_txs, limit)

        if updated == document:
            return None
        logger.debug("save '%s': %d pending, %d confirmed", key,
            len(updated.pending_txs.get(key) or []), len(updated.confirmed_txs.get(key) or []))
        return updated
    return _transform


def confirmed_status_transform(key: str, txid: str, status: DecodedTxStatus) \
        -> DocumentTransform:
    def _transform(document: LocalHistoryDocument) -> Optional[LocalHistoryDocument]:
        confirmed_txs = document.get_confirmed_txs(key)
        for index, tx in enumerate(confirmed_txs):
            if tx.txid == txid:
                break
        else:
            return None

        if tx.status is status:
            return None

        confirmed_txs[index] = tx.with_status(status)
        updated = document.copy()
        updated.confirmed_txs[key] = confirmed_txs
        logger.debug("status of '%s' for '%s' changed from %s to %s", txid, key,
            tx.status.value, status.value)
        return updated
    return _transform


def _evidence_ids(txs: Iterable[HistoryTx]) -> set[str]:
    ids = set()
    for tx in txs:
        ids.add(tx.id)
        if tx.original_id:
            ids.add(tx.original_id)
    return ids


def resolve_pending_txs(current_txs: Sequence[HistoryTx], request: ReconcileRequest) \
        -> Optional[list[HistoryTx]]:
    """
    The pending list for the account after the request, or `None` if it is left alone.

    An explicit replacement list is used as given, minus anything that is not pending. Otherwise
    any pending entry that a confirmed, on-chain or newly saved confirmed record vouches for,
    either by the same id or by naming it as its original id, is dropped.
    """
    if request.pending_txs is not None:
        replacement_txs = retain_pending(request.pending_txs)
        if not replacement_txs and not current_txs:
            return None
        return replacement_txs

    evidence_txs = list(request.confirmed_txs or []) + list(request.on_chain_txs or []) + \
        exclude_pending(request.confirmed_txs_to_save or [])
    if not evidence_txs or not current_txs:
        return None

    evidence_ids = _evidence_ids(evidence_txs)
    return [ tx for tx in current_txs if tx.id not in evidence_ids ]


def resolve_confirmed_txs(current_txs: Sequence[HistoryTx], request: ReconcileRequest,
        limit: int=MAX_CONFIRMED_TXS) -> Optional[list[HistoryTx]]:
    if not request.confirmed_txs_to_save and not request.confirmed_txs_to_remove:
        return None

    txs = unique_by_id(list(request.confirmed_txs_to_save or []) + list(current_txs))
    if request.confirmed_txs_to_remove:
        removal_ids = { entry if isinstance(entry, str) else entry.id
            for entry in request.confirmed_txs_to_remove }
        txs = [ tx for tx in txs if tx.id not in removal_ids ]
    return cap_confirmed(exclude_pending(txs), limit)


def reconcile_transform(keyed_requests: Sequence[tuple[str, ReconcileRequest]],
        limit: int=MAX_CONFIRMED_TXS) -> DocumentTransform:
    """
    Apply a batch of reconcile requests in one pass over the document.

    Requests are applied in order, a later request for the same key sees the result of an
    earlier one.
    """
    def _transform(document: LocalHistoryDocument) -> Optional[LocalHistoryDocument]:
        updated = document.copy()
        pending_keys: set[str] = set()
        confirmed_keys: set[str] = set()
        for key, request in keyed_requests:
            current_pending_txs = updated.get_pending_txs(key)
            pending_txs = resolve_pending_txs(current_pending_txs, request)
            if pending_txs is not None and pending_txs != current_pending_txs:
                updated.pending_txs[key] = pending_txs
                pending_keys.add(key)

            current_confirmed_txs = updated.get_confirmed_txs(key)
            confirmed_txs = resolve_confirmed_txs(current_confirmed_txs, request, limit)
            if confirmed_txs is not None and confirmed_txs != current_confirmed_txs:
                updated.confirmed_txs[key] = confirmed_txs
                confirmed_keys.add(key)

        if not pending_keys and not confirmed_keys:
            return None
        logger.debug("reconciled %d requests, updated pending for %s, confirmed for %s",
            len(keyed_requests), sorted(pending_keys), sorted(confirmed_keys))
        return updated
    return _transform


def clear_pending_transform(document: LocalHistoryDocument) -> LocalHistoryDocument:
    return LocalHistoryDocument(pending_txs={},
        confirmed_txs=document.copy().confirmed_txs)
