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

from typing import Iterable, List, Mapping, Optional, Sequence

from .types import AccountRef, DecodedAction, HistoryTx


def action_includes_token(action: DecodedAction, token_id: str) -> bool:
    asset_transfer = action.asset_transfer
    if asset_transfer is not None:
        if any(send.token_id == token_id for send in asset_transfer.sends):
            return True
        if any(receive.token_id == token_id for receive in asset_transfer.receives):
            return True
    token_approve = action.token_approve
    return token_approve is not None and token_approve.token_id == token_id


def tx_includes_token(tx: HistoryTx, token_id: str) -> bool:
    """
    Whether the transaction moves or approves the given token.

    The empty token id is the native token of a network. A transaction level token tag only
    counts for a non-empty token id.
    """
    if token_id and tx.token_id == token_id:
        return True
    return any(action_includes_token(action, token_id)
        for action in tx.actions + tx.output_actions)


def arrange_txs(txs: Iterable[HistoryTx], token_id: Optional[str]=None) -> List[HistoryTx]:
    """
    Most recently touched first, where touched is the update time falling back to the creation
    time. The sort is stable so entries touched at the same time keep their relative order.
    """
    results = sorted(txs, key=lambda tx: tx.get_touched_at(), reverse=True)
    if token_id is not None:
        results = [ tx for tx in results if tx_includes_token(tx, token_id) ]
    return results


def find_tx_by_id(pending_txs: Sequence[HistoryTx], confirmed_txs: Sequence[HistoryTx],
        history_id: str) -> Optional[HistoryTx]:
    # Pending entries shadow confirmed entries with the same id.
    for tx in pending_txs:
        if tx.id == history_id:
            return tx
    for tx in confirmed_txs:
        if tx.id == history_id:
            return tx
    return None


def collect_account_txs(txs_by_key: Mapping[str, Sequence[HistoryTx]],
        keys: Iterable[str]) -> List[HistoryTx]:
    results: List[HistoryTx] = []
    for key in keys:
        results.extend(txs_by_key.get(key) or [])
    return results


def filter_account_txs(txs: Iterable[HistoryTx], account: AccountRef) -> List[HistoryTx]:
    "Only the entries that were recorded as belonging to the given account."
    if account.xpub:
        xpub = account.xpub.lower()
        return [ tx for tx in txs if tx.xpub is not None and tx.xpub.lower() == xpub
            and tx.network_id == account.network_id ]

    address = (account.account_address or "").lower()
    return [ tx for tx in txs if tx.owner.lower() == address
        and tx.network_id == account.network_id ]
