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

from typing import Iterable, List

from .constants import MAX_CONFIRMED_TXS
from .types import HistoryTx


def unique_by_id(txs: Iterable[HistoryTx]) -> List[HistoryTx]:
    "Drop every record whose id was already seen, the first occurrence is the one kept."
    seen_ids = set()
    results = []
    for tx in txs:
        if tx.id in seen_ids:
            continue
        seen_ids.add(tx.id)
        results.append(tx)
    return results


def only_pending(txs: Iterable[HistoryTx]) -> List[HistoryTx]:
    return [ tx for tx in txs if tx.is_pending() ]


def exclude_pending(txs: Iterable[HistoryTx]) -> List[HistoryTx]:
    return [ tx for tx in txs if not tx.is_pending() ]


def cap_confirmed(txs: List[HistoryTx], limit: int=MAX_CONFIRMED_TXS) -> List[HistoryTx]:
    # Merges put the newest entries first, so this drops from the oldest end.
    return txs[:limit]


def retain_pending(txs: Iterable[HistoryTx]) -> List[HistoryTx]:
    """
    A valid pending list: pending status only, no repeated ids.

    Repeated ids are resolved before the status filter, so a newer non-pending entry for an id
    takes the older pending entry with it.
    """
    return only_pending(unique_by_id(txs))


def retain_confirmed(txs: Iterable[HistoryTx], limit: int=MAX_CONFIRMED_TXS) -> List[HistoryTx]:
    "A valid confirmed list: no pending status, no repeated ids, at most `limit` entries."
    return cap_confirmed(exclude_pending(unique_by_id(txs)), limit)
