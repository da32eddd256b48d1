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

import math
from typing import Callable, Iterable, List, Optional, Sequence, Union

from .types import HistoryTx


Nonce = Union[int, float]


def get_nonce_list(txs: Iterable[HistoryTx]) -> List[Optional[Nonce]]:
    return [ tx.nonce for tx in txs ]


def _reduce_nonces(nonces: Sequence[Optional[Nonce]],
        reducer: Callable[[Sequence[Nonce]], Nonce]) -> Optional[Nonce]:
    # A missing or NaN nonce poisons the whole list, an infinite extremum is equally useless.
    if not nonces:
        return None
    values: List[Nonce] = []
    for nonce in nonces:
        if nonce is None or math.isnan(nonce):
            return None
        values.append(nonce)
    value = reducer(values)
    if math.isinf(value):
        return None
    return value


def get_max_nonce(nonces: Sequence[Optional[Nonce]]) -> Optional[Nonce]:
    return _reduce_nonces(nonces, max)


def get_min_nonce(nonces: Sequence[Optional[Nonce]]) -> Optional[Nonce]:
    return _reduce_nonces(nonces, min)
