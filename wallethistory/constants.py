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

from enum import Enum


## History document

# The name the history document is persisted under in the backing store.
LOCAL_HISTORY_ENTITY = "localHistory"

PENDING_TXS_KEY = "pendingTxs"
CONFIRMED_TXS_KEY = "confirmedTxs"

# The most confirmed transactions kept for any one account key. Newer entries are at the front
# of the list after a merge, so truncation drops the oldest.
MAX_CONFIRMED_TXS = 50

# The separator between the network id and the account identifier in an account key.
ACCOUNT_KEY_SEPARATOR = "__"


class DecodedTxStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    FAILED = "Failed"
    DROPPED = "Dropped"
    REMOVED = "Removed"

    def is_pending(self) -> bool:
        return self is DecodedTxStatus.PENDING


## Storage

class StorageKind(Enum):
    MEMORY = "memory"
    FILE = "file"
    DATABASE = "database"


DATABASE_EXT = ".sqlite"
DOCUMENT_EXT = ".json"
