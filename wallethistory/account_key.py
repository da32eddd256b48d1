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

from typing import Optional

from .constants import ACCOUNT_KEY_SEPARATOR
from .exceptions import MissingIdentifierError


def build_account_key(network_id: str, account_address: Optional[str]=None,
        xpub: Optional[str]=None) -> str:
    """
    Derive the key the history of one account on one network is filed under.

    An extended public key identifies the account when given, and is case-sensitive. Otherwise
    the account address is used, and addresses compare case-insensitively so it is lowercased.
    Empty strings count as absent.

    Raises `MissingIdentifierError` if there is neither an address nor an extended public key.
    """
    if xpub:
        return f"{network_id}{ACCOUNT_KEY_SEPARATOR}{xpub}"
    if account_address:
        return f"{network_id}{ACCOUNT_KEY_SEPARATOR}{account_address.lower()}"
    raise MissingIdentifierError()
