from __future__ import annotations
from typing import Any, Optional

from wallethistory.constants import DecodedTxStatus
from wallethistory.types import AccountRef, AssetTransfer, DecodedAction, HistoryTx, \
    TokenApprove, TokenTransfer


NETWORK_ID = "evm--1"
ADDRESS = "0xA1b2C3d4E5f60718293a4B5c6D7e8F9012345678"
XPUB = "xpub6CUGRUonZSQ4TWtTMmzXdrXDtypWKiKrhko4egpiMZbpiaQL2jkwSB1icqYh2cfDfVxdx4df189oLKnC5fSwqPfgyP3hooxujYzAu3fDVmz"

ACCOUNT = AccountRef(NETWORK_ID, account_address=ADDRESS)
XPUB_ACCOUNT = AccountRef("btc--0", xpub=XPUB)
OTHER_ACCOUNT = AccountRef(NETWORK_ID, account_address="0x00000000000000000000000000000000000000ff")


def make_tx(tx_id: str, status: DecodedTxStatus=DecodedTxStatus.PENDING,
        account: AccountRef=ACCOUNT, **kwargs: Any) -> HistoryTx:
    kwargs.setdefault("owner", account.account_address or "")
    kwargs.setdefault("xpub", account.xpub)
    return HistoryTx(id=tx_id, status=status, network_id=account.network_id, **kwargs)


def make_pending(tx_id: str, **kwargs: Any) -> HistoryTx:
    return make_tx(tx_id, DecodedTxStatus.PENDING, **kwargs)


def make_confirmed(tx_id: str, **kwargs: Any) -> HistoryTx:
    return make_tx(tx_id, DecodedTxStatus.CONFIRMED, **kwargs)


def make_transfer_action(sends: tuple[str, ...]=(), receives: tuple[str, ...]=()) \
        -> DecodedAction:
    return DecodedAction(type="assetTransfer", asset_transfer=AssetTransfer(
        sends=tuple(TokenTransfer(token_id) for token_id in sends),
        receives=tuple(TokenTransfer(token_id) for token_id in receives)))


def make_approve_action(token_id: str, spender: Optional[str]=None) -> DecodedAction:
    return DecodedAction(type="tokenApprove",
        token_approve=TokenApprove(token_id, spender=spender))
