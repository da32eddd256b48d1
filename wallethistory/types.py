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

from __future__ import annotations
import dataclasses
from typing import Any, Mapping, NamedTuple, Sequence
from typing_extensions import NotRequired, TypedDict

from .account_key import build_account_key
from .constants import CONFIRMED_TXS_KEY, DecodedTxStatus, PENDING_TXS_KEY
from .exceptions import InvalidHistoryDataError


## Persisted shapes

# "from" is a keyword so this one has to use the functional form.
TokenTransferData = TypedDict(
    "TokenTransferData",
    {
        "tokenIdOnNetwork": str,
        "amount": NotRequired[str],
        "from": NotRequired[str],
        "to": NotRequired[str],
    },
)


class AssetTransferData(TypedDict):
    sends: list[TokenTransferData]
    receives: list[TokenTransferData]


class TokenApproveData(TypedDict):
    tokenIdOnNetwork: str
    spender: NotRequired[str]
    amount: NotRequired[str]


class DecodedActionData(TypedDict):
    type: str
    assetTransfer: NotRequired[AssetTransferData]
    tokenApprove: NotRequired[TokenApproveData]


class HistoryTxData(TypedDict):
    id: str
    status: str
    networkId: str
    owner: NotRequired[str]
    xpub: NotRequired[str]
    txid: NotRequired[str]
    originalId: NotRequired[str]
    nonce: NotRequired[int | float]
    createdAt: NotRequired[int]
    updatedAt: NotRequired[int]
    actions: NotRequired[list[DecodedActionData]]
    outputActions: NotRequired[list[DecodedActionData]]
    tokenIdOnNetwork: NotRequired[str]


class LocalHistoryData(TypedDict):
    pendingTxs: dict[str, list[HistoryTxData]]
    confirmedTxs: dict[str, list[HistoryTxData]]


def _require(data: Mapping[str, Any], name: str, kind: type, context: str) -> Any:
    if not isinstance(data, Mapping):
        raise InvalidHistoryDataError(f"{context} is not an object")
    value = data.get(name)
    if not isinstance(value, kind):
        raise InvalidHistoryDataError(f"{context} field '{name}' is missing or invalid")
    return value


def _extra_fields(data: Mapping[str, Any], known: frozenset[str]) -> dict[str, Any]:
    return { k: v for k, v in data.items() if k not in known }


## Decoded actions

@dataclasses.dataclass(frozen=True)
class TokenTransfer:
    token_id: str
    amount: str = "0"
    from_address: str | None = None
    to_address: str | None = None
    extra: dict[str, Any] = dataclasses.field(default_factory=dict)

    KNOWN_FIELDS = frozenset({ "tokenIdOnNetwork", "amount", "from", "to" })

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> TokenTransfer:
        return cls(token_id=_require(data, "tokenIdOnNetwork", str, "token transfer"),
            amount=str(data.get("amount", "0")),
            from_address=data.get("from"), to_address=data.get("to"),
            extra=_extra_fields(data, cls.KNOWN_FIELDS))

    def to_data(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        data["tokenIdOnNetwork"] = self.token_id
        data["amount"] = self.amount
        if self.from_address is not None:
            data["from"] = self.from_address
        if self.to_address is not None:
            data["to"] = self.to_address
        return data


@dataclasses.dataclass(frozen=True)
class AssetTransfer:
    sends: tuple[TokenTransfer, ...] = ()
    receives: tuple[TokenTransfer, ...] = ()

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> AssetTransfer:
        if not isinstance(data, Mapping):
            raise InvalidHistoryDataError("asset transfer is not an object")
        return cls(
            sends=tuple(TokenTransfer.from_data(entry) for entry in data.get("sends") or []),
            receives=tuple(TokenTransfer.from_data(entry)
                for entry in data.get("receives") or []))

    def to_data(self) -> AssetTransferData:
        return {
            "sends": [ entry.to_data() for entry in self.sends ],        # type: ignore[misc]
            "receives": [ entry.to_data() for entry in self.receives ],  # type: ignore[misc]
        }


@dataclasses.dataclass(frozen=True)
class TokenApprove:
    token_id: str
    spender: str | None = None
    amount: str | None = None

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> TokenApprove:
        return cls(token_id=_require(data, "tokenIdOnNetwork", str, "token approval"),
            spender=data.get("spender"), amount=data.get("amount"))

    def to_data(self) -> TokenApproveData:
        data: TokenApproveData = { "tokenIdOnNetwork": self.token_id }
        if self.spender is not None:
            data["spender"] = self.spender
        if self.amount is not None:
            data["amount"] = self.amount
        return data


@dataclasses.dataclass(frozen=True)
class DecodedAction:
    type: str
    asset_transfer: AssetTransfer | None = None
    token_approve: TokenApprove | None = None
    extra: dict[str, Any] = dataclasses.field(default_factory=dict)

    KNOWN_FIELDS = frozenset({ "type", "assetTransfer", "tokenApprove" })

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> DecodedAction:
        asset_transfer = data.get("assetTransfer") if isinstance(data, Mapping) else None
        token_approve = data.get("tokenApprove") if isinstance(data, Mapping) else None
        return cls(type=_require(data, "type", str, "action"),
            asset_transfer=AssetTransfer.from_data(asset_transfer)
                if asset_transfer is not None else None,
            token_approve=TokenApprove.from_data(token_approve)
                if token_approve is not None else None,
            extra=_extra_fields(data, cls.KNOWN_FIELDS))

    def to_data(self) -> DecodedActionData:
        data: dict[str, Any] = dict(self.extra)
        data["type"] = self.type
        if self.asset_transfer is not None:
            data["assetTransfer"] = self.asset_transfer.to_data()
        if self.token_approve is not None:
            data["tokenApprove"] = self.token_approve.to_data()
        return data # type: ignore[return-value]


## History transactions

@dataclasses.dataclass(frozen=True)
class HistoryTx:
    """
    One transaction as seen by the history of an account.

    `original_id` links a record observed later, usually the on-chain confirmation, back to
    the id of the record that was saved locally when the transaction was submitted. The nonce
    is only meaningful while the status is pending.
    """
    id: str
    status: DecodedTxStatus
    network_id: str
    owner: str = ""
    xpub: str | None = None
    txid: str | None = None
    original_id: str | None = None
    nonce: int | float | None = None
    created_at: int | None = None
    updated_at: int | None = None
    actions: tuple[DecodedAction, ...] = ()
    output_actions: tuple[DecodedAction, ...] = ()
    token_id: str | None = None
    # Decoder fields this store does not interpret, written back as they were read.
    extra: dict[str, Any] = dataclasses.field(default_factory=dict)

    KNOWN_FIELDS = frozenset({ "id", "status", "networkId", "owner", "xpub", "txid",
        "originalId", "nonce", "createdAt", "updatedAt", "actions", "outputActions",
        "tokenIdOnNetwork" })

    def is_pending(self) -> bool:
        return self.status.is_pending()

    def get_touched_at(self) -> int | float:
        if self.updated_at is not None:
            return self.updated_at
        if self.created_at is not None:
            return self.created_at
        return 0

    def with_status(self, status: DecodedTxStatus) -> HistoryTx:
        return dataclasses.replace(self, status=status)

    def with_timestamps(self, timestamp_ms: int) -> HistoryTx:
        return dataclasses.replace(self, created_at=timestamp_ms, updated_at=timestamp_ms)

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> HistoryTx:
        tx_id = _require(data, "id", str, "history transaction")
        context = f"history transaction '{tx_id}'"
        status_text = _require(data, "status", str, context)
        try:
            status = DecodedTxStatus(status_text)
        except ValueError:
            raise InvalidHistoryDataError(f"{context} has unknown status '{status_text}'")

        nonce = data.get("nonce")
        if nonce is not None and (isinstance(nonce, bool) or
                not isinstance(nonce, (int, float))):
            raise InvalidHistoryDataError(f"{context} has a non-numeric nonce")

        return cls(id=tx_id, status=status,
            network_id=_require(data, "networkId", str, context),
            owner=data.get("owner") or "",
            xpub=data.get("xpub"),
            txid=data.get("txid"),
            original_id=data.get("originalId"),
            nonce=nonce,
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            actions=tuple(DecodedAction.from_data(entry)
                for entry in data.get("actions") or [] if entry),
            output_actions=tuple(DecodedAction.from_data(entry)
                for entry in data.get("outputActions") or [] if entry),
            token_id=data.get("tokenIdOnNetwork"),
            extra=_extra_fields(data, cls.KNOWN_FIELDS))

    def to_data(self) -> HistoryTxData:
        data: dict[str, Any] = dict(self.extra)
        data["id"] = self.id
        data["status"] = self.status.value
        data["networkId"] = self.network_id
        data["owner"] = self.owner
        data["actions"] = [ action.to_data() for action in self.actions ]
        if self.output_actions:
            data["outputActions"] = [ action.to_data() for action in self.output_actions ]
        for name, value in (("xpub", self.xpub), ("txid", self.txid),
                ("originalId", self.original_id), ("nonce", self.nonce),
                ("createdAt", self.created_at), ("updatedAt", self.updated_at),
                ("tokenIdOnNetwork", self.token_id)):
            if value is not None:
                data[name] = value
        return data # type: ignore[return-value]


## Accounts and requests

class AccountRef(NamedTuple):
    network_id: str
    account_address: str | None = None
    xpub: str | None = None

    def to_key(self) -> str:
        return build_account_key(self.network_id, self.account_address, self.xpub)


class ReconcileRequest(NamedTuple):
    """
    The changes a history sync pass wants applied to one account.

    `confirmed_txs` and `on_chain_txs` are evidence only, they resolve pending entries but are
    not stored. `pending_txs` replaces the pending list outright. Entries to remove may be given
    as records or as bare ids.
    """
    account: AccountRef
    confirmed_txs: Sequence[HistoryTx] | None = None
    on_chain_txs: Sequence[HistoryTx] | None = None
    pending_txs: Sequence[HistoryTx] | None = None
    confirmed_txs_to_save: Sequence[HistoryTx] | None = None
    confirmed_txs_to_remove: Sequence[HistoryTx | str] | None = None


## The document

@dataclasses.dataclass
class LocalHistoryDocument:
    pending_txs: dict[str, list[HistoryTx]] = dataclasses.field(default_factory=dict)
    confirmed_txs: dict[str, list[HistoryTx]] = dataclasses.field(default_factory=dict)

    def get_pending_txs(self, key: str) -> list[HistoryTx]:
        return list(self.pending_txs.get(key) or [])

    def get_confirmed_txs(self, key: str) -> list[HistoryTx]:
        return list(self.confirmed_txs.get(key) or [])

    def copy(self) -> LocalHistoryDocument:
        # The records are frozen, only the containers need copying.
        return LocalHistoryDocument(
            pending_txs={ k: list(v) for k, v in self.pending_txs.items() },
            confirmed_txs={ k: list(v) for k, v in self.confirmed_txs.items() })

    @classmethod
    def from_data(cls, data: Mapping[str, Any] | None) -> LocalHistoryDocument:
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidHistoryDataError("history document is not an object")

        def _read_mapping(name: str) -> dict[str, list[HistoryTx]]:
            entries = data.get(name)
            if entries is None:
                return {}
            if not isinstance(entries, Mapping):
                raise InvalidHistoryDataError(f"history document '{name}' is not an object")
            result: dict[str, list[HistoryTx]] = {}
            for key, tx_datas in entries.items():
                if tx_datas is None:
                    result[key] = []
                    continue
                if not isinstance(tx_datas, list):
                    raise InvalidHistoryDataError(f"history document '{name}' entry '{key}' "
                        "is not a list")
                result[key] = [ HistoryTx.from_data(tx_data) for tx_data in tx_datas ]
            return result

        return cls(pending_txs=_read_mapping(PENDING_TXS_KEY),
            confirmed_txs=_read_mapping(CONFIRMED_TXS_KEY))

    def to_data(self) -> LocalHistoryData:
        return {
            PENDING_TXS_KEY: { key: [ tx.to_data() for tx in txs ]
                for key, txs in self.pending_txs.items() },
            CONFIRMED_TXS_KEY: { key: [ tx.to_data() for tx in txs ]
                for key, txs in self.confirmed_txs.items() },
        } # type: ignore[misc]
