import pytest

from wallethistory.account_key import build_account_key
from wallethistory.exceptions import MissingIdentifierError
from wallethistory.types import AccountRef

from .util import ADDRESS, NETWORK_ID, XPUB


def test_address_key_is_deterministic() -> None:
    assert build_account_key(NETWORK_ID, ADDRESS) == build_account_key(NETWORK_ID, ADDRESS)


def test_address_comparison_is_case_insensitive() -> None:
    assert build_account_key(NETWORK_ID, ADDRESS.upper()) == \
        build_account_key(NETWORK_ID, ADDRESS.lower())


def test_xpub_is_case_sensitive() -> None:
    assert build_account_key(NETWORK_ID, xpub=XPUB) != \
        build_account_key(NETWORK_ID, xpub=XPUB.lower())


def test_network_separates_keys() -> None:
    assert build_account_key("evm--1", ADDRESS) != build_account_key("evm--56", ADDRESS)


def test_xpub_identifies_the_account_when_given() -> None:
    assert build_account_key(NETWORK_ID, ADDRESS, XPUB) == \
        build_account_key(NETWORK_ID, xpub=XPUB)


@pytest.mark.parametrize("account_address,xpub", ((None, None), ("", None), (None, ""),
    ("", "")))
def test_missing_identifier(account_address, xpub) -> None:
    with pytest.raises(MissingIdentifierError):
        build_account_key(NETWORK_ID, account_address, xpub)


def test_account_ref_key() -> None:
    assert AccountRef(NETWORK_ID, ADDRESS).to_key() == build_account_key(NETWORK_ID, ADDRESS)
    with pytest.raises(MissingIdentifierError):
        AccountRef(NETWORK_ID).to_key()
