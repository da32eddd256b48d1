from wallethistory.constants import DecodedTxStatus, MAX_CONFIRMED_TXS
from wallethistory.retention import cap_confirmed, retain_confirmed, retain_pending, \
    unique_by_id

from .util import make_confirmed, make_pending, make_tx


def test_unique_by_id_keeps_first_occurrence() -> None:
    first = make_confirmed("a", nonce=2)
    txs = unique_by_id([ first, make_confirmed("b"), make_confirmed("a", nonce=1) ])
    assert [ tx.id for tx in txs ] == [ "a", "b" ]
    assert txs[0] is first


def test_cap_drops_from_the_end() -> None:
    txs = [ make_confirmed(str(i)) for i in range(MAX_CONFIRMED_TXS + 5) ]
    capped = cap_confirmed(txs)
    assert len(capped) == MAX_CONFIRMED_TXS
    assert capped[0].id == "0"
    assert capped[-1].id == str(MAX_CONFIRMED_TXS - 1)


def test_retain_pending_resolves_ids_before_filtering() -> None:
    # The newer failed entry for "a" shadows the older pending one, so neither survives.
    txs = retain_pending([ make_tx("a", DecodedTxStatus.FAILED), make_pending("a"),
        make_pending("b") ])
    assert [ tx.id for tx in txs ] == [ "b" ]


def test_retain_confirmed_excludes_pending() -> None:
    txs = retain_confirmed([ make_pending("a"), make_confirmed("b"),
        make_tx("c", DecodedTxStatus.FAILED) ])
    assert [ tx.id for tx in txs ] == [ "b", "c" ]


def test_retain_confirmed_custom_limit() -> None:
    txs = retain_confirmed([ make_confirmed(str(i)) for i in range(10) ], limit=3)
    assert [ tx.id for tx in txs ] == [ "0", "1", "2" ]
