import pytest

from wallethistory.nonce import get_max_nonce, get_min_nonce, get_nonce_list

from .util import make_pending


@pytest.mark.parametrize("nonces,expected_max,expected_min", (
    ([], None, None),
    ([float("nan")], None, None),
    ([3, 1, 5], 5, 1),
    ([7], 7, 7),
    ([3, None], None, None),
    ([3, float("nan"), 5], None, None),
    ([3, float("inf")], None, 3),
    ([float("-inf"), 3], 3, None),
))
def test_nonce_extremes(nonces, expected_max, expected_min) -> None:
    assert get_max_nonce(nonces) == expected_max
    assert get_min_nonce(nonces) == expected_min


def test_nonce_list_follows_records() -> None:
    txs = [ make_pending("a", nonce=4), make_pending("b"), make_pending("c", nonce=2) ]
    assert get_nonce_list(txs) == [ 4, None, 2 ]
