import pytest

from fundraiser_backend.payments.referral import resolve_item_referral, resolve_referral


@pytest.mark.parametrize(
    "explicit, purchaser, expected",
    [
        (7, 9, 7),        # référent explicite prioritaire
        (None, 9, 9),     # auto-parrainage
        (None, None, None),
        (7, None, 7),
    ],
)
def test_resolve_referral_precedence(explicit, purchaser, expected):
    assert resolve_referral(explicit, purchaser) == expected

def test_unknown_explicit_student_falls_back_to_purchaser():
    assert resolve_item_referral(404, 9) == 9
    assert resolve_item_referral(404, None) is None

def test_existing_explicit_student_is_kept():
    assert resolve_item_referral(7, 9) == 7
