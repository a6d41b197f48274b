from fundraiser_backend.cart.store import CART_SESSION_KEY, CartStore


def test_add_merges_same_fundraiser_and_clamps_to_ten():
    session = {}
    store = CartStore(session)

    first = store.add(fundraiser_id=1, quantity=6, unit_price_cents=1000)
    second = store.add(fundraiser_id=1, quantity=7, unit_price_cents=1000)

    assert len(store.items()) == 1
    assert second.line_id == first.line_id
    assert second.quantity == 10
    assert CART_SESSION_KEY in session

def test_add_keeps_lines_per_fundraiser_and_totals():
    store = CartStore({})
    store.add(fundraiser_id=1, quantity=2, unit_price_cents=1000)
    store.add(fundraiser_id=2, quantity=1, unit_price_cents=1500)
    assert store.total_cents() == 3500
    assert store.snapshot()["count"] == 3

def test_set_quantity_is_clamped():
    store = CartStore({})
    line = store.add(fundraiser_id=1, quantity=2, unit_price_cents=1000)

    assert store.set_quantity(line.line_id, 0).quantity == 1
    assert store.set_quantity(line.line_id, 42).quantity == 10
    assert store.set_quantity("inconnu", 3) is None

def test_remove_and_clear():
    store = CartStore({})
    a = store.add(fundraiser_id=1, quantity=1, unit_price_cents=1000)
    store.add(fundraiser_id=2, quantity=1, unit_price_cents=1000)

    assert store.remove(a.line_id) is True
    assert store.remove(a.line_id) is False
    assert [i.fundraiser_id for i in store.items()] == [2]

    store.clear()
    assert store.items() == []

def test_referral_from_later_add_fills_missing_referral_only():
    store = CartStore({})
    store.add(fundraiser_id=1, quantity=1, unit_price_cents=1000)
    store.add(fundraiser_id=1, quantity=1, unit_price_cents=1000, referring_student_id=7, referral_kind="external")
    store.add(fundraiser_id=1, quantity=1, unit_price_cents=1000, referring_student_id=9, referral_kind="external")

    item = store.items()[0]
    assert item.referring_student_id == 7
    assert item.referral_kind == "external"
    assert store.to_checkout_items() == [
        {"fundraiserId": 1, "quantity": 3, "referringStudentId": 7, "referralKind": "external"}
    ]

def test_corrupted_lines_are_ignored():
    session = {CART_SESSION_KEY: [{"fundraiser_id": 1}, {"fundraiser_id": 2, "quantity": 1, "unit_price_cents": 500}]}
    store = CartStore(session)
    assert [i.fundraiser_id for i in store.items()] == [2]

def test_shared_link_replaces_self_referral():
    store = CartStore({})
    store.add(fundraiser_id=1, quantity=1, unit_price_cents=1000, referring_student_id=7, referral_kind="self")
    store.add(fundraiser_id=1, quantity=1, unit_price_cents=1000, referring_student_id=9, referral_kind="external")
    store.add(fundraiser_id=1, quantity=1, unit_price_cents=1000, referring_student_id=7, referral_kind="self")

    item = store.items()[0]
    assert item.quantity == 3
    assert item.referring_student_id == 9
    assert item.referral_kind == "external"
