def test_empty_cart(client):
    res = client.get("/api/v1/cart")
    assert res.status_code == 200
    assert res.json() == {"items": [], "count": 0, "total_cents": 0}

def test_add_merges_same_fundraiser_and_clamps(client):
    first = client.post("/api/v1/cart/items", json={"fundraiserId": 1, "quantity": 6})
    second = client.post("/api/v1/cart/items", json={"fundraiserId": 1, "quantity": 6})

    assert first.status_code == 200
    cart = second.json()["cart"]
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 10
    assert cart["total_cents"] == 10000

def test_add_uses_server_price_and_ref_query(client):
    res = client.post("/api/v1/cart/items?ref=7", json={"fundraiserId": 5, "quantity": 2, "unitPrice": 1})

    item = res.json()["item"]
    assert item["unit_price_cents"] == 1000
    assert item["referring_student_id"] == 7
    assert item["referral_kind"] == "external"

def test_add_refuses_inactive_fundraiser(client):
    res = client.post("/api/v1/cart/items", json={"fundraiserId": 3, "quantity": 1})
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "fundraiser_inactive"
    assert client.get("/api/v1/cart").json()["count"] == 0

def test_add_rejects_bad_quantity_and_missing_id(client):
    assert client.post("/api/v1/cart/items", json={"fundraiserId": 1, "quantity": 0}).status_code == 400
    assert client.post("/api/v1/cart/items", json={"quantity": 1}).status_code == 400

def test_student_adding_without_ref_is_self_referral(client, as_student):
    item = client.post("/api/v1/cart/items", json={"fundraiserId": 1}).json()["item"]
    assert item["quantity"] == 1
    assert item["referring_student_id"] == 7
    assert item["referral_kind"] == "self"

def test_update_and_remove_line(client):
    line_id = client.post("/api/v1/cart/items", json={"fundraiserId": 1, "quantity": 2}).json()["item"]["line_id"]

    updated = client.patch(f"/api/v1/cart/items/{line_id}", json={"quantity": 50})
    assert updated.json()["item"]["quantity"] == 10

    assert client.patch(f"/api/v1/cart/items/{line_id}", json={"quantity": "3"}).status_code == 400
    assert client.patch("/api/v1/cart/items/unknown", json={"quantity": 3}).status_code == 404

    removed = client.delete(f"/api/v1/cart/items/{line_id}")
    assert removed.json()["count"] == 0
    assert client.delete(f"/api/v1/cart/items/{line_id}").status_code == 404

def test_clear_cart(client):
    client.post("/api/v1/cart/items", json={"fundraiserId": 1, "quantity": 2})
    client.post("/api/v1/cart/items", json={"fundraiserId": 2, "quantity": 1})

    assert client.delete("/api/v1/cart").json()["count"] == 0
    assert client.get("/api/v1/cart").json()["items"] == []

def test_student_self_referral_then_shared_link(client, customer, providers, as_student):
    client.post("/api/v1/cart/items", json={"fundraiserId": 1, "quantity": 1})
    res = client.post("/api/v1/cart/items?ref=9", json={"fundraiserId": 1, "quantity": 1})

    item = res.json()["item"]
    assert item["referring_student_id"] == 9
    assert item["referral_kind"] == "external"

    reference = client.post("/api/v1/payments/paystack/initialize", json={"isCart": True, "customerInfo": customer}).json()["reference"]
    providers.pay_transaction(reference)
    rows = client.post("/api/v1/payments/paystack/verify-cart", json={"reference": reference}).json()["purchases"]
    assert [(r["fundraiser_id"], r["student_id"], r["quantity"]) for r in rows] == [(1, 9, 2)]
