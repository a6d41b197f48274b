def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True}

def test_health_rate_limit_disabled_in_tests(client):
    info = client.get("/health/rate-limit").json()
    assert info["enabled"] is False

def test_security_headers(client):
    res = client.get("/health")
    assert res.headers["X-Frame-Options"] == "DENY"
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert "csrf_token" in res.cookies

def test_cookie_session_requires_csrf_header(client, customer):
    client.cookies.set("sb_access", "session-token")
    res = client.post("/api/v1/payments/cash-payment", json={"fundraiserId": 1, "quantity": 1, "customerInfo": customer})
    assert res.status_code == 403
    assert res.json()["detail"] == "CSRF verification failed"

def test_webhook_is_exempt_from_csrf(client, monkeypatch):
    async def other(request):
        return {"type": "charge.refunded", "data": {"object": {}}}

    monkeypatch.setattr("fundraiser_backend.payments.stripe_client.parse_event", other)
    client.cookies.set("sb_access", "session-token")
    assert client.post("/api/v1/payments/webhook", content=b"{}").status_code == 200
