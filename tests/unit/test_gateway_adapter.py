import asyncio

import httpx
import pytest

from fundraiser_backend.checkout.builder import build_order
from fundraiser_backend.checkout.models import ProviderPaymentHandle
from fundraiser_backend.gateway import (
    AlternateGatewayAdapter,
    GatewayCancelled,
    GatewayError,
    GatewaySuccess,
    GatewayUnavailable,
    HttpVerifier,
    ScriptGatewayLoader,
)
from fundraiser_backend.gateway.adapter import VerificationFailed


class FakePopup:
    def __init__(self, config, outcome):
        self.config = config
        self.outcome = outcome

    def open_iframe(self):
        if self.outcome == "close":
            self.config["onClose"]()
        elif self.outcome == "raise":
            raise RuntimeError("iframe bloquée")
        else:
            self.config["callback"]({"reference": self.outcome})


class FakeWidget:
    def __init__(self, outcome):
        self.outcome = outcome
        self.configs = []

    def setup(self, config):
        self.configs.append(config)
        return FakePopup(config, self.outcome)


class ReadyLoader:
    def __init__(self, widget):
        self.widget = widget

    async def ensure_loaded(self):
        return self.widget


class BrokenLoader:
    async def ensure_loaded(self):
        raise GatewayUnavailable("script bloqué")


@pytest.fixture
def order(customer):
    return build_order([{"fundraiserId": 1, "quantity": 2}, {"fundraiserId": 2, "quantity": 1}], customer)

@pytest.fixture
def handle():
    return ProviderPaymentHandle(
        provider="paystack",
        reference="po-123",
        access_code="ac_po",
        pending_order_id="po-123",
        amount_cents=3000,
        currency="usd",
    )

def _verifier(calls, purchases=None, error=None):
    async def verify(reference, is_cart):
        calls.append((reference, is_cart))
        if error:
            raise VerificationFailed(error)
        return purchases or []
    return verify

def test_launch_success_verifies_reference(order, handle):
    # Arrange
    widget = FakeWidget("po-123")
    calls = []
    adapter = AlternateGatewayAdapter(ReadyLoader(widget), "pk_test", _verifier(calls, [{"id": 1}, {"id": 2}]))
    # Act
    result = asyncio.run(adapter.launch(order, handle))
    # Assert
    assert result == GatewaySuccess(reference="po-123", purchases=[{"id": 1}, {"id": 2}])
    assert calls == [("po-123", True)]
    config = widget.configs[0]
    assert config["amount"] == 3000
    assert config["key"] == "pk_test"
    assert config["ref"] == "po-123"
    assert config["access_code"] == "ac_po"
    assert config["metadata"]["pending_order_id"] == "po-123"

def test_launch_close_returns_cancelled_without_verification(order, handle):
    calls = []
    adapter = AlternateGatewayAdapter(ReadyLoader(FakeWidget("close")), "pk_test", _verifier(calls))

    result = asyncio.run(adapter.launch(order, handle))

    assert isinstance(result, GatewayCancelled)
    assert calls == []

def test_launch_verification_failure_is_error(order, handle):
    adapter = AlternateGatewayAdapter(
        ReadyLoader(FakeWidget("po-123")), "pk_test", _verifier([], error="Montant payé insuffisant")
    )
    result = asyncio.run(adapter.launch(order, handle))
    assert result == GatewayError("Montant payé insuffisant")

def test_launch_loader_failure_is_error(order, handle):
    result = asyncio.run(AlternateGatewayAdapter(BrokenLoader(), "pk_test", _verifier([])).launch(order, handle))
    assert isinstance(result, GatewayError)
    assert "indisponible" in result.detail

def test_launch_widget_failure_is_error(order, handle):
    adapter = AlternateGatewayAdapter(ReadyLoader(FakeWidget("raise")), "pk_test", _verifier([]))
    result = asyncio.run(adapter.launch(order, handle))
    assert isinstance(result, GatewayError)

def test_loader_retries_once_after_timeout():
    state = {"loads": 0, "ready": False}
    widget = object()

    async def load_script():
        state["loads"] += 1
        if state["loads"] == 1:
            await asyncio.sleep(1)
        state["ready"] = True

    loader = ScriptGatewayLoader(load_script, lambda: widget if state["ready"] else None, timeout=0.05, poll_interval=0.01)

    assert asyncio.run(loader.ensure_loaded()) is widget
    assert loader.attempts == 2

def test_loader_gives_up_after_second_timeout():
    async def load_script():
        await asyncio.sleep(1)

    loader = ScriptGatewayLoader(load_script, lambda: None, timeout=0.05)

    with pytest.raises(GatewayUnavailable):
        asyncio.run(loader.ensure_loaded())
    assert loader.attempts == 2

def test_loader_reuses_loaded_widget():
    state = {"loads": 0}
    widget = object()

    async def load_script():
        state["loads"] += 1

    loader = ScriptGatewayLoader(load_script, lambda: widget if state["loads"] else None)

    async def twice():
        return await loader.ensure_loaded(), await loader.ensure_loaded()

    first, second = asyncio.run(twice())
    assert first is second is widget
    assert state["loads"] == 1

def test_http_verifier_posts_reference_to_cart_endpoint():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json={"status": "ok", "purchases": [{"id": 1}]})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await HttpVerifier("http://api.test/", client=client)("po-1", True)

    assert asyncio.run(run()) == [{"id": 1}]
    assert seen["path"] == "/api/v1/payments/paystack/verify-cart"
    assert b"po-1" in seen["body"]

def test_http_verifier_raises_server_detail():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"detail": {"detail": "Paiement non confirmé", "code": "verification_failed"}})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await HttpVerifier("http://api.test", client=client)("po-1", False)

    with pytest.raises(VerificationFailed, match="Paiement non confirmé"):
        asyncio.run(run())
