import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from fundraiser_backend.app import app as fastapi_app
from fundraiser_backend.payments.errors import (
    DuplicatePurchaseError,
    PaymentSetupError,
    ProviderVerificationError,
)
from fundraiser_backend.utils.security import (
    get_optional_user,
    require_school_or_admin,
    require_seller,
    require_user,
)

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeDatabase:
    """Tables Supabase en mémoire (fundraisers, students, ticket_purchases, pending_orders)."""

    def __init__(self):
        self.fundraisers: Dict[int, Dict[str, Any]] = {
            1: {"id": 1, "name": "Gala de printemps", "price": 1000, "is_active": True, "end_date": None},
            2: {"id": 2, "name": "Tombola", "price": 1000, "is_active": True, "end_date": "2999-12-31"},
            3: {"id": 3, "name": "Kermesse", "price": 1000, "is_active": False, "end_date": None},
            4: {"id": 4, "name": "Bal 2020", "price": 1000, "is_active": True, "end_date": "2020-06-30"},
            5: {"id": 5, "name": "Concert", "price": None, "is_active": True, "end_date": None},
            6: {"id": 6, "name": "Gratuit", "price": 0, "is_active": True, "end_date": None},
        }
        self.students: Dict[int, Dict[str, Any]] = {
            7: {"id": 7, "user_id": "user-7", "school_id": 1},
            9: {"id": 9, "user_id": "user-9", "school_id": 1},
        }
        self.purchases: List[Dict[str, Any]] = []
        self.pending: Dict[str, Dict[str, Any]] = {}
        self.insert_calls = 0
        self.fail_inserts = False

    # fundraisers
    def get_fundraiser(self, fundraiser_id):
        row = self.fundraisers.get(int(fundraiser_id))
        return dict(row) if row else None

    def get_fundraisers_map(self, ids):
        return {int(i): dict(self.fundraisers[int(i)]) for i in ids if int(i) in self.fundraisers}

    # students
    def get_student(self, student_id):
        row = self.students.get(int(student_id))
        return dict(row) if row else None

    def get_student_by_user_id(self, user_id):
        for row in self.students.values():
            if row["user_id"] == user_id:
                return dict(row)
        return None

    # ticket_purchases
    def insert_ticket_purchases(self, rows):
        self.insert_calls += 1
        if self.fail_inserts:
            from fundraiser_backend.payments.errors import PersistenceError
            raise PersistenceError("store down", failed_items=rows)
        # UNIQUE(payment_intent_id, fundraiser_id), y compris au sein du lot
        keys = {(p["payment_intent_id"], p["fundraiser_id"]) for p in self.purchases}
        for row in rows:
            key = (row["payment_intent_id"], row["fundraiser_id"])
            if key in keys:
                raise DuplicatePurchaseError("duplicate", failed_items=rows)
            keys.add(key)
        created = []
        for row in rows:
            created.append({
                **row,
                "id": len(self.purchases) + len(created) + 1,
                "created_at": datetime.now(timezone.utc).isoformat(),
            })
        self.purchases.extend(created)
        return [dict(r) for r in created]

    def create_ticket_purchase(self, row):
        return self.insert_ticket_purchases([row])[0]

    def list_by_payment_reference(self, reference):
        return [dict(p) for p in self.purchases if p["payment_intent_id"] == reference]

    def list_by_fundraiser(self, fundraiser_id, limit=500):
        return [dict(p) for p in self.purchases if p["fundraiser_id"] == fundraiser_id][:limit]

    def list_by_student(self, student_id, limit=500):
        return [dict(p) for p in self.purchases if p["student_id"] == student_id][:limit]

    # pending_orders
    def insert_pending_order(self, row):
        self.pending[row["id"]] = dict(row)
        return dict(row)

    def get_pending_order(self, order_id):
        row = self.pending.get(order_id)
        return dict(row) if row else None

    def update_pending_order(self, order_id, fields):
        if order_id not in self.pending:
            return None
        self.pending[order_id].update(fields)
        return dict(self.pending[order_id])


class FakeProviders:
    """Stripe et Paystack simulés; chaque appel est tracé dans `calls`."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.refuse_with: Optional[str] = None

    # Stripe
    def create_payment_intent(self, *, amount, currency, metadata, idempotency_key=None, receipt_email=None):
        self.calls.append(("stripe.create", amount))
        if self.refuse_with:
            raise PaymentSetupError(self.refuse_with)
        intent_id = f"pi_test_{len(self.intents) + 1}"
        self.intents[intent_id] = {
            "id": intent_id,
            "client_secret": f"{intent_id}_secret_x",
            "amount": amount,
            "currency": currency,
            "metadata": dict(metadata),
            "status": "requires_payment_method",
        }
        return dict(self.intents[intent_id])

    def retrieve_payment_intent(self, intent_id):
        self.calls.append(("stripe.retrieve", intent_id))
        if intent_id not in self.intents:
            raise ProviderVerificationError("PaymentIntent introuvable")
        return dict(self.intents[intent_id])

    def succeed_intent(self, intent_id, amount=None):
        intent = self.intents[intent_id]
        intent["status"] = "succeeded"
        intent["amount_received"] = intent["amount"] if amount is None else amount
        return dict(intent)

    def succeeded_event(self, intent_id):
        return {"type": "payment_intent.succeeded", "data": {"object": self.succeed_intent(intent_id)}}

    # Paystack
    def initialize_transaction(self, *, email, amount, reference, metadata):
        self.calls.append(("paystack.initialize", amount))
        if self.refuse_with:
            raise PaymentSetupError(self.refuse_with, provider="paystack")
        self.transactions[reference] = {
            "reference": reference,
            "amount": amount,
            "metadata": dict(metadata),
            "status": "pending",
        }
        return {
            "reference": reference,
            "access_code": f"ac_{reference[:8]}",
            "authorization_url": f"https://checkout.paystack.test/{reference}",
        }

    def verify_transaction(self, reference):
        self.calls.append(("paystack.verify", reference))
        tx = self.transactions.get(reference)
        if not tx or tx["status"] != "success":
            return None
        return dict(tx)

    def pay_transaction(self, reference, amount=None):
        tx = self.transactions[reference]
        tx["status"] = "success"
        if amount is not None:
            tx["amount"] = amount


@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Mock database dependency for all tests
@pytest.fixture(scope="function", autouse=True)
def fake_db(monkeypatch) -> FakeDatabase:
    """
    Remplace les accès Supabase par FakeDatabase en patchant les fonctions des repositories.
    """
    db = FakeDatabase()
    monkeypatch.setattr("fundraiser_backend.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("fundraiser_backend.infra.supabase_client.get_service_supabase", lambda: MagicMock())

    monkeypatch.setattr("fundraiser_backend.fundraisers.repository.get_fundraiser", db.get_fundraiser)
    monkeypatch.setattr("fundraiser_backend.fundraisers.repository.get_fundraisers_map", db.get_fundraisers_map)
    monkeypatch.setattr("fundraiser_backend.students.repository.get_student", db.get_student)
    monkeypatch.setattr("fundraiser_backend.students.repository.get_student_by_user_id", db.get_student_by_user_id)

    monkeypatch.setattr("fundraiser_backend.purchases.repository.insert_ticket_purchases", db.insert_ticket_purchases)
    monkeypatch.setattr("fundraiser_backend.purchases.repository.create_ticket_purchase", db.create_ticket_purchase)
    monkeypatch.setattr("fundraiser_backend.purchases.repository.list_by_payment_reference", db.list_by_payment_reference)
    monkeypatch.setattr("fundraiser_backend.purchases.repository.list_by_fundraiser", db.list_by_fundraiser)
    monkeypatch.setattr("fundraiser_backend.purchases.repository.list_by_student", db.list_by_student)

    monkeypatch.setattr("fundraiser_backend.payments.repository.insert_pending_order", db.insert_pending_order)
    monkeypatch.setattr("fundraiser_backend.payments.repository.get_pending_order", db.get_pending_order)
    monkeypatch.setattr("fundraiser_backend.payments.repository.update_pending_order", db.update_pending_order)
    return db

@pytest.fixture(autouse=True)
def providers(monkeypatch) -> FakeProviders:
    fake = FakeProviders()
    monkeypatch.setattr("fundraiser_backend.payments.stripe_client.create_payment_intent", fake.create_payment_intent)
    monkeypatch.setattr("fundraiser_backend.payments.stripe_client.retrieve_payment_intent", fake.retrieve_payment_intent)
    monkeypatch.setattr("fundraiser_backend.payments.paystack_client.initialize_transaction", fake.initialize_transaction)
    monkeypatch.setattr("fundraiser_backend.payments.paystack_client.verify_transaction", fake.verify_transaction)
    return fake

STUDENT_USER: Dict[str, Any] = {
    "id": "user-7",
    "email": "lea@example.com",
    "role": "student",
    "metadata": {"role": "student"},
    "token": "fake-token",
}

@pytest.fixture
def as_student(app):
    """Étudiant 7 authentifié (acheteur et vendeur)."""
    app.dependency_overrides[get_optional_user] = lambda: STUDENT_USER
    app.dependency_overrides[require_user] = lambda: STUDENT_USER
    app.dependency_overrides[require_seller] = lambda: STUDENT_USER
    try:
        yield STUDENT_USER
    finally:
        app.dependency_overrides.clear()

@pytest.fixture
def as_school_admin(app):
    user = {"id": "school-1", "email": "ecole@example.com", "role": "school", "token": "t"}
    app.dependency_overrides[require_school_or_admin] = lambda: user
    app.dependency_overrides[require_user] = lambda: user
    try:
        yield user
    finally:
        app.dependency_overrides.clear()

@pytest.fixture
def customer() -> Dict[str, Any]:
    return {"name": "Jean Dupont", "email": "jean@example.com", "phone": "0600000000"}
