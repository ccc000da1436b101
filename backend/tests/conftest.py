from __future__ import annotations

import base64
import hashlib
import hmac
import json
import uuid
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from payvote.core.settings import Settings
from payvote.db_models import Candidate, Transaction
from payvote.errors import PaymentProviderError, WebhookSignatureError
from payvote.main import create_app
from payvote.payments import CheckoutSession, PaymentProvider, PaymentStatus

ADMIN_TOKEN = "admin-secret"
WEBHOOK_SECRET = "whsec_test_secret"


class FakeProvider(PaymentProvider):
    """In-memory provider that signs webhooks with HMAC-SHA256 over the raw body."""

    def __init__(self) -> None:
        self.statuses: Dict[str, str] = {}
        self.created: List[dict] = []
        self.retrieve_calls = 0
        self.fail_create = False
        self.fail_retrieve = False

    def create_checkout_session(self, **kwargs) -> CheckoutSession:
        if self.fail_create:
            raise PaymentProviderError("Failed to create checkout session: connection reset")
        session_id = f"cs_test_{uuid.uuid4().hex}"
        self.statuses[session_id] = "unpaid"
        self.created.append(kwargs)
        return CheckoutSession(id=session_id, url=f"https://pay.example.test/{session_id}")

    def retrieve_payment_status(self, session_id: str) -> PaymentStatus:
        self.retrieve_calls += 1
        if self.fail_retrieve:
            raise PaymentProviderError("Failed to retrieve checkout session: timed out")
        raw = self.statuses.get(session_id, "unpaid")
        return PaymentStatus(session_id=session_id, paid=raw == "paid", raw_status=raw)

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict:
        if not signature or not hmac.compare_digest(self.sign(payload), signature):
            raise WebhookSignatureError()
        try:
            return json.loads(payload)
        except ValueError as exc:
            raise WebhookSignatureError() from exc

    # ---- test helpers ----
    def mark_paid(self, session_id: str) -> None:
        self.statuses[session_id] = "paid"

    @staticmethod
    def sign(payload: bytes) -> str:
        mac = hmac.new(WEBHOOK_SECRET.encode(), payload, hashlib.sha256).digest()
        return base64.b64encode(mac).decode()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        db_path=str(tmp_path / "votes.db"),
        admin_token=ADMIN_TOKEN,
        log_file=None,
        rate_limit_enabled=False,
        vote_price_minor=100,
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def app(settings, provider):
    return create_app(settings, provider=provider)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app, client):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def create_checkout(client, candidate_id=1, votes=1, currency="USD", **extra):
    body = {"candidateId": candidate_id, "votes": votes, "currency": currency}
    body.update(extra)
    return client.post("/api/create-checkout-session", json=body)


def webhook_body(event_type: str, session_id: str, payment_status: str = "paid") -> bytes:
    event = {
        "id": f"evt_{uuid.uuid4().hex}",
        "type": event_type,
        "data": {"object": {"id": session_id, "object": "checkout.session", "payment_status": payment_status}},
    }
    return json.dumps(event).encode()


def post_webhook(client, body: bytes, signature: Optional[str] = None):
    headers = {"content-type": "application/json"}
    if signature is not None:
        headers["stripe-signature"] = signature
    return client.post("/api/stripe/webhook", content=body, headers=headers)


def tally_of(db, candidate_id: int) -> int:
    db.expire_all()
    return db.get(Candidate, candidate_id).tally


def transactions(db) -> List[Transaction]:
    db.expire_all()
    return list(db.execute(select(Transaction).order_by(Transaction.id)).scalars())
