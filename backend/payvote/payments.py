"""
Payment provider boundary.

The ledger only talks to :class:`PaymentProvider`; :class:`StripeProvider` is
the production implementation on top of the ``stripe`` SDK. Every outbound
call carries a timeout and SDK failures surface as ``PaymentProviderError`` so
callers never touch the ledger after a failed provider round-trip.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from payvote.core.settings import Settings
from payvote.errors import PaymentProviderError, WebhookSignatureError
from payvote.logger import payments_logger as logger


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


@dataclass(frozen=True)
class PaymentStatus:
    session_id: str
    paid: bool
    raw_status: str


def product_name(candidate_name: str, votes: int) -> str:
    return f"{candidate_name} - {votes} vote{'s' if votes > 1 else ''}"


class PaymentProvider(ABC):
    @abstractmethod
    def create_checkout_session(
        self,
        *,
        candidate_id: int,
        candidate_name: str,
        votes: int,
        currency: str,
        amount: int,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession: ...

    @abstractmethod
    def retrieve_payment_status(self, session_id: str) -> PaymentStatus: ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify ``signature`` over the raw ``payload`` and return the decoded event."""


class StripeProvider(PaymentProvider):
    def __init__(
        self,
        secret_key: str,
        webhook_secret: Optional[str] = None,
        *,
        timeout: float = 10.0,
        max_retries: int = 0,
    ) -> None:
        self._client = stripe.StripeClient(
            secret_key,
            http_client=stripe.RequestsClient(timeout=timeout),
            max_network_retries=max_retries,
        )
        self._webhook_secret = webhook_secret

    def create_checkout_session(
        self,
        *,
        candidate_id: int,
        candidate_name: str,
        votes: int,
        currency: str,
        amount: int,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        params = {
            "mode": "payment",
            "currency": currency.lower(),
            "line_items": [
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {"name": product_name(candidate_name, votes)},
                        "unit_amount": amount,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "allow_promotion_codes": False,
            "metadata": {"candidate_id": str(candidate_id), "votes": str(votes)},
        }
        try:
            session = self._client.v1.checkout.sessions.create(params=params)
        except stripe.StripeError as exc:
            logger.error(f"Stripe session create failed: {exc.__class__.__name__}: {exc}")
            raise PaymentProviderError(f"Failed to create checkout session: {exc}") from exc
        return CheckoutSession(id=session.id, url=session.url)

    def retrieve_payment_status(self, session_id: str) -> PaymentStatus:
        try:
            session = self._client.v1.checkout.sessions.retrieve(session_id)
        except stripe.StripeError as exc:
            logger.error(f"Stripe session retrieve failed for {session_id}: {exc}")
            raise PaymentProviderError(f"Failed to retrieve checkout session: {exc}") from exc
        raw = session.payment_status or ""
        return PaymentStatus(session_id=session_id, paid=raw == "paid", raw_status=raw)

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if not self._webhook_secret:
            raise WebhookSignatureError("Webhook secret is not configured")
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")
        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body, signature, self._webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
            )
            return json.loads(body)
        except (stripe.SignatureVerificationError, UnicodeDecodeError, ValueError) as exc:
            raise WebhookSignatureError(f"Webhook signature verification failed: {exc}") from exc


def build_provider(settings: Settings) -> Optional[PaymentProvider]:
    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; checkout is disabled")
        return None
    return StripeProvider(
        settings.stripe_secret_key,
        settings.stripe_webhook_secret,
        timeout=settings.stripe_timeout_seconds,
        max_retries=settings.stripe_max_retries,
    )


__all__ = [
    "CheckoutSession",
    "PaymentProvider",
    "PaymentStatus",
    "StripeProvider",
    "build_provider",
    "product_name",
]
