"""
Vote ledger: checkout initiation, payment confirmation and tally bookkeeping.

The candidates and transactions tables are the only source of truth for vote
counts. A transaction moves ``paid`` False -> True at most once, and the tally
increment for it happens in the same database transaction as that flip. The
flip is a conditional UPDATE (``WHERE paid = false``) so that when the client
poll and the provider webhook race for the same session, exactly one of them
sees an affected row and credits the votes.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from payvote.core.settings import Settings
from payvote.db_models import Candidate, SiteSettings, Transaction
from payvote.errors import (
    AmountTooLarge,
    CandidateNotFound,
    PayVoteError,
    ProviderNotConfigured,
    UnknownSession,
    UnsupportedCurrency,
)
from payvote.logger import ledger_logger as logger
from payvote.payments import PaymentProvider

COMPLETED_EVENTS = frozenset(
    {
        "checkout.session.completed",
        "checkout.session.async_payment_succeeded",
    }
)

STATUS_PAID = "paid"
STATUS_UNPAID = "unpaid"
STATUS_ALREADY_COUNTED = "already_counted"

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


@dataclass(frozen=True)
class CheckoutResult:
    id: str
    url: str
    amount_total: int
    currency: str
    votes: int


@dataclass(frozen=True)
class ConfirmResult:
    status: str
    session_id: str
    candidate_id: Optional[int] = None
    votes: Optional[int] = None
    tally: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status != STATUS_UNPAID


@dataclass(frozen=True)
class WebhookResult:
    event_type: str
    status: str
    session_id: Optional[str] = None


def normalize_votes(raw: Any) -> int:
    """Coerce a requested vote count to a positive int, falling back to 1."""
    if raw is None or isinstance(raw, bool):
        return 1
    if isinstance(raw, int):
        n = raw
    elif isinstance(raw, float):
        n = int(raw) if math.isfinite(raw) else 0
    elif isinstance(raw, str):
        match = _LEADING_INT.match(raw)
        n = int(match.group()) if match else 0
    else:
        n = 0
    return n if n >= 1 else 1


def normalize_currency(raw: Optional[str], settings: Settings) -> str:
    currency = (raw or settings.default_currency).strip().upper()
    if len(currency) != 3 or currency not in settings.supported_currencies:
        raise UnsupportedCurrency(f"Unsupported currency: {currency or '(empty)'}")
    return currency


# ---------------- Checkout initiator ----------------
def start_checkout(
    db: Session,
    provider: Optional[PaymentProvider],
    settings: Settings,
    *,
    candidate_id: int,
    votes: Any = 1,
    currency: Optional[str] = None,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> CheckoutResult:
    candidate = db.get(Candidate, candidate_id)
    if candidate is None:
        raise CandidateNotFound(f"Candidate {candidate_id} not found")

    count = normalize_votes(votes)
    code = normalize_currency(currency, settings)

    amount = settings.vote_price_minor * count
    if amount > settings.max_amount_minor:
        max_votes = settings.max_amount_minor // settings.vote_price_minor
        raise AmountTooLarge(f"At most {max_votes} votes per checkout (requested {count})")

    if provider is None:
        raise ProviderNotConfigured()

    success_url = success_url or f"{settings.frontend_url}/?status=success&session_id={{CHECKOUT_SESSION_ID}}"
    cancel_url = cancel_url or f"{settings.frontend_url}/?status=cancelled"

    # Raises PaymentProviderError before anything is written.
    session = provider.create_checkout_session(
        candidate_id=candidate.id,
        candidate_name=candidate.name,
        votes=count,
        currency=code,
        amount=amount,
        success_url=success_url,
        cancel_url=cancel_url,
    )

    trx = Transaction(
        session_id=session.id,
        candidate_id=candidate.id,
        votes=count,
        currency=code,
        amount_total=amount,
        paid=False,
    )
    db.add(trx)
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Could not record transaction for session {session.id}")
        raise

    logger.info(
        f"Checkout created session={session.id} candidate={candidate.id} votes={count} amount={amount} {code}"
    )
    return CheckoutResult(id=session.id, url=session.url, amount_total=amount, currency=code, votes=count)


# ---------------- Payment confirmer ----------------
def _credit_votes(db: Session, trx_id: int, candidate_id: int, votes: int) -> bool:
    """Flip the paid flag and add the votes in one unit of work.

    Returns False when another caller already flipped the flag.
    """
    try:
        marked = db.execute(
            update(Transaction)
            .where(Transaction.id == trx_id, Transaction.paid.is_(False))
            .values(paid=True)
            .execution_options(synchronize_session=False)
        )
        if marked.rowcount != 1:
            db.rollback()
            return False
        db.execute(
            update(Candidate)
            .where(Candidate.id == candidate_id)
            .values(tally=Candidate.tally + votes)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return True


def confirm_session(db: Session, session_id: str, fetch_paid: Callable[[], bool]) -> ConfirmResult:
    trx = db.execute(select(Transaction).where(Transaction.session_id == session_id)).scalar_one_or_none()
    if trx is None:
        raise UnknownSession(f"Unknown session {session_id}")

    trx_id, candidate_id, votes = trx.id, trx.candidate_id, trx.votes
    if trx.paid:
        return ConfirmResult(STATUS_ALREADY_COUNTED, session_id, candidate_id, votes)

    # Don't hold a read transaction open across the provider round-trip.
    db.rollback()

    if not fetch_paid():
        logger.info(f"Session {session_id} not paid yet")
        return ConfirmResult(STATUS_UNPAID, session_id, candidate_id, votes)

    if not _credit_votes(db, trx_id, candidate_id, votes):
        logger.info(f"Session {session_id} was counted by a concurrent confirmation")
        return ConfirmResult(STATUS_ALREADY_COUNTED, session_id, candidate_id, votes)

    tally = db.execute(select(Candidate.tally).where(Candidate.id == candidate_id)).scalar_one()
    logger.info(f"Counted session={session_id} candidate={candidate_id} votes={votes} tally={tally}")
    return ConfirmResult(STATUS_PAID, session_id, candidate_id, votes, tally)


def verify_session(db: Session, provider: Optional[PaymentProvider], session_id: str) -> ConfirmResult:
    """Pull path: the client reports a session id after the checkout redirect."""

    def _fetch_paid() -> bool:
        if provider is None:
            raise ProviderNotConfigured()
        return provider.retrieve_payment_status(session_id).paid

    return confirm_session(db, session_id, _fetch_paid)


def handle_webhook(
    db: Session,
    provider: Optional[PaymentProvider],
    payload: bytes,
    signature: Optional[str],
) -> WebhookResult:
    """Push path: a provider notification, verified over the raw body first."""
    if provider is None:
        raise ProviderNotConfigured()

    event = provider.construct_event(payload, signature)
    event_type = str(event.get("type") or "")
    if event_type not in COMPLETED_EVENTS:
        logger.info(f"Ignoring webhook event type {event_type or '(none)'}")
        return WebhookResult(event_type, "ignored")

    session_obj: Dict[str, Any] = (event.get("data") or {}).get("object") or {}
    session_id = session_obj.get("id")
    if not session_id:
        raise PayVoteError("Event is missing the checkout session id")

    try:
        result = confirm_session(db, session_id, lambda: session_obj.get("payment_status") == "paid")
    except UnknownSession:
        # Sessions created outside this ledger; acknowledge so the provider stops retrying.
        logger.warning(f"Webhook {event_type} for unknown session {session_id}")
        return WebhookResult(event_type, UnknownSession.code, session_id)
    return WebhookResult(event_type, result.status, session_id)


# ---------------- Tally reader ----------------
def read_tally(db: Session) -> List[Dict[str, Any]]:
    rows = db.execute(select(Candidate.id, Candidate.name, Candidate.tally).order_by(Candidate.id.asc())).all()
    return [{"id": row.id, "name": row.name, "tally": row.tally} for row in rows]


# ---------------- Settings ----------------
def read_settings(db: Session, settings: Settings) -> Dict[str, str]:
    row = db.get(SiteSettings, 1)
    return {
        "question": (row.question if row and row.question else settings.default_question),
        "glow": (row.glow if row and row.glow else settings.default_glow),
        "instagram": settings.instagram_url,
    }


def update_settings(db: Session, *, question: Optional[str] = None, glow: Optional[str] = None) -> None:
    row = db.get(SiteSettings, 1)
    if row is None:
        row = SiteSettings(id=1)
        db.add(row)
    changed = []
    if question is not None:
        row.question = question
        changed.append("question")
    if glow is not None:
        row.glow = glow
        changed.append("glow")
    db.commit()
    logger.info(f"Settings updated: {', '.join(changed) or 'nothing'}")
