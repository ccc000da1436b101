from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from payvote.core.settings import Settings
from payvote.db import get_db
from payvote.deps import app_settings, payment_provider
from payvote.logger import http_logger as logger
from payvote.models import CheckoutRequest, CheckoutResponse, VerifyResponse
from payvote.payments import PaymentProvider
from payvote.security.limits import checkout_key, checkout_limit, limiter
from payvote.services import ledger

router = APIRouter(prefix="/api", tags=["checkout"])


@router.post("/create-checkout-session", response_model=CheckoutResponse)
@limiter.limit(checkout_limit, key_func=checkout_key)
def create_checkout_session(
    request: Request,
    payload: CheckoutRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(app_settings),
    provider: Optional[PaymentProvider] = Depends(payment_provider),
) -> CheckoutResponse:
    logger.info(f"[CORS] {request.method} create-checkout-session origin: {request.headers.get('origin')}")
    result = ledger.start_checkout(
        db,
        provider,
        settings,
        candidate_id=payload.candidate_id,
        votes=payload.votes,
        currency=payload.currency,
        success_url=payload.success_url,
        cancel_url=payload.cancel_url,
    )
    return CheckoutResponse(
        id=result.id,
        url=result.url,
        amount_total=result.amount_total,
        currency=result.currency,
        votes=result.votes,
    )


@router.get("/verify-session", response_model=VerifyResponse)
def verify_session(
    session_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    provider: Optional[PaymentProvider] = Depends(payment_provider),
) -> VerifyResponse:
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing session_id")
    result = ledger.verify_session(db, provider, session_id)
    return VerifyResponse(
        ok=result.ok,
        status=result.status,
        candidate_id=result.candidate_id,
        votes=result.votes,
        tally=result.tally,
    )
