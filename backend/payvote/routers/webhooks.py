from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from payvote.db import get_db
from payvote.deps import payment_provider
from payvote.models import WebhookResponse
from payvote.payments import PaymentProvider
from payvote.services import ledger

router = APIRouter(prefix="/api/stripe", tags=["webhooks"])


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    provider: Optional[PaymentProvider] = Depends(payment_provider),
) -> WebhookResponse:
    # The signature covers the exact bytes on the wire; never re-serialize first.
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    result = ledger.handle_webhook(db, provider, payload, signature)
    return WebhookResponse(type=result.event_type, status=result.status)
