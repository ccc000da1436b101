from typing import Optional

from fastapi import Request

from payvote.core.settings import Settings
from payvote.payments import PaymentProvider


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def payment_provider(request: Request) -> Optional[PaymentProvider]:
    return request.app.state.provider
