from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from payvote.core.settings import Settings

# If later behind a proxy, parse X-Forwarded-For here.
limiter = Limiter(key_func=get_remote_address)

_SEP = "|"


def configure_limits(settings: Settings) -> None:
    limiter.enabled = settings.rate_limit_enabled


def checkout_key(request: Request) -> str:
    # The app's own limit travels in the key so each app is throttled by its settings.
    settings: Settings = request.app.state.settings
    return f"{settings.checkout_rate_limit}{_SEP}{get_remote_address(request)}"


def checkout_limit(key: str) -> str:
    return key.split(_SEP, 1)[0]
