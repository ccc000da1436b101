import hmac
from typing import Optional

from fastapi import Request

from payvote.core.settings import Settings
from payvote.errors import AdminAuthError
from payvote.logger import http_logger as logger


def _bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization", "")
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def check_admin_token(token: Optional[str], settings: Settings) -> bool:
    expected = settings.admin_token
    # No server-side token configured means admin writes are disabled.
    if not expected or not token:
        return False
    return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


def require_admin(request: Request) -> None:
    settings: Settings = request.app.state.settings
    if not check_admin_token(_bearer_token(request), settings):
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Rejected admin request from {client}")
        raise AdminAuthError()
