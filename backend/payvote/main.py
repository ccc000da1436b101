# backend/payvote/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker
from starlette.responses import Response

# rate limiting
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from payvote.core.settings import Settings, get_settings
from payvote.db import create_session_factory, init_db
from payvote.errors import PayVoteError, UpstreamError
from payvote.logger import configure_logging, http_logger as logger
from payvote.payments import build_provider
from payvote.routers import admin, checkout, public, webhooks
from payvote.security.limits import configure_limits, limiter

# ---- Default security headers ----
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "frame-ancestors 'none'; "
        "object-src 'none'; "
        "base-uri 'self'; "
        "form-action 'self'"
    ),
}
# NOTE: HSTS only takes effect when served over HTTPS (enable at your reverse proxy in prod)
STRICT_TRANSPORT_SECURITY = "max-age=31536000; includeSubDomains"

_NO_PROVIDER = object()


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    response = JSONResponse(
        status_code=429,
        content={"error": "too_many_requests", "detail": "Try again later."},
    )
    for header, value in (getattr(exc, "headers", {}) or {}).items():
        response.headers.setdefault(header, value)
    return response


def _payvote_error_handler(request: Request, exc: PayVoteError) -> JSONResponse:
    detail = exc.detail
    if isinstance(exc, UpstreamError):
        logger.error(f"{request.method} {request.url.path} failed upstream: {exc.detail}")
        if request.app.state.settings.is_production:
            detail = exc.public_detail
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": detail})


async def add_security_headers(request: Request, call_next):
    response: Response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    # HSTS (effective only when behind HTTPS)
    response.headers.setdefault("Strict-Transport-Security", STRICT_TRANSPORT_SECURITY)
    return response


async def check_http_hardening(request: Request, call_next):
    # Only GET/POST/OPTIONS are part of the API surface.
    if request.method in ["PUT", "DELETE", "PATCH"]:
        return JSONResponse(
            status_code=405,
            content={"detail": "Method Not Allowed"},
            headers={"Allow": "GET, POST, OPTIONS"},
        )

    # Every POST body (including provider webhooks) is JSON.
    if request.method == "POST":
        content_type = request.headers.get("content-type", "")
        if not content_type.lower().startswith("application/json"):
            return JSONResponse(
                status_code=415,
                content={"detail": "Unsupported Media Type. Must be application/json"},
            )

    response: Response = await call_next(request)
    return response


def create_app(
    settings: Optional[Settings] = None,
    provider=_NO_PROVIDER,
    session_factory: Optional[sessionmaker[Session]] = None,
) -> FastAPI:
    """Build the API with its collaborators wired in explicitly.

    ``provider`` defaults to a Stripe client built from ``settings``; pass
    ``None`` to run without a payment provider.
    """
    settings = settings or get_settings()
    if provider is _NO_PROVIDER:
        provider = build_provider(settings)
    session_factory = session_factory or create_session_factory(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        init_db(session_factory, settings)
        logger.info(f"Using database at {settings.sqlalchemy_url}")
        yield
        session_factory.kw["bind"].dispose()

    app = FastAPI(title="PayVote", lifespan=lifespan)
    app.state.settings = settings
    app.state.provider = provider
    app.state.session_factory = session_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.allowed_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "content-type", "stripe-signature", "x-requested-with"],
        max_age=3600,
    )

    configure_limits(settings)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    app.add_exception_handler(PayVoteError, _payvote_error_handler)

    app.middleware("http")(add_security_headers)
    app.middleware("http")(check_http_hardening)

    app.include_router(public.router)
    app.include_router(checkout.router)
    app.include_router(webhooks.router)
    app.include_router(admin.router)
    return app


__all__ = ["SECURITY_HEADERS", "STRICT_TRANSPORT_SECURITY", "create_app"]
