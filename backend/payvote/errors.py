from __future__ import annotations


class PayVoteError(Exception):
    """Base for errors the API turns into a JSON ``{"error", "detail"}`` response."""

    status_code = 400
    code = "bad_request"
    public_detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.public_detail)
        self.detail = detail or self.public_detail


class CandidateNotFound(PayVoteError):
    status_code = 404
    code = "candidate_not_found"
    public_detail = "Candidate not found"


class UnsupportedCurrency(PayVoteError):
    status_code = 400
    code = "unsupported_currency"
    public_detail = "Unsupported currency"


class AmountTooLarge(PayVoteError):
    status_code = 400
    code = "amount_too_large"
    public_detail = "Too many votes in one checkout"


class UnknownSession(PayVoteError):
    status_code = 404
    code = "unknown_session"
    public_detail = "Unknown session"


class AdminAuthError(PayVoteError):
    status_code = 401
    code = "unauthorized"
    public_detail = "Unauthorized"


class WebhookSignatureError(PayVoteError):
    status_code = 400
    code = "invalid_signature"
    public_detail = "Webhook signature verification failed"


class UpstreamError(PayVoteError):
    """Payment provider trouble. Detail is hidden in production."""

    status_code = 502
    code = "payment_provider_error"
    public_detail = "Payment provider request failed"


class PaymentProviderError(UpstreamError):
    pass


class ProviderNotConfigured(UpstreamError):
    status_code = 503
    code = "payment_provider_not_configured"
    public_detail = "Payment provider is not configured on the server"


__all__ = [
    "AdminAuthError",
    "AmountTooLarge",
    "CandidateNotFound",
    "PayVoteError",
    "PaymentProviderError",
    "ProviderNotConfigured",
    "UnknownSession",
    "UnsupportedCurrency",
    "UpstreamError",
    "WebhookSignatureError",
]
