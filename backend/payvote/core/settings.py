from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

BASE_DIR = Path(__file__).resolve().parent.parent.parent
DEFAULT_DB_PATH = BASE_DIR / "persist" / "votes.db"

DEFAULT_CURRENCIES = [
    "USD", "CAD", "EUR", "GBP", "AUD", "NZD", "JPY", "AED", "SAR", "INR",
    "NGN", "ZAR", "BRL", "MXN", "CHF", "SEK", "NOK", "DKK", "PLN", "RON",
    "TRY", "ILS", "HKD", "SGD", "CZK",
]

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "https://localhost:5173",
]

# Render-hosted frontends and GitHub Codespaces previews.
DEFAULT_ALLOWED_ORIGIN_REGEX = r"https://([a-zA-Z0-9-]+\.)+(onrender\.com|app\.github\.dev)"


class Settings(BaseModel):
    environment: str = Field(default="development")
    database_url: Optional[str] = Field(default=None)
    db_path: str = Field(default=str(DEFAULT_DB_PATH))
    frontend_url: str = Field(default="http://localhost:5173")
    allowed_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    allowed_origin_regex: Optional[str] = Field(default=DEFAULT_ALLOWED_ORIGIN_REGEX)
    instagram_url: str = Field(default="https://instagram.com/Wiz_pharoah")
    admin_token: str = Field(default="")
    vote_price_minor: int = Field(default=100, gt=0)
    # Stripe rejects checkout amounts above eight digits in minor units.
    max_amount_minor: int = Field(default=99_999_999, gt=0)
    candidates: List[str] = Field(default_factory=lambda: ["Yes", "No"])
    supported_currencies: List[str] = Field(default_factory=lambda: list(DEFAULT_CURRENCIES))
    default_currency: str = Field(default="USD")
    default_question: str = Field(default="Is this week's answer YES?")
    default_glow: str = Field(default="#00ffff")
    stripe_secret_key: Optional[str] = Field(default=None)
    stripe_webhook_secret: Optional[str] = Field(default=None)
    stripe_timeout_seconds: float = Field(default=10.0, gt=0)
    stripe_max_retries: int = Field(default=0, ge=0)
    rate_limit_enabled: bool = Field(default=True)
    checkout_rate_limit: str = Field(default="10/minute")
    log_file: Optional[str] = Field(default="payvote.log")
    log_level: str = Field(default="INFO")

    @field_validator("frontend_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("supported_currencies")
    @classmethod
    def _upper_currencies(cls, v: List[str]) -> List[str]:
        return [c.strip().upper() for c in v if c.strip()]

    @field_validator("default_currency")
    @classmethod
    def _upper_default_currency(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.db_path}"

    @property
    def cors_origins(self) -> List[str]:
        origins = list(self.allowed_origins)
        if self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins


def _split(raw: Optional[str]) -> List[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def _load_settings() -> Settings:
    env = os.getenv
    values = {}

    for field, name in (
        ("environment", "APP_ENV"),
        ("db_path", "DB_PATH"),
        ("frontend_url", "FRONTEND_URL"),
        ("instagram_url", "INSTAGRAM_URL"),
        ("admin_token", "ADMIN_TOKEN"),
        ("default_currency", "DEFAULT_CURRENCY"),
        ("default_question", "DEFAULT_QUESTION"),
        ("default_glow", "DEFAULT_GLOW"),
        ("checkout_rate_limit", "CHECKOUT_RATE_LIMIT"),
        ("log_level", "LOG_LEVEL"),
    ):
        value = env(name)
        if value:
            values[field] = value.strip()

    # Empty strings mean "unset" for optional secrets and URLs.
    for field, name in (
        ("database_url", "DATABASE_URL"),
        ("stripe_secret_key", "STRIPE_SECRET_KEY"),
        ("stripe_webhook_secret", "STRIPE_WEBHOOK_SECRET"),
    ):
        value = (env(name) or "").strip()
        values[field] = value or None

    if env("LOG_FILE") is not None:
        values["log_file"] = env("LOG_FILE", "").strip() or None
    if env("ALLOWED_ORIGIN_REGEX") is not None:
        values["allowed_origin_regex"] = env("ALLOWED_ORIGIN_REGEX", "").strip() or None

    for field, name in (
        ("allowed_origins", "ALLOWED_ORIGINS"),
        ("candidates", "CANDIDATES"),
        ("supported_currencies", "SUPPORTED_CURRENCIES"),
    ):
        items = _split(env(name))
        if items:
            values[field] = items

    if env("VOTE_PRICE_MINOR"):
        values["vote_price_minor"] = int(env("VOTE_PRICE_MINOR"))
    if env("MAX_AMOUNT_MINOR"):
        values["max_amount_minor"] = int(env("MAX_AMOUNT_MINOR"))
    if env("STRIPE_TIMEOUT_SECONDS"):
        values["stripe_timeout_seconds"] = float(env("STRIPE_TIMEOUT_SECONDS"))
    if env("STRIPE_MAX_RETRIES"):
        values["stripe_max_retries"] = int(env("STRIPE_MAX_RETRIES"))
    values["rate_limit_enabled"] = env("RATE_LIMIT_ENABLED", "1") == "1"

    return Settings(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return _load_settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = ["Settings", "get_settings", "reload_settings"]
