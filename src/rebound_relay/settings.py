"""Service configuration via environment variables."""

from __future__ import annotations

from functools import cached_property

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite+aiosqlite:///./rebound_relay.db"

    # Service
    rest_port: int = 8080
    app_url: str = "http://localhost:3000"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Identity provider (Supabase-style HS256 access tokens)
    identity_jwt_secret: str = "change-me-identity-provider-jwt-secret"
    identity_jwt_algorithm: str = "HS256"
    identity_jwt_audience: str = "authenticated"
    identity_cookie_name: str = "sb-access-token"

    # Browser session (sticky organization selection)
    session_secret: str = "change-me-in-production-use-a-long-random-string"
    session_cookie_name: str = "rr_session"
    session_max_age_days: int = 7

    # Comma separated allow-list, parsed once into super_admins
    super_admin_emails: str = ""

    # Stripe / Stripe Connect
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_connect_client_id: str | None = None
    stripe_api_version: str = "2025-02-24.acacia"
    payout_currency: str = "usd"
    platform_commission_rate: float = 0.15

    # PayPal
    paypal_client_id: str | None = None
    paypal_client_secret: str | None = None
    paypal_api_base: str = "https://api-m.sandbox.paypal.com"

    # Dodo Payments
    dodo_api_key: str | None = None
    dodo_api_base: str = "https://test.dodopayments.com"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @cached_property
    def super_admins(self) -> frozenset[str]:
        return frozenset(
            email.strip().lower() for email in self.super_admin_emails.split(",") if email.strip()
        )


settings = Settings()
