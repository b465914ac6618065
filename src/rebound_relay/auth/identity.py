"""Session resolver: turns identity-provider access tokens into an Identity.

The identity provider (Supabase) issues HS256 JWTs signed with the project
secret. Resolution fails open: anything invalid yields None, never an error.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import jwt
import structlog
from starlette.requests import HTTPConnection

from rebound_relay.auth.models import Identity
from rebound_relay.settings import settings

logger = structlog.get_logger()


def _now_utc() -> datetime:
    return datetime.now(UTC)


def create_access_token(
    user_id: UUID,
    email: str,
    user_metadata: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Mint a provider-compatible access token (local development and tests)."""
    if expires_delta is None:
        expires_delta = timedelta(hours=1)
    now = _now_utc()
    payload = {
        "sub": str(user_id),
        "email": email,
        "aud": settings.identity_jwt_audience,
        "role": "authenticated",
        "user_metadata": user_metadata or {},
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.identity_jwt_secret, algorithm=settings.identity_jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and verify an access token. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.identity_jwt_secret,
        algorithms=[settings.identity_jwt_algorithm],
        audience=settings.identity_jwt_audience,
    )


def identity_from_token(token: str) -> Identity | None:
    try:
        payload = decode_token(token)
    except jwt.PyJWTError as exc:
        logger.debug("identity_token_rejected", error=str(exc))
        return None

    try:
        user_id = UUID(payload["sub"])
    except (KeyError, ValueError):
        logger.debug("identity_token_malformed")
        return None

    email = payload.get("email")
    if not email:
        return None

    metadata = payload.get("user_metadata") or {}
    return Identity(
        user_id=user_id,
        email=email,
        name=metadata.get("name") or metadata.get("full_name"),
        image=metadata.get("avatar_url"),
        metadata=metadata,
    )


def resolve_session(conn: HTTPConnection) -> Identity | None:
    """Resolve the caller from ``Authorization: Bearer`` or the provider's session cookie."""
    auth_header = conn.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return identity_from_token(auth_header.removeprefix("Bearer ").strip())

    cookie_token = conn.cookies.get(settings.identity_cookie_name)
    if cookie_token:
        return identity_from_token(cookie_token)
    return None
