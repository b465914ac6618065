"""Signed browser session holding the sticky organization selection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt
from starlette.requests import HTTPConnection
from starlette.responses import Response

from rebound_relay.settings import settings

_SESSION_ALGORITHM = "HS256"


@dataclass
class BrowserSession:
    """Session-scoped state that must survive across requests.

    ``save`` is a no-op unless the selection actually changed.
    """

    current_organization_id: UUID | None = None
    dirty: bool = False

    def select_organization(self, org_id: UUID) -> None:
        if self.current_organization_id != org_id:
            self.current_organization_id = org_id
            self.dirty = True

    def encode(self) -> str:
        now = datetime.now(UTC)
        payload = {
            "org": str(self.current_organization_id) if self.current_organization_id else None,
            "iat": now,
            "exp": now + timedelta(days=settings.session_max_age_days),
        }
        return jwt.encode(payload, settings.session_secret, algorithm=_SESSION_ALGORITHM)

    def save(self, response: Response) -> None:
        if not self.dirty:
            return
        response.set_cookie(
            settings.session_cookie_name,
            self.encode(),
            max_age=settings.session_max_age_days * 24 * 60 * 60,
            httponly=True,
            samesite="lax",
        )
        self.dirty = False


def load_browser_session(conn: HTTPConnection) -> BrowserSession:
    """Read the session cookie; a missing, expired or tampered cookie starts a fresh session."""
    raw = conn.cookies.get(settings.session_cookie_name)
    if not raw:
        return BrowserSession()
    try:
        payload = jwt.decode(raw, settings.session_secret, algorithms=[_SESSION_ALGORITHM])
        org = payload.get("org")
        return BrowserSession(current_organization_id=UUID(org) if org else None)
    except (jwt.PyJWTError, ValueError):
        return BrowserSession()
