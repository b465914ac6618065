"""Health checks and request-level error rendering, without a database."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from _helpers import FakeStripeGateway
from fastapi.testclient import TestClient

from rebound_relay.auth.deps import get_current_identity, get_super_admins
from rebound_relay.auth.identity import create_access_token
from rebound_relay.auth.models import Identity
from rebound_relay.billing.deps import get_stripe_gateway
from rebound_relay.db.deps import get_session
from rebound_relay.rest.app import create_app


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    return session


@pytest.fixture
def app(mock_session):
    app = create_app()
    app.dependency_overrides[get_session] = lambda: mock_session
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def _bearer(email: str = "someone@example.edu") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(uuid.uuid4(), email)}"}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_ready_pings_database(client, mock_session):
    resp = client.get("/health/ready")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ready"}
    mock_session.execute.assert_awaited_once()


def test_authenticated_route_without_credentials_is_401(client):
    resp = client.get("/api/app/me")
    assert resp.status_code == 401
    assert resp.json()["error"] == "Unauthorized"


def test_org_route_without_credentials_is_401(client):
    resp = client.get("/api/app/organizations/current")
    assert resp.status_code == 401


def test_super_admin_with_empty_allow_list(app, client):
    app.dependency_overrides[get_super_admins] = lambda: frozenset()
    resp = client.get("/api/super-admin/audit-logs", headers=_bearer())
    assert resp.status_code == 403
    assert resp.json()["message"] == "No super admins configured"


def test_super_admin_rejects_unlisted_email(app, client):
    app.dependency_overrides[get_super_admins] = lambda: frozenset({"root@example.edu"})
    resp = client.get("/api/super-admin/audit-logs", headers=_bearer("someone@example.edu"))
    assert resp.status_code == 403
    assert resp.json()["error"] == "Forbidden"


def test_validation_errors_are_400_with_details(app, client):
    app.dependency_overrides[get_current_identity] = lambda: Identity(
        user_id=uuid.uuid4(), email="someone@example.edu"
    )
    resp = client.patch("/api/app/me", json={"name": "A"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid request"
    assert body["details"]
    assert body["details"][0]["loc"][-1] == "name"


def test_webhook_without_signature_is_400(app, client):
    app.dependency_overrides[get_stripe_gateway] = FakeStripeGateway
    resp = client.post("/api/webhooks/stripe-rebound", content=b"{}")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid signature"
