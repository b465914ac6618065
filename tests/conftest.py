"""Service test fixtures: in-memory SQLite database and fake payment providers."""

from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Make _helpers importable from test files
sys.path.insert(0, str(Path(__file__).parent))

from _helpers import FakeDodoClient, FakePaypalClient, FakeStripeGateway, Seeder  # noqa: E402

from rebound_relay.billing.deps import (  # noqa: E402
    get_dodo_client,
    get_paypal_client,
    get_stripe_gateway,
)
from rebound_relay.db.engine import set_session_factory  # noqa: E402
from rebound_relay.db.models import Base  # noqa: E402
from rebound_relay.rest.app import create_app  # noqa: E402

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    set_session_factory(factory)
    return factory


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seed(session_factory):
    async with session_factory() as session:
        yield Seeder(session)


@pytest.fixture
def stripe_gateway() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest.fixture
def paypal_client() -> FakePaypalClient:
    return FakePaypalClient()


@pytest.fixture
def app(session_factory, stripe_gateway, paypal_client):
    app = create_app()
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    app.dependency_overrides[get_paypal_client] = lambda: paypal_client
    app.dependency_overrides[get_dodo_client] = FakeDodoClient
    return app


@pytest_asyncio.fixture
async def client(app):
    """HTTP client running the app in the test's event loop, so it shares the SQLite engine."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
