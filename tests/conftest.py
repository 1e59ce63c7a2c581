"""
pytest configuration and shared fixtures for the ResQ API tests.

Tests never need a live MongoDB:
  1. connect_to_mongo / close_mongo_connection are patched to no-ops so
     FastAPI's lifespan doesn't try to reach a real database.
  2. db_client.client / db_client.db are None (disconnected), so the
     health check reports "disconnected" and store routes answer 503
     unless a test swaps in the in-memory FakeDB (see fakes.py).
  3. Services under test get a FrozenClock, so timestamps are exact.
"""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")

from fakes import FakeDB  # noqa: E402


class FrozenClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture(autouse=True)
async def mock_db():
    """Patch the MongoDB lifecycle and leave the app disconnected."""
    with (
        patch("resq.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("resq.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import resq.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """In-memory rate-limit counters must not bleed between tests."""
    from resq.core.rate_limit import limiter

    limiter.reset()
    yield


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
def reports(fake_db):
    """The raw reports collection behind the store."""
    from resq.core.config import settings

    return fake_db[settings.reports_collection]


@pytest.fixture()
def clock():
    return FrozenClock(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def store(fake_db, clock):
    from resq.services.report_store import ReportStore

    return ReportStore(fake_db, clock=clock)


@pytest.fixture()
def lifecycle(store, clock):
    from resq.services.lifecycle import ReportLifecycle

    return ReportLifecycle(store, clock=clock)


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001 (mock_db must run first)
    """HTTPX client against the app with the database disconnected."""
    from resq.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def api_client(fake_db):
    """HTTPX client against the app backed by the in-memory FakeDB."""
    from resq.core.database import get_db
    from resq.main import app

    app.dependency_overrides[get_db] = lambda: fake_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
