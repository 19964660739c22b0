"""Integration test fixtures for Legacy Letters.

Provides an async HTTP client wired to the file-backed test database and
a sync TestClient (for WebSocket) whose lifespan creates its own database.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from legacy_letters.api.app import create_app
from legacy_letters.core.config import get_settings
from legacy_letters.services.questionnaire import registry
from legacy_letters.services.storage import database

ADMIN_KEY = "test-admin-key"


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings so env overrides made by a test take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def app():
    """Create a fresh FastAPI application instance."""
    return create_app()


@pytest.fixture
def user_headers():
    return {"X-User-Id": "user-1"}


@pytest.fixture
def admin_headers(monkeypatch):
    """Enable the admin routes and return a valid Authorization header."""
    monkeypatch.setenv("ADMIN_API_KEY", ADMIN_KEY)
    get_settings.cache_clear()
    return {"Authorization": f"Bearer {ADMIN_KEY}"}


@pytest.fixture
async def async_client(app, db_engine):
    """AsyncClient backed by the test engine.

    Injects the test engine into the database module so that all routes
    and live questionnaires use the same SQLite file with tables created.
    """
    database.use_engine(db_engine)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    await registry.cleanup()
    database.use_engine(None)


@pytest.fixture
def test_client(monkeypatch, tmp_path):
    """Synchronous TestClient for WebSocket tests.

    The app runs on the TestClient's own event loop, so the lifespan
    creates the engine and tables there against a per-test SQLite file.
    """
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'ws.db'}")
    monkeypatch.setenv("TIMER_TICK_INTERVAL", "0.05")
    get_settings.cache_clear()
    database.use_engine(None)
    with TestClient(create_app()) as c:
        yield c
    database.use_engine(None)
