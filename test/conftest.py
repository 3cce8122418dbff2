import os

# Env vars must exist BEFORE the connection module is imported
os.environ["CLASSIFIEDS_DB_USER"] = "classifieds"
os.environ["CLASSIFIEDS_DB_PASSWORD"] = "test-password"
os.environ["CLASSIFIEDS_DATABASE_NAME"] = "classifieds_test"
os.environ["CLASSIFIEDS_DB_HOST"] = "localhost"
os.environ["CLASSIFIEDS_DB_PORT"] = "5432"
os.environ.pop("CLASSIFIEDS_AD_TYPE_FILTER", None)

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import classifieds.database.connection as db_connection
from classifieds.main import app
from classifieds.middleware.auth import Session, get_optional_session, get_session


class FakePool:
    """Stands in for asyncpg.Pool; every acquire() hands out the same mocked connection"""

    def __init__(self):
        self.conn = AsyncMock()

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


@pytest.fixture(autouse=True)
def disable_rate_limit():
    app.state.limiter.enabled = False
    yield
    app.state.limiter.enabled = True


@pytest.fixture
def fake_pool():
    pool = FakePool()
    db_connection._db_pool = pool
    yield pool
    db_connection._db_pool = None


@pytest.fixture
def no_canonical_categories():
    """Empty category table, without touching the in-process cache"""
    fake = AsyncMock(return_value=())
    fake.cache_clear = MagicMock()
    with patch("classifieds.services.category_directory.fetch_canonical_categories", new=fake):
        yield fake


@pytest_asyncio.fixture
async def client(fake_pool, no_canonical_categories):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def _login(session: Session):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_optional_session] = lambda: session


@pytest.fixture
def user_session():
    session = Session(user_id="test_firebase_uid_123")
    _login(session)
    yield session
    app.dependency_overrides.clear()


@pytest.fixture
def admin_session():
    session = Session(user_id="admin_firebase_uid_1", role="admin")
    _login(session)
    yield session
    app.dependency_overrides.clear()
