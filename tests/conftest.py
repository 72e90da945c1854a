"""Pytest configuration and shared fixtures."""

import os
import tempfile

# Ensure test environment before any application module reads settings
_DB_DIR = tempfile.mkdtemp(prefix="shortlinks-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_DIR}/test.db")
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import httpx
import pytest
import pytest_asyncio

from shortlinks.core.auth import create_access_token
from shortlinks.core.rate_limit import InMemoryRateLimiter, get_rate_limiter, limiter
from shortlinks.db.session import async_session_maker, create_tables, drop_tables
from shortlinks.main import app
from shortlinks.services.link_service import LinkService
from shortlinks.services.listing_cache import LinkListingCache, get_listing_cache


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return InMemoryRateLimiter(sweep_probability=0.0, clock=clock)


@pytest.fixture
def listing_cache():
    return LinkListingCache()


@pytest_asyncio.fixture
async def db():
    """Fresh schema for every test."""
    await drop_tables()
    await create_tables()
    yield
    await drop_tables()


@pytest_asyncio.fixture
async def session(db):
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def service(session, rate_limiter, listing_cache):
    return LinkService(session, rate_limiter=rate_limiter, listing_cache=listing_cache)


@pytest_asyncio.fixture
async def client(db, rate_limiter, listing_cache):
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_listing_cache] = lambda: listing_cache
    limiter.reset()

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build an Authorization header for an actor id."""
    def build(actor_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(actor_id)}"}
    return build
