"""
Pytest configuration and fixtures for livewatch tests.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from livewatch.config import Settings
from livewatch.main import create_app
from livewatch.services.event_store import EventStore


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def store() -> EventStore:
    return EventStore()


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client for API testing; each test gets a fresh app and store."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def clock():
    return FakeClock()
