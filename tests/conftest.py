"""Shared pytest fixtures for service and API tests.

Redis is replaced by an ``AsyncMock`` backed by a plain dict so the suite
runs without a server; the mock honours ``SET NX`` and ``INCR`` semantics.
"""

import os

os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["APP_DOMAIN"] = "https://clp.test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_KEY1"] = "admin-one"
os.environ["ADMIN_KEY3"] = "admin-three"

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient

from nvclip.config import Settings, get_settings
from nvclip.dependencies import ServiceManager
from nvclip.main import app
from nvclip.redis import Keyspace
from nvclip.service import ClipService
from nvclip.uptime import UptimeTracker


class FakeClock:
    """Controllable time source returning seconds."""

    def __init__(self, start: float = 1_770_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_store(data: dict[str, str] | None = None) -> AsyncMock:
    data = {} if data is None else data

    async def get(key):
        return data.get(key)

    async def set_value(key, value, nx=False, **kwargs):
        if nx and key in data:
            return None
        data[key] = str(value)
        return True

    async def incr(key, amount=1):
        data[key] = str(int(data.get(key, "0")) + amount)
        return int(data[key])

    async def delete(*keys):
        return sum(1 for key in keys if data.pop(key, None) is not None)

    store = AsyncMock(spec=redis.Redis)
    store.get = AsyncMock(side_effect=get)
    store.set = AsyncMock(side_effect=set_value)
    store.incr = AsyncMock(side_effect=incr)
    store.delete = AsyncMock(side_effect=delete)
    store.ping = AsyncMock(return_value=True)
    store.aclose = AsyncMock(return_value=None)
    store.data = data
    return store


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def store() -> AsyncMock:
    return make_store()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def keys() -> Keyspace:
    return Keyspace("clp")


@pytest.fixture
def tracker(store, keys, mock_logger, clock) -> UptimeTracker:
    return UptimeTracker(store, keys, mock_logger, clock=clock)


@pytest.fixture
def make_service(store, keys, tracker, mock_logger, settings):
    """Build a ClipService over the fake store, optionally with settings overrides."""

    def _make(**overrides) -> ClipService:
        ctx = Mock()
        ctx.store = store
        ctx.keys = keys
        ctx.uptime = tracker
        ctx.logger = mock_logger
        ctx.settings = settings.model_copy(update=overrides) if overrides else settings
        return ClipService.from_context(ctx)

    return _make


@pytest_asyncio.fixture(scope="function")
async def manager(store: AsyncMock) -> AsyncGenerator[ServiceManager, None]:
    service_manager = ServiceManager()
    await service_manager.initialize(store=store)
    yield service_manager
    await service_manager.cleanup()


@pytest_asyncio.fixture(scope="function")
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
