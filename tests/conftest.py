"""
Shared fixtures: every test gets a fresh in-memory store.
"""
import asyncio
from datetime import datetime, timedelta, timezone
import httpx
import pytest
import pytest_asyncio

from timeseats.core.redis_client import set_redis
from timeseats.repositories import memory_uow_factory
from timeseats.repositories.memory import MemoryInventoryRepository
from timeseats.services import build_services


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the idempotency cache and health check."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.data:
            return None
        self.data[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key):
        self.ttls.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    async def ping(self):
        return True

    async def aclose(self):
        pass


@pytest.fixture
def uow_factory():
    return memory_uow_factory()


@pytest.fixture
def store(uow_factory):
    return uow_factory.store


@pytest.fixture
def services(uow_factory):
    return build_services(uow_factory)


@pytest.fixture
def yielding_reads(monkeypatch):
    """Every inventory read suspends once, so concurrent callers interleave between check and write."""
    load = MemoryInventoryRepository._load

    async def _load(self, key):
        await asyncio.sleep(0)
        return await load(self, key)

    monkeypatch.setattr(MemoryInventoryRepository, "_load", _load)


@pytest.fixture
def slot_window():
    start = datetime(2026, 10, 17, 11, 0, tzinfo=timezone.utc)
    return start, start + timedelta(hours=2)


@pytest_asyncio.fixture
async def product(services):
    return await services.products.create_product("Yakisoba", 1000)


@pytest_asyncio.fixture
async def other_product(services):
    return await services.products.create_product("Ramune", 200)


@pytest_asyncio.fixture
async def slot(services, slot_window):
    created = await services.slots.create_slot(*slot_window)
    return await services.slots.activate(created.id)


@pytest_asyncio.fixture
async def stocked_slot(services, slot, product, other_product):
    """Active slot with 10 x product and 3 x other_product."""
    await services.slots.add_product(slot.id, product.id, 10)
    await services.slots.add_product(slot.id, other_product.id, 3)
    return slot


@pytest_asyncio.fixture
async def confirmed_order(services, stocked_slot, product):
    order = await services.orders.create_order(stocked_slot.id, [(product.id, 1)])
    return await services.orders.confirm_order(order.id)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest_asyncio.fixture
async def client(services, fake_redis):
    """HTTP client bound to the app, backed by the in-memory services and fake Redis."""
    from timeseats.main import app

    app.state.services = services
    app.state.engine = None
    set_redis(fake_redis)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    set_redis(None)
