import asyncio
import os
import sys
from pathlib import Path

# Cheap Argon2 parameters and the in-process store for the whole test run.
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("PASSWORD_TIME_COST", "1")
os.environ.setdefault("PASSWORD_MEMORY_COST", "1024")
os.environ.setdefault("PASSWORD_PARALLELISM", "1")
os.environ.setdefault("ENV", "test")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from parley.domain.identity import service as identity_service
from parley.domain.live.registry import LiveQueryRegistry
from parley.infra.store import MemoryStore, change_feed, set_store
from parley.main import app


# Ensure a selector-based event loop policy on Windows to avoid Proactor issues with async IO
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
    from parley.infra.redis import redis_client, set_redis_client

    original = redis_client.client
    client = FakeRedis(decode_responses=True)
    set_redis_client(client)
    try:
        yield client
    finally:
        set_redis_client(original)
        await client.flushall()


@pytest.fixture(autouse=True)
def memory_store():
    store = MemoryStore()
    set_store(store)
    try:
        yield store
    finally:
        set_store(None)


@pytest.fixture
def live_registry():
    registry = LiveQueryRegistry(change_feed)
    registry.attach()
    try:
        yield registry
    finally:
        registry.detach()


@pytest_asyncio.fixture
async def api_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def alice():
    return await identity_service.create_user("alice", "pw1234")


@pytest_asyncio.fixture
async def bob():
    return await identity_service.create_user("bob", "pw1234")


@pytest_asyncio.fixture
async def carol():
    return await identity_service.create_user("carol", "pw1234")
