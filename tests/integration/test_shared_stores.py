"""Lease store tests against real PostgreSQL and Redis servers.

Set LEASEHOLD_TEST_DATABASE_URL (postgresql+asyncpg://...) and/or
LEASEHOLD_TEST_REDIS_URL (redis://...) to run them.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator
from uuid import uuid4

import pytest
import pytest_asyncio

from leasehold.persistence.db import build_engine, build_session_factory, init_db
from leasehold.store.base import LeaseStore

pytestmark = pytest.mark.integration

DATABASE_URL = os.environ.get("LEASEHOLD_TEST_DATABASE_URL")
REDIS_URL = os.environ.get("LEASEHOLD_TEST_REDIS_URL")


@pytest_asyncio.fixture(params=["sql", "redis"])
async def store(request, clock) -> AsyncIterator[LeaseStore]:
    if request.param == "sql":
        if not DATABASE_URL:
            pytest.skip("LEASEHOLD_TEST_DATABASE_URL not set")
        from leasehold.store.sql import SqlLeaseStore

        engine = build_engine(DATABASE_URL)
        await init_db(engine)
        sql_store = SqlLeaseStore(build_session_factory(engine), clock=clock)
        yield sql_store
        await sql_store.close()
    else:
        if not REDIS_URL:
            pytest.skip("LEASEHOLD_TEST_REDIS_URL not set")
        import redis.asyncio as redis

        from leasehold.store.redis import RedisLeaseStore

        client = redis.from_url(REDIS_URL, decode_responses=False)
        redis_store = RedisLeaseStore(client, key_prefix=f"leasehold-test:{uuid4().hex}:", clock=clock)
        yield redis_store
        for lease in await redis_store.list_leases():
            await redis_store.clear(lease.name)
        await redis_store.close()


@pytest.fixture
def name() -> str:
    return f"job-{uuid4().hex[:8]}"


class TestSharedStore:
    """Behavior every shared store must provide."""

    @pytest.mark.asyncio
    async def test_acquire_contend_release(self, store: LeaseStore, name: str, clock) -> None:
        first = await store.try_acquire(name, 60)
        clock.advance(1)
        second = await store.try_acquire(name, 60)

        assert first.acquired is True
        assert second.acquired is False
        assert second.lease.locked_at == first.lease.locked_at

        await store.clear(name)
        assert await store.read(name) is None

    @pytest.mark.asyncio
    async def test_reclaim_after_max_age(self, store: LeaseStore, name: str, clock) -> None:
        await store.try_acquire(name, 60)
        clock.advance(60)
        assert (await store.try_acquire(name, 60)).acquired is False

        clock.advance(1)
        result = await store.try_acquire(name, 60)

        assert result.acquired is True
        assert result.lease.locked_at == clock.now
        await store.clear(name)

    @pytest.mark.asyncio
    async def test_non_expiring_never_reclaimed(self, store: LeaseStore, name: str, clock) -> None:
        await store.try_acquire(name, None)
        clock.advance(10 * 365 * 24 * 3600)

        assert (await store.try_acquire(name, 60)).acquired is False
        await store.clear(name)

    @pytest.mark.asyncio
    async def test_touch(self, store: LeaseStore, name: str, clock) -> None:
        assert await store.touch(name) is False

        await store.try_acquire(name, 60)
        clock.advance(30)
        assert await store.touch(name) is True

        lease = await store.read(name)
        assert lease is not None
        assert lease.updated_at == clock.now
        await store.clear(name)

    @pytest.mark.asyncio
    async def test_concurrent_acquire_has_one_winner(self, store: LeaseStore, name: str) -> None:
        results = await asyncio.gather(*(store.try_acquire(name, 60) for _ in range(10)))

        assert sum(result.acquired for result in results) == 1
        await store.clear(name)
