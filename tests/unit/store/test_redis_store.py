"""Tests for the Redis lease store with a mocked client."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from leasehold.errors import StorageUnavailable
from leasehold.store.redis import (
    TOUCH_SCRIPT,
    TRY_ACQUIRE_SCRIPT,
    RedisLeaseStore,
    from_micros,
    to_micros,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
NOW_US = to_micros(NOW)


@pytest.fixture
def client() -> AsyncMock:
    """Mock redis.asyncio client."""
    return AsyncMock()


@pytest.fixture
def store(client: AsyncMock) -> RedisLeaseStore:
    return RedisLeaseStore(client, clock=lambda: NOW)


class TestMicros:
    """Tests for timestamp encoding."""

    def test_round_trip_keeps_microseconds(self) -> None:
        """Epoch microseconds survive encoding."""
        value = datetime(2026, 1, 1, 12, 0, 0, 123456, tzinfo=UTC)
        assert from_micros(to_micros(value)) == value

    def test_accepts_bytes(self) -> None:
        """Values read from Redis arrive as bytes."""
        assert from_micros(NOW_US.encode()) == NOW


class TestRedisTryAcquire:
    """Tests for the acquire script call."""

    @pytest.mark.asyncio
    async def test_sends_script_with_key_and_args(
        self, store: RedisLeaseStore, client: AsyncMock
    ) -> None:
        """try_acquire evaluates the acquire script on the lease key."""
        client.eval.return_value = [1, NOW_US, NOW_US, NOW_US, "60"]

        await store.try_acquire("job-x", 60)

        client.eval.assert_awaited_once_with(
            TRY_ACQUIRE_SCRIPT, 1, "leasehold:lease:job-x", NOW_US, "60"
        )

    @pytest.mark.asyncio
    async def test_acquired_reply(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """A successful reply becomes an acquired lease."""
        client.eval.return_value = [1, NOW_US.encode(), NOW_US.encode(), NOW_US.encode(), b"60"]

        result = await store.try_acquire("job-x", 60)

        assert result.acquired is True
        assert result.lease.name == "job-x"
        assert result.lease.locked_at == NOW
        assert result.lease.max_age == 60

    @pytest.mark.asyncio
    async def test_contended_reply(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """A losing reply carries the holder's record."""
        earlier = to_micros(datetime(2026, 1, 1, 11, 59, 30, tzinfo=UTC)).encode()
        client.eval.return_value = [0, earlier, earlier, earlier, b"60"]

        result = await store.try_acquire("job-x", 60)

        assert result.acquired is False
        assert result.lease.updated_at == datetime(2026, 1, 1, 11, 59, 30, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_non_expiring_sends_empty_max_age(
        self, store: RedisLeaseStore, client: AsyncMock
    ) -> None:
        """max_age None is encoded as an empty string."""
        client.eval.return_value = [1, NOW_US, NOW_US, NOW_US, b""]

        result = await store.try_acquire("job-x", None)

        assert client.eval.await_args.args[-1] == ""
        assert result.lease.max_age is None

    @pytest.mark.asyncio
    async def test_custom_key_prefix(self, client: AsyncMock) -> None:
        """The key prefix is configurable."""
        store = RedisLeaseStore(client, key_prefix="app:locks:", clock=lambda: NOW)
        client.eval.return_value = [1, NOW_US, NOW_US, NOW_US, "60"]

        await store.try_acquire("job-x", 60)

        assert client.eval.await_args.args[2] == "app:locks:job-x"

    @pytest.mark.asyncio
    async def test_connection_error(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """Connection failures surface as StorageUnavailable."""
        client.eval.side_effect = RedisConnectionError("refused")

        with pytest.raises(StorageUnavailable, match="try_acquire"):
            await store.try_acquire("job-x", 60)


class TestRedisTouchClearRead:
    """Tests for touch, clear, read and list."""

    @pytest.mark.asyncio
    async def test_touch_existing(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """Touch runs the touch script and reports success."""
        client.eval.return_value = 1

        assert await store.touch("job-x") is True
        client.eval.assert_awaited_once_with(TOUCH_SCRIPT, 1, "leasehold:lease:job-x", NOW_US)

    @pytest.mark.asyncio
    async def test_touch_absent(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """A zero reply signals loss."""
        client.eval.return_value = 0

        assert await store.touch("job-x") is False

    @pytest.mark.asyncio
    async def test_touch_error(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """Touch failures surface as StorageUnavailable."""
        client.eval.side_effect = RedisConnectionError("refused")

        with pytest.raises(StorageUnavailable):
            await store.touch("job-x")

    @pytest.mark.asyncio
    async def test_clear_deletes_key(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """Clear deletes the lease key."""
        await store.clear("job-x")

        client.delete.assert_awaited_once_with("leasehold:lease:job-x")

    @pytest.mark.asyncio
    async def test_read_absent(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """Missing hashes read as None."""
        client.hmget.return_value = [None, None, None, None]

        assert await store.read("job-x") is None

    @pytest.mark.asyncio
    async def test_read_present(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """Hash fields are decoded into a Lease."""
        client.hmget.return_value = [NOW_US.encode(), NOW_US.encode(), NOW_US.encode(), b""]

        lease = await store.read("job-x")

        assert lease is not None
        assert lease.created_at == NOW
        assert lease.expiring is False

    @pytest.mark.asyncio
    async def test_list_leases(self, store: RedisLeaseStore, client: AsyncMock) -> None:
        """Listing scans the prefix and returns leases sorted by name."""

        async def scan_iter(match: str):
            assert match == "leasehold:lease:*"
            for key in (b"leasehold:lease:b", b"leasehold:lease:a"):
                yield key

        client.scan_iter = MagicMock(side_effect=scan_iter)
        client.hmget.return_value = [NOW_US.encode(), NOW_US.encode(), NOW_US.encode(), b"60"]

        leases = await store.list_leases()

        assert [lease.name for lease in leases] == ["a", "b"]
