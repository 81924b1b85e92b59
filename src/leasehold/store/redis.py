"""Redis-backed lease store.

Each lease is a hash at ``<prefix><name>`` holding ``created_at``,
``updated_at`` and ``locked_at`` as epoch microseconds plus ``max_age`` in
seconds (empty for non-expiring leases). Conditional operations run as Lua
scripts, which Redis executes atomically, so concurrent acquirers on one key
cannot interleave between the freshness check and the write.

Timestamps travel as decimal strings: Lua formats numbers with 14 significant
digits, which would truncate microsecond epochs.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, cast

from redis.exceptions import RedisError

from leasehold.core.lease import AcquireResult, Clock, Lease
from leasehold.errors import StorageUnavailable
from leasehold.store.base import LeaseStore

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "leasehold:lease:"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_FIELDS = ("created_at", "updated_at", "locked_at", "max_age")

# KEYS[1] = lease key; ARGV[1] = now (epoch us); ARGV[2] = max_age seconds or ""
# Returns {acquired, created_at, updated_at, locked_at, max_age}
TRY_ACQUIRE_SCRIPT = """
local current = redis.call("HMGET", KEYS[1], "created_at", "updated_at", "locked_at", "max_age")
if not current[1] then
    redis.call("HSET", KEYS[1],
        "created_at", ARGV[1], "updated_at", ARGV[1], "locked_at", ARGV[1], "max_age", ARGV[2])
    return {1, ARGV[1], ARGV[1], ARGV[1], ARGV[2]}
end
if ARGV[2] ~= "" and current[4] ~= "" then
    local age = tonumber(ARGV[1]) - tonumber(current[2])
    if age > tonumber(ARGV[2]) * 1000000 then
        redis.call("HSET", KEYS[1],
            "updated_at", ARGV[1], "locked_at", ARGV[1], "max_age", ARGV[2])
        return {1, current[1], ARGV[1], ARGV[1], ARGV[2]}
    end
end
return {0, current[1], current[2], current[3], current[4]}
"""

# KEYS[1] = lease key; ARGV[1] = now (epoch us)
TOUCH_SCRIPT = """
if redis.call("EXISTS", KEYS[1]) == 1 then
    redis.call("HSET", KEYS[1], "updated_at", ARGV[1])
    return 1
end
return 0
"""


def to_micros(value: datetime) -> str:
    return str((value - _EPOCH) // timedelta(microseconds=1))


def from_micros(value: bytes | str) -> datetime:
    return _EPOCH + timedelta(microseconds=int(_text(value)))


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


def _lease(name: str, fields: list[Any]) -> Lease:
    created_at, updated_at, locked_at, max_age = fields
    max_age_text = _text(max_age) if max_age is not None else ""
    return Lease(
        name=name,
        created_at=from_micros(created_at),
        updated_at=from_micros(updated_at),
        locked_at=from_micros(locked_at),
        max_age=int(max_age_text) if max_age_text else None,
    )


@contextmanager
def _storage_errors(operation: str, name: str | None = None) -> Iterator[None]:
    """Re-raise Redis and socket failures as StorageUnavailable."""
    try:
        yield
    except (RedisError, OSError) as e:
        logger.error(f"Lease store {operation} failed for '{name}': {e}")
        raise StorageUnavailable(operation, name, str(e)) from e


class RedisLeaseStore(LeaseStore):
    """LeaseStore backed by Redis hashes and Lua scripts."""

    def __init__(
        self,
        client: Redis,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock)
        self.client = client
        self.key_prefix = key_prefix

    def key(self, name: str) -> str:
        """The Redis key holding a lease."""
        return f"{self.key_prefix}{name}"

    async def try_acquire(self, name: str, max_age: int | None) -> AcquireResult:
        with _storage_errors("try_acquire", name):
            reply = await cast(
                Awaitable[list[Any]],
                self.client.eval(
                    TRY_ACQUIRE_SCRIPT,
                    1,
                    self.key(name),
                    to_micros(self.clock()),
                    "" if max_age is None else str(max_age),
                ),
            )
        acquired, *fields = reply
        return AcquireResult(acquired=bool(int(acquired)), lease=_lease(name, fields))

    async def touch(self, name: str) -> bool:
        with _storage_errors("touch", name):
            result = await cast(
                Awaitable[int],
                self.client.eval(TOUCH_SCRIPT, 1, self.key(name), to_micros(self.clock())),
            )
        return bool(int(result))

    async def clear(self, name: str) -> None:
        with _storage_errors("clear", name):
            await self.client.delete(self.key(name))

    async def read(self, name: str) -> Lease | None:
        with _storage_errors("read", name):
            fields = await cast(
                Awaitable[list[Any]],
                self.client.hmget(self.key(name), list(_FIELDS)),
            )
        if fields[0] is None:
            return None
        return _lease(name, fields)

    async def list_leases(self) -> list[Lease]:
        leases: list[Lease] = []
        with _storage_errors("list_leases"):
            # SCAN avoids blocking on large keyspaces
            async for key in self.client.scan_iter(match=f"{self.key_prefix}*"):
                name = _text(key)[len(self.key_prefix) :]
                lease = await self.read(name)
                if lease is not None:
                    leases.append(lease)
        return sorted(leases, key=lambda lease: lease.name)

    async def close(self) -> None:
        await self.client.aclose()
