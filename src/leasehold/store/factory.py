"""Lease store factory for leasehold."""

from __future__ import annotations

from leasehold.config import Settings, settings
from leasehold.store.base import LeaseStore
from leasehold.store.memory import InMemoryLeaseStore


def create_store(config: Settings | None = None) -> LeaseStore:
    """Build the LeaseStore selected by ``store_backend``."""
    config = config or settings
    backend = config.store_backend.lower()

    if backend == "memory":
        return InMemoryLeaseStore()
    if backend == "sql":
        from leasehold.persistence.db import build_engine, build_session_factory
        from leasehold.store.sql import SqlLeaseStore

        engine = build_engine(config.database_url, config)
        return SqlLeaseStore(build_session_factory(engine))
    if backend == "redis":
        import redis.asyncio as redis

        from leasehold.store.redis import RedisLeaseStore

        client = redis.from_url(  # type: ignore[no-untyped-call]
            config.redis_url,
            encoding="utf-8",
            decode_responses=False,
        )
        return RedisLeaseStore(client, key_prefix=config.redis_key_prefix)

    raise ValueError("Unsupported store_backend. Supported values: memory, sql, redis.")
