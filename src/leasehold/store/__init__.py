"""Lease store backends.

Every backend implements the atomic conditional operations of
``LeaseStore``: try_acquire, touch, clear and read.

- InMemoryLeaseStore: single event loop, tests and single-node use
- SqlLeaseStore: PostgreSQL/SQLite via SQLAlchemy async upserts
- RedisLeaseStore: Redis hashes updated by Lua scripts

The SQL and Redis backends are imported lazily by ``create_store`` so that
only the selected driver has to be installed.
"""

from leasehold.store.base import LeaseStore
from leasehold.store.factory import create_store
from leasehold.store.memory import InMemoryLeaseStore

__all__ = [
    "LeaseStore",
    "InMemoryLeaseStore",
    "create_store",
]
