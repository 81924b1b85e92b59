"""In-process lease store.

Leases live in a dict guarded by an asyncio lock, so the store only
coordinates tasks inside one event loop. Useful for tests and single-node
deployments.
"""

from __future__ import annotations

import asyncio
import logging

from leasehold.core.lease import AcquireResult, Clock, Lease
from leasehold.store.base import LeaseStore

logger = logging.getLogger(__name__)


class InMemoryLeaseStore(LeaseStore):
    """LeaseStore backed by a dictionary."""

    def __init__(self, clock: Clock | None = None) -> None:
        super().__init__(clock)
        self._leases: dict[str, Lease] = {}
        self._lock = asyncio.Lock()

    async def try_acquire(self, name: str, max_age: int | None) -> AcquireResult:
        async with self._lock:
            now = self.clock()
            current = self._leases.get(name)

            if current is None:
                lease = Lease.fresh(name, max_age, now)
                self._leases[name] = lease
                return AcquireResult(acquired=True, lease=lease)

            if current.is_expired(max_age, now):
                lease = current.reclaimed(max_age, now)
                self._leases[name] = lease
                logger.debug(f"Reclaimed expired lease '{name}'")
                return AcquireResult(acquired=True, lease=lease)

            return AcquireResult(acquired=False, lease=current)

    async def touch(self, name: str) -> bool:
        async with self._lock:
            current = self._leases.get(name)
            if current is None:
                return False
            self._leases[name] = current.touched(self.clock())
            return True

    async def clear(self, name: str) -> None:
        async with self._lock:
            self._leases.pop(name, None)

    async def read(self, name: str) -> Lease | None:
        return self._leases.get(name)

    async def list_leases(self) -> list[Lease]:
        return [self._leases[name] for name in sorted(self._leases)]
