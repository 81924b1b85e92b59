"""Distributed coordination primitives for leasehold.

Provides lease-based mutual exclusion across processes that share a store:
- Semaphores facade (acquire/release by name)
- LeaseRenewer keeping held leases fresh in the background
- PeriodicScheduler driving renewal ticks

Example:
    from leasehold.distributed import PeriodicScheduler, Semaphores

    async with PeriodicScheduler() as scheduler:
        semaphores = Semaphores.from_store(store, scheduler)
        handle = await semaphores.acquire("cleanup", max_age=60, renewal_interval=20)

    # Or as decorator
    @exclusive(semaphores, "cleanup", max_age=60, renewal_interval=20)
    async def cleanup_task():
        ...
"""

from leasehold.distributed.renewer import LeaseRenewer
from leasehold.distributed.scheduler import PeriodicScheduler, ScheduledTask
from leasehold.distributed.semaphores import Handle, Semaphores, exclusive

__all__ = [
    "Handle",
    "LeaseRenewer",
    "PeriodicScheduler",
    "ScheduledTask",
    "Semaphores",
    "exclusive",
]
