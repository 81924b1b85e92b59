"""leasehold: named, lease-based semaphores over shared storage."""

from leasehold.core.lease import AcquireResult, Lease
from leasehold.distributed import (
    Handle,
    LeaseRenewer,
    PeriodicScheduler,
    ScheduledTask,
    Semaphores,
    exclusive,
)
from leasehold.errors import InvalidName, LeaseholdError, LeaseLost, StorageUnavailable
from leasehold.store import InMemoryLeaseStore, LeaseStore, create_store

__version__ = "0.1.0"

__all__ = [
    # Types
    "Lease",
    "AcquireResult",
    "Handle",
    # Coordination
    "Semaphores",
    "LeaseRenewer",
    "PeriodicScheduler",
    "ScheduledTask",
    "exclusive",
    # Stores
    "LeaseStore",
    "InMemoryLeaseStore",
    "create_store",
    # Errors
    "LeaseholdError",
    "StorageUnavailable",
    "LeaseLost",
    "InvalidName",
]
