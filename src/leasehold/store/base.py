"""Base lease store interface.

Defines the storage boundary every backend implements. Each method must be a
single atomic operation on the backing store: callers never read a record and
then write it back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from leasehold.core.lease import AcquireResult, Clock, Lease, utcnow


class LeaseStore(ABC):
    """Abstract base class for lease store backends."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock: Clock = clock or utcnow

    @abstractmethod
    async def try_acquire(self, name: str, max_age: int | None) -> AcquireResult:
        """Create or reclaim the named lease.

        Args:
            name: Lease name
            max_age: Seconds after the last refresh at which an existing
                expiring record may be reclaimed. ``None`` creates a
                non-expiring lease and never reclaims.

        Returns:
            AcquireResult with ``acquired=True`` when the record was created or
            reclaimed, otherwise the current record unchanged

        Raises:
            StorageUnavailable: If the store could not execute the operation
        """
        ...

    @abstractmethod
    async def touch(self, name: str) -> bool:
        """Refresh ``updated_at`` if the record exists.

        Returns:
            False if the record is absent (lease lost)
        """
        ...

    @abstractmethod
    async def clear(self, name: str) -> None:
        """Remove the record. Clearing an absent name is not an error."""
        ...

    @abstractmethod
    async def read(self, name: str) -> Lease | None:
        """Return the record without modifying it."""
        ...

    @abstractmethod
    async def list_leases(self) -> list[Lease]:
        """Return all records ordered by name."""
        ...

    async def close(self) -> None:
        """Release backend connections."""
        return None
