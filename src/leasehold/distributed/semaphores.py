"""Named semaphores over a shared lease store.

Independent processes coordinate exclusive access to a named resource (for
example, making sure only one scheduler instance runs a given periodic job)
by acquiring a lease record in shared storage:

1. ``acquire`` atomically creates the record, or reclaims it when the previous
   holder stopped refreshing it for longer than ``max_age``
2. While held, a background renewal touches the record every
   ``renewal_interval`` seconds
3. ``release`` stops the renewal and clears the record

Exclusivity is best effort and time bounded. A holder paused for longer than
``max_age`` (GC, swap, a stopped VM) or clocks that disagree between nodes can
let two processes believe they hold the same lease. This is a lease, not a
consensus protocol.

Non-expiring leases (``acquire(name)`` without ``max_age``) are never
reclaimed. If their holder dies without releasing, the lease stays held until
someone releases it by hand (``leasehold release NAME --backend sql``).

``release`` works by name only and does not check who acquired the lease:
any caller that knows the name can release it.

Example:
    async with PeriodicScheduler() as scheduler:
        semaphores = Semaphores.from_store(store, scheduler)

        handle = await semaphores.acquire("nightly-report", max_age=60, renewal_interval=20)
        if handle.acquired:
            try:
                await build_report()
            finally:
                await semaphores.release("nightly-report")

        # Or as a context manager
        async with await semaphores.acquire("nightly-report", 60, 20) as handle:
            if handle.acquired:
                await build_report()
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import TracebackType
from typing import Awaitable, Callable, ParamSpec, TypeVar

from leasehold.config import Settings
from leasehold.core.lease import Lease, utcnow, validate_name
from leasehold.distributed.renewer import LeaseRenewer
from leasehold.distributed.scheduler import PeriodicScheduler, ScheduledTask
from leasehold.errors import LeaseLost, StorageUnavailable
from leasehold.observability.logging import LogContext
from leasehold.observability.metrics import get_metrics
from leasehold.store.base import LeaseStore
from leasehold.store.factory import create_store

logger = logging.getLogger(__name__)


@dataclass
class Handle:
    """Caller-side view of an acquire attempt.

    A handle records what this caller believes; it is not proof of ownership.
    ``lease`` is the record as observed when ``acquire`` returned: the
    caller's own lease when ``acquired`` is True, otherwise the current
    holder's.
    """

    name: str
    acquired: bool
    lease: Lease
    max_age: int | None = None
    renewal_interval: float | None = None
    renewal: ScheduledTask | None = field(default=None, repr=False)
    lost: bool = False
    released: bool = False
    _semaphores: Semaphores | None = field(default=None, repr=False, compare=False)

    @property
    def locked_at(self) -> datetime:
        """When the lease observed at acquire time was taken by its holder."""
        return self.lease.locked_at

    def duration_since_locked(self, now: datetime | None = None) -> timedelta:
        """Time elapsed since the observed lease was taken."""
        return (now or utcnow()) - self.lease.locked_at

    @property
    def expiring(self) -> bool:
        return self.max_age is not None

    async def release(self) -> None:
        """Release the lease unless it was never acquired, already released, or lost."""
        if not self.acquired or self.released or self.lost or self._semaphores is None:
            return
        await self._semaphores.release(self.name)

    async def __aenter__(self) -> Handle:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.release()


class Semaphores:
    """Acquire and release named leases.

    Args:
        store: Shared lease store
        renewer: Renewer running on the process's PeriodicScheduler
    """

    def __init__(self, store: LeaseStore, renewer: LeaseRenewer) -> None:
        self.store = store
        self.renewer = renewer
        self._handles: dict[str, Handle] = {}
        renewer.add_loss_listener(self._on_lease_lost)

    @classmethod
    def from_store(cls, store: LeaseStore, scheduler: PeriodicScheduler) -> Semaphores:
        """Build a facade with its own renewer on ``scheduler``."""
        return cls(store, LeaseRenewer(store, scheduler))

    @classmethod
    def from_settings(
        cls, config: Settings | None, scheduler: PeriodicScheduler
    ) -> Semaphores:
        """Build a facade over the store selected by ``config.store_backend``."""
        return cls.from_store(create_store(config), scheduler)

    async def acquire(
        self,
        name: str,
        max_age: int | None = None,
        renewal_interval: float | None = None,
    ) -> Handle:
        """Try once to acquire the named lease.

        Never waits for a holder to release. Retry policy belongs to the caller.

        Args:
            name: Lease name
            max_age: Seconds without renewal after which the lease may be
                reclaimed by another caller. ``None`` acquires a non-expiring
                lease that is never reclaimed and never renewed.
            renewal_interval: Seconds between background renewals. Should be
                well below ``max_age``. ``None`` registers no renewal.

        Returns:
            Handle whose ``acquired`` tells whether the lease was obtained

        Raises:
            InvalidName: If the name is empty or malformed
            ValueError: If max_age or renewal_interval is not positive, or
                renewal_interval is given without max_age
            StorageUnavailable: If the store could not be reached; no renewal
                is registered
        """
        validate_name(name)
        if max_age is not None and max_age <= 0:
            raise ValueError(f"max_age must be positive, got {max_age}")
        if renewal_interval is not None:
            if max_age is None:
                raise ValueError("renewal_interval requires max_age")
            if renewal_interval <= 0:
                raise ValueError(f"renewal_interval must be positive, got {renewal_interval}")

        metrics = get_metrics()
        with LogContext(lease_name=name):
            try:
                result = await self.store.try_acquire(name, max_age)
            except StorageUnavailable:
                metrics.acquire_total.labels(outcome="error").inc()
                raise

            handle = Handle(
                name=name,
                acquired=result.acquired,
                lease=result.lease,
                max_age=max_age,
                renewal_interval=renewal_interval,
                _semaphores=self,
            )

            if not result.acquired:
                metrics.acquire_total.labels(outcome="contended").inc()
                logger.debug(
                    f"Lease '{name}' is held (locked at {result.lease.locked_at.isoformat()})"
                )
                return handle

            if renewal_interval is None:
                # A renewal left over from an earlier hold of this name
                self.renewer.stop_update(name)
            else:
                try:
                    handle.renewal = self.renewer.schedule_for_update(name, renewal_interval)
                except Exception:
                    # Do not keep a lease nobody will renew
                    await self.store.clear(name)
                    raise

            self._handles[name] = handle
            metrics.acquire_total.labels(outcome="acquired").inc()
            if max_age is None:
                logger.info(f"Acquired non-expiring lease '{name}'")
            else:
                logger.info(f"Acquired lease '{name}' (max_age={max_age}s)")
            return handle

    async def release(self, name: str) -> None:
        """Stop renewing the named lease and clear its record.

        Any caller may release any name. Renewal is stopped before the store
        is touched, so a failing store never leaves a renewal running.

        Raises:
            InvalidName: If the name is empty or malformed
            StorageUnavailable: If the record could not be cleared
        """
        validate_name(name)
        with LogContext(lease_name=name):
            self.renewer.stop_update(name)
            handle = self._handles.pop(name, None)
            if handle is not None:
                handle.released = True

            try:
                await self.store.clear(name)
            except StorageUnavailable as e:
                logger.error(f"Failed to clear lease '{name}' after stopping renewal: {e}")
                raise

            get_metrics().release_total.inc()
            logger.info(f"Released lease '{name}'")

    async def read(self, name: str) -> Lease | None:
        """Inspect the named lease without changing it."""
        validate_name(name)
        return await self.store.read(name)

    async def list_leases(self) -> list[Lease]:
        return await self.store.list_leases()

    def _on_lease_lost(self, error: LeaseLost) -> None:
        handle = self._handles.pop(error.name, None)
        if handle is not None:
            handle.lost = True


P = ParamSpec("P")
R = TypeVar("R")


def exclusive(
    semaphores: Semaphores,
    name: str,
    max_age: int | None = None,
    renewal_interval: float | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R | None]]]:
    """Decorator that runs a coroutine only while holding the named lease.

    When the lease is held elsewhere the call is skipped and returns None.

    Example:
        @exclusive(semaphores, "daily-report", max_age=60, renewal_interval=20)
        async def generate_daily_report():
            # Runs on at most one instance at a time
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R | None]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
            async with await semaphores.acquire(name, max_age, renewal_interval) as handle:
                if handle.acquired:
                    return await func(*args, **kwargs)
                logger.debug(f"Skipping {func.__name__} - lease '{name}' is held")
                return None

        return wrapper

    return decorator
