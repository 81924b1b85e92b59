"""Background renewal of held leases.

The renewer keeps locally held leases fresh by touching their record every
renewal interval on a shared PeriodicScheduler. The renewal interval must be
shorter than the lease's max age (half or less is a good margin); this is the
caller's responsibility and is not checked here.

When a touch finds the record gone, the lease was released or reclaimed by
someone else. Renewal for that name stops and registered loss listeners are
called; the loss is never raised into unrelated code.

Registry updates never await between reading and writing the mapping, so
they are atomic with respect to other tasks on the event loop.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable

from leasehold.distributed.scheduler import PeriodicScheduler, ScheduledTask
from leasehold.errors import LeaseLost, StorageUnavailable
from leasehold.observability.logging import LogContext
from leasehold.observability.metrics import get_metrics
from leasehold.store.base import LeaseStore

logger = logging.getLogger(__name__)

LossListener = Callable[[LeaseLost], Awaitable[None] | None]


class LeaseRenewer:
    """Schedules periodic touches for held leases.

    Args:
        store: Store holding the lease records
        scheduler: Shared scheduler running the renewal ticks
    """

    def __init__(self, store: LeaseStore, scheduler: PeriodicScheduler) -> None:
        self.store = store
        self.scheduler = scheduler
        self._renewals: dict[str, ScheduledTask] = {}
        self._listeners: list[LossListener] = []

    def add_loss_listener(self, listener: LossListener) -> None:
        """Register a callback (sync or async) invoked when a lease is lost."""
        self._listeners.append(listener)

    def is_scheduled(self, name: str) -> bool:
        return name in self._renewals

    def scheduled_names(self) -> list[str]:
        return sorted(self._renewals)

    def schedule_for_update(self, name: str, renewal_interval: float) -> ScheduledTask:
        """Start touching ``name`` every ``renewal_interval`` seconds.

        Replaces any renewal already scheduled for the same name.

        Returns:
            The scheduled task, usable as a cancellation token
        """
        self.stop_update(name)

        async def tick() -> None:
            await self._renew(name, token)

        token = self.scheduler.schedule(tick, renewal_interval, name=f"renew:{name}")
        self._renewals[name] = token
        get_metrics().renewals_active.inc()
        logger.debug(f"Renewing lease '{name}' every {renewal_interval}s")
        return token

    def stop_update(self, name: str) -> bool:
        """Stop renewing ``name``.

        Returns:
            True if a renewal was cancelled, False if none was scheduled
        """
        token = self._renewals.pop(name, None)
        if token is None:
            return False
        token.cancel()
        get_metrics().renewals_active.dec()
        logger.debug(f"Stopped renewing lease '{name}'")
        return True

    def stop_all(self) -> None:
        """Stop every renewal scheduled by this renewer."""
        for name in list(self._renewals):
            self.stop_update(name)

    async def _renew(self, name: str, token: ScheduledTask) -> None:
        metrics = get_metrics()
        with LogContext(lease_name=name):
            try:
                touched = await self.store.touch(name)
            except StorageUnavailable as e:
                # Transient; the next tick retries
                metrics.renewals_total.labels(result="error").inc()
                logger.warning(f"Renewal of lease '{name}' failed: {e}")
                return

            if touched:
                metrics.renewals_total.labels(result="ok").inc()
                logger.debug(f"Renewed lease '{name}'")
                return

            metrics.renewals_total.labels(result="lost").inc()
            if token.cancelled:
                # Released locally while this tick was in flight
                return

            token.cancel()
            if self._renewals.get(name) is token:
                del self._renewals[name]
                metrics.renewals_active.dec()

            metrics.leases_lost_total.inc()
            logger.warning(f"Lost lease '{name}'; renewal stopped")
            await self._notify(LeaseLost(name))

    async def _notify(self, error: LeaseLost) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(error)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Lease loss listener failed for '{error.name}': {e}", exc_info=True)
