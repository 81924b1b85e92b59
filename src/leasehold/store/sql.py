"""Relational lease store.

Acquisition is a single ``INSERT ... ON CONFLICT DO UPDATE ... WHERE``
statement, so the existence check, the freshness check and the write happen
inside one row-level atomic operation on the database. Supported dialects are
PostgreSQL (asyncpg) and SQLite (aiosqlite).

Example:
    store = SqlLeaseStore(build_session_factory(build_engine(database_url)))
    result = await store.try_acquire("nightly-report", max_age=60)
    if result.acquired:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, cast

from sqlalchemy import CursorResult, delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leasehold.core.lease import AcquireResult, Clock, Lease
from leasehold.errors import StorageUnavailable
from leasehold.persistence.tables import LEASE_COLUMNS, LeaseTable, lease_from_row
from leasehold.store.base import LeaseStore

logger = logging.getLogger(__name__)

# A losing upsert reads the row back; if the holder released in between,
# the insert is attempted again.
MAX_ACQUIRE_ATTEMPTS = 3

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@contextmanager
def _storage_errors(operation: str, name: str | None = None) -> Iterator[None]:
    """Re-raise driver and connection failures as StorageUnavailable."""
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Lease store {operation} failed for '{name}': {e}")
        raise StorageUnavailable(operation, name, str(e)) from e


class SqlLeaseStore(LeaseStore):
    """LeaseStore backed by the ``leasehold_leases`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock)
        self._session_factory = session_factory

    def _insert(self, session: AsyncSession):  # type: ignore[no-untyped-def]
        dialect = session.get_bind().dialect.name
        try:
            return _INSERTS[dialect]
        except KeyError:
            raise ValueError(
                f"Unsupported database dialect '{dialect}'. Supported: postgresql, sqlite."
            ) from None

    async def try_acquire(self, name: str, max_age: int | None) -> AcquireResult:
        with _storage_errors("try_acquire", name):
            for _ in range(MAX_ACQUIRE_ATTEMPTS):
                async with self._session_factory() as session, session.begin():
                    now = self.clock()
                    insert = self._insert(session)
                    stmt = insert(LeaseTable).values(
                        name=name,
                        created_at=now,
                        updated_at=now,
                        locked_at=now,
                        max_age=max_age,
                    )
                    if max_age is None:
                        stmt = stmt.on_conflict_do_nothing(index_elements=[LeaseTable.name])
                    else:
                        cutoff = now - timedelta(seconds=max_age)
                        stmt = stmt.on_conflict_do_update(
                            index_elements=[LeaseTable.name],
                            set_={
                                "updated_at": stmt.excluded.updated_at,
                                "locked_at": stmt.excluded.locked_at,
                                "max_age": stmt.excluded.max_age,
                            },
                            where=(LeaseTable.max_age.is_not(None))
                            & (LeaseTable.updated_at < cutoff),
                        )

                    result = await session.execute(stmt.returning(*LEASE_COLUMNS))
                    row = result.mappings().first()
                    if row is not None:
                        return AcquireResult(acquired=True, lease=lease_from_row(row))

                    current = await self._select(session, name)
                    if current is not None:
                        return AcquireResult(acquired=False, lease=current)

                logger.debug(f"Lease '{name}' vanished during acquire, retrying")

        raise StorageUnavailable("try_acquire", name, "record changed during every attempt")

    async def touch(self, name: str) -> bool:
        with _storage_errors("touch", name):
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    update(LeaseTable)
                    .where(LeaseTable.name == name)
                    .values(updated_at=self.clock())
                )
                return cast(CursorResult[Any], result).rowcount > 0

    async def clear(self, name: str) -> None:
        with _storage_errors("clear", name):
            async with self._session_factory() as session, session.begin():
                await session.execute(delete(LeaseTable).where(LeaseTable.name == name))

    async def read(self, name: str) -> Lease | None:
        with _storage_errors("read", name):
            async with self._session_factory() as session:
                return await self._select(session, name)

    async def list_leases(self) -> list[Lease]:
        with _storage_errors("list_leases"):
            async with self._session_factory() as session:
                result = await session.execute(select(*LEASE_COLUMNS).order_by(LeaseTable.name))
                return [lease_from_row(row) for row in result.mappings()]

    async def close(self) -> None:
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            await bind.dispose()

    async def _select(self, session: AsyncSession, name: str) -> Lease | None:
        result = await session.execute(select(*LEASE_COLUMNS).where(LeaseTable.name == name))
        row = result.mappings().first()
        return lease_from_row(row) if row is not None else None
