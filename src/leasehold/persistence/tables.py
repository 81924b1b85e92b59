"""SQLAlchemy ORM model for lease records.

One row per lease name. ``max_age`` is NULL for non-expiring leases, which the
conditional upsert in ``SqlLeaseStore`` never reclaims.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from leasehold.core.lease import MAX_NAME_LENGTH, Lease, as_utc


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class LeaseTable(Base):
    """Lease records keyed by name."""

    __tablename__ = "leasehold_leases"

    name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), primary_key=True)

    # Timestamps (application clock)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    locked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Seconds; NULL = non-expiring
    max_age: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<LeaseTable(name={self.name!r}, updated_at={self.updated_at})>"


LEASE_COLUMNS = (
    LeaseTable.name,
    LeaseTable.created_at,
    LeaseTable.updated_at,
    LeaseTable.locked_at,
    LeaseTable.max_age,
)


def lease_from_row(row: Mapping[str, Any]) -> Lease:
    """Convert a row mapping into a Lease.

    SQLite hands back naive datetimes; they are normalized to UTC.
    """
    return Lease(
        name=row["name"],
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
        locked_at=as_utc(row["locked_at"]),
        max_age=row["max_age"],
    )
