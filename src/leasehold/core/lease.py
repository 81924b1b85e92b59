"""Lease record types shared by stores, renewer and facade."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

from leasehold.errors import InvalidName

# Matches the width of the name column in the lease table
MAX_NAME_LENGTH = 4000

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from storage."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def validate_name(name: object) -> str:
    """Reject names that cannot key a lease record.

    Raises:
        InvalidName: name is not a string, is blank, too long, or contains
            control characters
    """
    if not isinstance(name, str):
        raise InvalidName(name, "must be a string")
    if not name.strip():
        raise InvalidName(name, "must not be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidName(name, f"longer than {MAX_NAME_LENGTH} characters")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in name):
        raise InvalidName(name, "contains control characters")
    return name


@dataclass(frozen=True)
class Lease:
    """A named lease record as persisted by a LeaseStore.

    ``max_age`` is the max age the current holder acquired with; ``None``
    marks a non-expiring lease that only an explicit release removes.
    """

    name: str
    created_at: datetime
    updated_at: datetime
    locked_at: datetime
    max_age: int | None = None

    @property
    def expiring(self) -> bool:
        return self.max_age is not None

    def age(self, now: datetime | None = None) -> timedelta:
        """Time since the last refresh."""
        return (now or utcnow()) - self.updated_at

    def is_expired(self, max_age: int | None, now: datetime | None = None) -> bool:
        """Whether an acquirer using ``max_age`` may reclaim this record."""
        if max_age is None or not self.expiring:
            return False
        return self.age(now) > timedelta(seconds=max_age)

    def reclaimed(self, max_age: int | None, now: datetime) -> Lease:
        return replace(self, updated_at=now, locked_at=now, max_age=max_age)

    def touched(self, now: datetime) -> Lease:
        return replace(self, updated_at=now)

    @classmethod
    def fresh(cls, name: str, max_age: int | None, now: datetime) -> Lease:
        return cls(name=name, created_at=now, updated_at=now, locked_at=now, max_age=max_age)


@dataclass(frozen=True)
class AcquireResult:
    """Outcome of a conditional acquire: ``lease`` is the record after the call."""

    acquired: bool
    lease: Lease
