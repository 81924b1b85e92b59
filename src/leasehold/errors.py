"""Exceptions raised by leasehold.

Only ``StorageUnavailable`` and ``InvalidName`` reach callers of
``Semaphores.acquire``/``release``. ``LeaseLost`` is handed to loss
listeners by the renewer and is never raised into unrelated code.
"""

from __future__ import annotations


class LeaseholdError(Exception):
    """Base exception for leasehold errors."""

    pass


class StorageUnavailable(LeaseholdError):
    """Raised when the lease store cannot be reached or fails mid-operation."""

    def __init__(self, operation: str, name: str | None = None, reason: str = "") -> None:
        self.operation = operation
        self.name = name
        message = f"Lease store unavailable during {operation}"
        if name is not None:
            message += f" for '{name}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class LeaseLost(LeaseholdError):
    """Renewal found the lease record gone; another caller cleared or reclaimed it."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Lease lost: {name}")


class InvalidName(LeaseholdError, ValueError):
    """Raised when a lease name is empty or malformed."""

    def __init__(self, name: object, reason: str = "") -> None:
        self.name = name
        message = f"Invalid lease name: {name!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
