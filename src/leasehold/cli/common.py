"""Helpers shared by the CLI commands."""

from __future__ import annotations

from datetime import datetime

import typer

from leasehold.config import Settings, settings
from leasehold.core.lease import Lease, utcnow

BACKEND_OPTION = typer.Option(
    None,
    "--backend",
    "-b",
    help="Store backend: sql, redis (defaults to LEASEHOLD_STORE_BACKEND)",
)

# Backends whose records outlive the CLI process
SHARED_BACKENDS = ("sql", "redis")


def load_settings(backend: str | None) -> Settings:
    """Settings with an optional backend override from the command line.

    Exits with code 1 when the selected backend is not a shared store: the
    in-memory store lives only inside this process, so inspecting or
    releasing leases there would never reach another holder.
    """
    config = settings if backend is None else settings.model_copy(update={"store_backend": backend})
    if config.store_backend.lower() not in SHARED_BACKENDS:
        typer.echo(
            f"Error: store backend '{config.store_backend}' is not shared between processes. "
            "Use --backend sql or --backend redis, or set LEASEHOLD_STORE_BACKEND.",
            err=True,
        )
        raise typer.Exit(code=1)
    return config


def lease_state(lease: Lease, now: datetime | None = None) -> str:
    """held, reclaimable (expired under its holder's max age) or non-expiring."""
    if not lease.expiring:
        return "non-expiring"
    if lease.is_expired(lease.max_age, now):
        return "reclaimable"
    return "held"


def describe(lease: Lease, now: datetime | None = None) -> dict[str, object]:
    now = now or utcnow()
    return {
        "name": lease.name,
        "state": lease_state(lease, now),
        "max_age": lease.max_age,
        "created_at": lease.created_at.isoformat(),
        "locked_at": lease.locked_at.isoformat(),
        "updated_at": lease.updated_at.isoformat(),
        "age_seconds": round(lease.age(now).total_seconds(), 3),
    }
