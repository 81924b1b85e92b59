"""CLI command for releasing a lease by hand.

Recovery path for non-expiring leases whose holder died without releasing.

Usage:
    leasehold release nightly-report --backend sql
    leasehold release nightly-report --backend redis --yes
"""

from __future__ import annotations

import asyncio

import typer

from leasehold.cli.common import BACKEND_OPTION, load_settings
from leasehold.config import Settings
from leasehold.distributed.scheduler import PeriodicScheduler
from leasehold.distributed.semaphores import Semaphores
from leasehold.errors import InvalidName, StorageUnavailable


def release(
    name: str = typer.Argument(
        ...,
        help="Lease name to release",
    ),
    backend: str | None = BACKEND_OPTION,
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation",
    ),
) -> None:
    """Clear the named lease, whoever holds it.

    A live holder is not notified; its next renewal will find the lease gone.
    """
    config = load_settings(backend)
    if not yes:
        typer.confirm(f"Release lease '{name}' regardless of its holder?", abort=True)

    try:
        asyncio.run(_release(name, config))
    except (InvalidName, StorageUnavailable) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Released {name}")


async def _release(name: str, config: Settings) -> None:
    # Nothing is renewed from this process; the scheduler never starts
    semaphores = Semaphores.from_settings(config, PeriodicScheduler())
    try:
        await semaphores.release(name)
    finally:
        await semaphores.store.close()
