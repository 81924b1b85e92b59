"""CLI command for inspecting leases.

Usage:
    leasehold status --backend sql
    leasehold status nightly-report --backend sql
    leasehold status --format json --backend redis
"""

from __future__ import annotations

import asyncio
import json

import typer

from leasehold.cli.common import BACKEND_OPTION, describe, load_settings
from leasehold.config import Settings
from leasehold.core.lease import validate_name
from leasehold.errors import InvalidName, StorageUnavailable
from leasehold.store.factory import create_store


def status(
    name: str | None = typer.Argument(
        None,
        help="Lease name (all leases when omitted)",
    ),
    backend: str | None = BACKEND_OPTION,
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """Show one lease or every lease in the store.

    Exits with code 1 when the named lease does not exist or the store
    cannot be reached.
    """
    from rich.console import Console
    from rich.table import Table

    console = Console()
    config = load_settings(backend)

    try:
        if name is not None:
            validate_name(name)
        rows = asyncio.run(_collect(name, config))
    except (InvalidName, StorageUnavailable) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if name is not None and not rows:
        console.print(f"[yellow]No lease named[/yellow] {name}")
        raise typer.Exit(code=1)

    if output_format == "json":
        typer.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        console.print("[yellow]No leases[/yellow]")
        return

    table = Table("Name", "State", "Max age", "Locked at", "Updated at", "Age (s)")
    for row in rows:
        table.add_row(
            str(row["name"]),
            str(row["state"]),
            "-" if row["max_age"] is None else str(row["max_age"]),
            str(row["locked_at"]),
            str(row["updated_at"]),
            str(row["age_seconds"]),
        )
    console.print(table)


async def _collect(name: str | None, config: Settings) -> list[dict[str, object]]:
    store = create_store(config)
    try:
        if name is None:
            leases = await store.list_leases()
        else:
            lease = await store.read(name)
            leases = [lease] if lease is not None else []
    finally:
        await store.close()
    return [describe(lease) for lease in leases]
