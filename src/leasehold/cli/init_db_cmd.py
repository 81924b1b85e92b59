"""CLI command for creating the lease table.

Usage:
    leasehold init-db
    DATABASE_URL=sqlite+aiosqlite:///leases.db leasehold init-db
"""

from __future__ import annotations

import asyncio

import typer
from sqlalchemy.exc import SQLAlchemyError

from leasehold.config import settings
from leasehold.persistence.db import build_engine
from leasehold.persistence.db import init_db as create_tables


def init_db(
    database_url: str | None = typer.Option(
        None,
        "--database-url",
        "-d",
        help="Database URL (defaults to DATABASE_URL)",
    ),
) -> None:
    """Create the ``leasehold_leases`` table if it does not exist."""
    url = database_url or settings.database_url
    try:
        asyncio.run(_init(url))
    except (SQLAlchemyError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo("Lease table ready")


async def _init(url: str) -> None:
    engine = build_engine(url)
    try:
        await create_tables(engine)
    finally:
        await engine.dispose()
