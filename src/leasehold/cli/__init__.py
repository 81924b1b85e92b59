"""CLI commands for leasehold.

Provides command-line interface using Typer:
- leasehold status: Show lease records
- leasehold release: Release a lease by name (manual recovery)
- leasehold init-db: Create the SQL lease table

Usage:
    leasehold --help
    leasehold status --backend sql
    leasehold release nightly-report --backend redis --yes
    leasehold init-db --database-url sqlite+aiosqlite:///leases.db
"""

import typer

from leasehold.cli.init_db_cmd import init_db
from leasehold.cli.release_cmd import release
from leasehold.cli.status_cmd import status
from leasehold.config import settings
from leasehold.observability.logging import configure_logging

# Main CLI application
app = typer.Typer(
    name="leasehold",
    help="leasehold: named lease-based semaphores over shared storage",
    no_args_is_help=True,
)

# Add commands
app.command("status")(status)
app.command("release")(release)
app.command("init-db")(init_db)


@app.callback()
def callback() -> None:
    """leasehold: named lease-based semaphores over shared storage."""
    configure_logging(
        json_format=settings.log_json,
        level=settings.log_level,
        instance_id=settings.instance_id,
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
