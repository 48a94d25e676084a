"""ABOUTME: CLI commands for database management operations
ABOUTME: Provides the command that creates the schema"""

import click

from threatplatform.adapters.database import create_tables


@click.group()
def database() -> None:
    """Database management commands."""
    pass


@database.command("init")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create any missing tables."""
    from . import get_session_factory

    try:
        create_tables(get_session_factory(ctx))
    except Exception as e:
        click.echo(click.style(f"✗ Error initialising database: {e}", "red"))
        raise click.Abort() from e

    click.echo(click.style("✓ Database tables created.", "green"))
