"""ABOUTME: Main CLI entry point using Click for threat platform administration
ABOUTME: Provides subcommands for database, tenant and user management"""

import click
from sqlalchemy.orm import sessionmaker

from threatplatform import __version__
from threatplatform.adapters.database import create_session_factory, start_mappers
from threatplatform.config import get_config
from threatplatform.service_layer.unit_of_work import SqlAlchemyUnitOfWork


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Threat platform administration CLI."""
    # Ensure context object exists
    ctx.ensure_object(dict)

    ctx.obj.setdefault("config", get_config())
    start_mappers()


def get_session_factory(ctx: click.Context) -> sessionmaker:
    """Session factory for the configured database, created on first use."""
    obj = ctx.ensure_object(dict)
    if "session_factory" not in obj:
        obj["session_factory"] = create_session_factory(obj["config"].SQLALCHEMY_DATABASE_URI)
    return obj["session_factory"]


def get_uow(ctx: click.Context) -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(get_session_factory(ctx))


@cli.command()
def version() -> None:
    """Show threat platform version."""
    click.echo(f"Threat Platform {__version__}")


# Import subcommands to register them
from .database import database  # noqa: E402
from .users import tenants, users  # noqa: E402

cli.add_command(database)
cli.add_command(tenants)
cli.add_command(users)


if __name__ == "__main__":
    cli()
