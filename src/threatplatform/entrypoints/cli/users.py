"""ABOUTME: CLI commands for tenant and user management operations
ABOUTME: Provides commands to add tenants and users and to enroll or reset MFA"""

import click

from threatplatform.config import TotpCfg
from threatplatform.domain.value_objects import UserRole
from threatplatform.service_layer import two_factor_service
from threatplatform.service_layer.exceptions import (
    ServiceLayerError,
    TenantAlreadyExists,
    TenantNotFoundError,
    TwoFactorSetupError,
    TwoFactorVerificationError,
    UserAlreadyExists,
    UserNotFoundError,
)
from threatplatform.service_layer.totp_service import TotpVerifier
from threatplatform.service_layer.user_service import create_tenant, create_user, get_user_by_email

from . import get_uow


@click.group()
def tenants() -> None:
    """Tenant management commands."""
    pass


@tenants.command("add")
@click.option("--name", required=True, help="Display name of the tenant")
@click.option("--slug", required=True, help="Unique short identifier")
@click.pass_context
def add_tenant(ctx: click.Context, name: str, slug: str) -> None:
    """Add a new tenant."""
    try:
        tenant = create_tenant(get_uow(ctx), name=name, slug=slug)
    except (TenantAlreadyExists, ValueError) as e:
        click.echo(click.style(f"✗ Error: {e}", "red"))
        raise click.Abort() from e

    click.echo(click.style("✓ Tenant created successfully:", "green"))
    click.echo(f"  ID: {tenant.id}")
    click.echo(f"  Slug: {tenant.slug}")


@click.group()
def users() -> None:
    """User management commands."""
    pass


@users.command("add")
@click.option("--email", required=True, help="User email address")
@click.option("--tenant", "tenant_slug", required=True, help="Slug of the tenant the user belongs to")
@click.option(
    "--role",
    type=click.Choice([r.value for r in UserRole], case_sensitive=False),
    default=UserRole.VIEWER.value,
    help="Role for the user",
)
@click.option("--password", help="Password (will prompt if not provided)")
@click.pass_context
def add_user(ctx: click.Context, email: str, tenant_slug: str, role: str, password: str | None) -> None:
    """Add a new user to a tenant."""
    if not password:
        password = click.prompt("Password", hide_input=True, confirmation_prompt=True)
    assert password is not None

    try:
        user = create_user(
            get_uow(ctx),
            email=email,
            password=password,
            tenant_slug=tenant_slug,
            role=UserRole(role.lower()),
        )
    except (UserAlreadyExists, TenantNotFoundError, ServiceLayerError, ValueError) as e:
        click.echo(click.style(f"✗ Error: {e}", "red"))
        raise click.Abort() from e

    click.echo(click.style("✓ User created successfully:", "green"))
    click.echo(f"  ID: {user.id}")
    click.echo(f"  Email: {user.email}")
    click.echo(f"  Role: {user.role.value}")


@users.command("mfa-setup")
@click.argument("email")
@click.option("--code", help="Code from the authenticator app (will prompt if not provided)")
@click.pass_context
def mfa_setup(ctx: click.Context, email: str, code: str | None) -> None:
    """Enroll a user in MFA.

    Prints the secret and otpauth:// URI to load into an authenticator app,
    then enables MFA once a code from that app checks out.
    """
    verifier = TotpVerifier(TotpCfg.from_env())
    try:
        user = get_user_by_email(get_uow(ctx), email)
        secret, uri = two_factor_service.setup_mfa(get_uow(ctx), user.id, verifier=verifier)

        click.echo(f"  Secret: {secret}")
        click.echo(f"  URI: {uri}")
        if not code:
            code = click.prompt("Code from authenticator app")
        assert code is not None

        two_factor_service.enable_mfa(get_uow(ctx), user.id, secret, code, verifier=verifier)
    except (UserNotFoundError, TwoFactorSetupError, TwoFactorVerificationError) as e:
        click.echo(click.style(f"✗ Error: {e}", "red"))
        raise click.Abort() from e

    click.echo(click.style(f"✓ MFA enabled for {user.email}.", "green"))


@users.command("mfa-disable")
@click.argument("email")
@click.option("--admin-email", required=True, help="Email of the admin performing the reset")
@click.option("--confirm", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def mfa_disable(ctx: click.Context, email: str, admin_email: str, confirm: bool) -> None:
    """Turn off MFA for a user who has lost their authenticator."""
    if not confirm and not click.confirm(f"Are you sure you want to disable MFA for '{email}'?"):
        click.echo("Operation cancelled.")
        return

    try:
        user = get_user_by_email(get_uow(ctx), email)
        admin = get_user_by_email(get_uow(ctx), admin_email)
        if admin.role is not UserRole.ADMIN:
            raise TwoFactorSetupError(f"'{admin.email}' is not an admin")
        two_factor_service.admin_disable_mfa(get_uow(ctx), user.id, admin.id)
    except (UserNotFoundError, TwoFactorSetupError) as e:
        click.echo(click.style(f"✗ Error: {e}", "red"))
        raise click.Abort() from e

    click.echo(click.style(f"✓ MFA disabled for {user.email}.", "green"))
