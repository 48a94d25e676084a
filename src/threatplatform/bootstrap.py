from collections.abc import Collection

from sqlalchemy.orm import sessionmaker

from threatplatform.adapters import database
from threatplatform.config import RateLimitCfg, TotpCfg, get_db_uri, get_mfa_required_roles
from threatplatform.domain.value_objects import UserRole
from threatplatform.service_layer import unit_of_work
from threatplatform.service_layer.login_service import LoginOrchestrator
from threatplatform.service_layer.rate_limiter import LoginRateLimiter
from threatplatform.service_layer.totp_service import TotpVerifier


def bootstrap(
    start_orm: bool = True,
    uow: unit_of_work.AbstractUnitOfWork | None = None,
    session_factory: sessionmaker | None = None,
) -> unit_of_work.AbstractUnitOfWork:
    if start_orm:
        database.start_mappers()

    if session_factory is None:
        session_factory = database.create_session_factory(get_db_uri())

    if uow is None:
        uow = unit_of_work.SqlAlchemyUnitOfWork(session_factory)

    return uow


def build_login_orchestrator(
    uow: unit_of_work.AbstractUnitOfWork,
    rate_limiter: LoginRateLimiter | None = None,
    totp_verifier: TotpVerifier | None = None,
    mfa_required_roles: Collection[UserRole] | None = None,
) -> LoginOrchestrator:
    """Wire a login orchestrator, reading anything not passed in from the environment.

    The rate limiter holds process-wide state, so long-lived callers should
    build it once and pass the same instance to every orchestrator.
    """
    return LoginOrchestrator(
        uow,
        rate_limiter=rate_limiter or LoginRateLimiter(RateLimitCfg.from_env()),
        totp_verifier=totp_verifier or TotpVerifier(TotpCfg.from_env()),
        mfa_required_roles=get_mfa_required_roles() if mfa_required_roles is None else mfa_required_roles,
    )
