"""Auth callback flow: exchange the authorization code, then make sure a profile exists.

Every path through :func:`bootstrap_session` ends in a redirect. The only
failures handled here are the code exchange (``IdentityProviderError``) and the
profile insert (``SQLAlchemyError``); anything else, including a failed profile
lookup, propagates to the framework.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from momskidz.config import get_settings
from momskidz.models.schemas import AuthSession
from momskidz.observability.metrics import get_metrics
from momskidz.services.identity_client import IdentityClient, IdentityProviderError
from momskidz.services.profile_service import create_default_profile, get_profile


logger = structlog.get_logger("auth.callback")


class BootstrapOutcome(str, Enum):
    PROVIDER_ERROR = "provider_error"
    NO_CODE = "no_code"
    EXCHANGE_FAILED = "exchange_failed"
    NO_SESSION = "no_session"
    PROFILE_EXISTS = "profile_exists"
    PROFILE_CREATED = "profile_created"
    # Authenticated with the provider, but no profile row was written.
    PROFILE_FAILED = "profile_failed"


@dataclass
class BootstrapResult:
    outcome: BootstrapOutcome
    redirect_path: str
    session: AuthSession | None = None


def _finish(outcome: BootstrapOutcome, redirect_path: str, session: AuthSession | None = None) -> BootstrapResult:
    get_metrics().observe_auth(outcome.value)
    return BootstrapResult(outcome=outcome, redirect_path=redirect_path, session=session)


def _profile_created_concurrently(db: Session, user_id: str) -> bool:
    # A parallel callback for the same user may have won the insert race.
    try:
        return get_profile(db, user_id) is not None
    except SQLAlchemyError:
        db.rollback()
        return False


def bootstrap_session(
    db: Session,
    identity: IdentityClient,
    code: str | None,
    code_verifier: str | None = None,
) -> BootstrapResult:
    settings = get_settings()

    if not code:
        logger.info("auth_callback_without_code")
        return _finish(BootstrapOutcome.NO_CODE, settings.dashboard_path)

    try:
        session = identity.exchange_code_for_session(code, code_verifier=code_verifier)
    except IdentityProviderError as exc:
        logger.warning("auth_code_exchange_failed", error=exc.message, status_code=exc.status_code)
        return _finish(BootstrapOutcome.EXCHANGE_FAILED, f"{settings.auth_error_path}?error=exchange_failed")

    if session is None:
        logger.info("auth_code_exchange_without_session")
        return _finish(BootstrapOutcome.NO_SESSION, settings.dashboard_path)

    user = session.user
    structlog.contextvars.bind_contextvars(user_id=user.id)

    if get_profile(db, user.id) is not None:
        return _finish(BootstrapOutcome.PROFILE_EXISTS, settings.dashboard_path, session)

    try:
        create_default_profile(db, user_id=user.id, email=user.email)
    except SQLAlchemyError:
        db.rollback()
        if _profile_created_concurrently(db, user.id):
            logger.info("profile_created_by_concurrent_callback")
            return _finish(BootstrapOutcome.PROFILE_EXISTS, settings.dashboard_path, session)
        logger.exception("profile_bootstrap_failed", session_kept=True)
        return _finish(BootstrapOutcome.PROFILE_FAILED, settings.auth_error_path, session)

    logger.info("profile_created")
    return _finish(BootstrapOutcome.PROFILE_CREATED, settings.dashboard_path, session)
