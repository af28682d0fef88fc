"""Shared dependencies for API endpoints.

Session validation for every protected handler lives here. Handlers declare
``auth: CurrentAuth`` and receive an AuthContext with the freshly loaded
account and its admin capability. Handlers that need admin rights declare
``auth: AdminAuth`` instead; no handler re-derives either check itself.

Every authentication failure becomes the same generic 401. The specific
reason (expired, bad signature, deleted account) is logged, never returned.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from aidhub.core.config import settings
from aidhub.core.database import get_db
from aidhub.core.email import Mailer, get_mailer
from aidhub.core.errors import AdminRequiredError
from aidhub.core.session_cookie import SessionCookieCodec
from aidhub.services.auth_service import AuthContext, AuthService


def get_session_codec() -> SessionCookieCodec:
    """Session cookie codec built from current settings."""
    return SessionCookieCodec.from_settings(settings)


def get_auth_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    codec: Annotated[SessionCookieCodec, Depends(get_session_codec)],
) -> AuthService:
    """AuthService bound to the request's database session."""
    return AuthService.from_settings(db, codec=codec, config=settings)


async def get_current_auth(
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthContext:
    """Resolve the session cookie to the current account.

    Validation steps:
    1. Read the session cookie
    2. Verify signature, audience, issuer, and expiry
    3. Re-load the account (must exist and be confirmed)

    Args:
        request: HTTP request (injected by FastAPI).
        service: Auth service (injected).

    Returns:
        AuthContext of the signed-in user.

    Raises:
        UnauthenticatedError: 401 for any auth failure.
    """
    return await service.current_user(request.cookies.get(settings.auth_cookie_name))


def require_admin(
    auth: Annotated[AuthContext, Depends(get_current_auth)],
) -> AuthContext:
    """Current auth context, only if the user is an admin.

    Raises:
        AdminRequiredError: 403 when the admin flag is not set.
    """
    if not auth.is_admin:
        raise AdminRequiredError()
    return auth


# Reusable type aliases for dependency injection
Auth = Annotated[AuthService, Depends(get_auth_service)]
CurrentAuth = Annotated[AuthContext, Depends(get_current_auth)]
AdminAuth = Annotated[AuthContext, Depends(require_admin)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]
