"""Unauthenticated account endpoints.

- POST /register: create an unconfirmed account, email a confirmation token
- POST /register/confirm: confirm the account with that token
- POST /login: verify credentials, set the session cookie
- POST /password/token: email a password reset token (always 202)
- POST /password/new: set a new password with a reset token

Emails are sent as background tasks after the response, so response time
and status never depend on mail delivery.
"""

from fastapi import APIRouter, BackgroundTasks, Request, Response

from aidhub.api.deps import Auth, MailerDep
from aidhub.core.config import settings
from aidhub.core.email import dispatch_email
from aidhub.core.rate_limiting import limiter
from aidhub.core.session_cookie import apply_session_cookie
from aidhub.schemas.accounts import (
    ConfirmRegistrationRequest,
    LoginRequest,
    NewPasswordRequest,
    PasswordTokenRequest,
    RegisterRequest,
)

router = APIRouter()


# ===================================================================
# POST /register
# ===================================================================


@router.post("/register", status_code=202)
@limiter.limit(lambda: settings.rate_limit_register)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    service: Auth,
    mailer: MailerDep,
) -> Response:
    """Register a new, unconfirmed account.

    Returns 202 with no body. 400 for invalid input or a weak password,
    409 if the email is already registered.
    """
    pending = await service.register(body.email, body.name, body.password)
    background_tasks.add_task(dispatch_email, mailer, pending)
    return Response(status_code=202)


@router.post("/register/confirm", status_code=202)
async def confirm_registration(
    body: ConfirmRegistrationRequest,
    service: Auth,
) -> Response:
    """Confirm an account with the emailed token.

    Returns 202. 401 for any unusable token.
    """
    await service.confirm(body.email, body.token)
    return Response(status_code=202)


# ===================================================================
# POST /login
# ===================================================================


@router.post("/login", status_code=204)
@limiter.limit(lambda: settings.rate_limit_login)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    service: Auth,
) -> Response:
    """Verify email + password and set the session cookie.

    Returns 204. 401 for unknown email or wrong password (same body for
    both), 403 if the account has not been confirmed yet.
    """
    cookie = await service.login(body.email, body.password)
    response = Response(status_code=204)
    apply_session_cookie(response, cookie)
    return response


# ===================================================================
# POST /password/token, POST /password/new
# ===================================================================


@router.post("/password/token", status_code=202)
@limiter.limit(lambda: settings.rate_limit_password_token)
async def request_password_token(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: PasswordTokenRequest,
    background_tasks: BackgroundTasks,
    service: Auth,
    mailer: MailerDep,
) -> Response:
    """Email a password reset token.

    Always returns 202, whether or not the email is registered.
    """
    pending = await service.request_password_reset(body.email)
    if pending is not None:
        background_tasks.add_task(dispatch_email, mailer, pending)
    return Response(status_code=202)


@router.post("/password/new", status_code=202)
async def set_new_password(
    body: NewPasswordRequest,
    service: Auth,
) -> Response:
    """Set a new password using an emailed reset token.

    Returns 202. 401 for any unusable token, 400 for a weak password.
    """
    await service.reset_password(body.email, body.token, body.new_password)
    return Response(status_code=202)
