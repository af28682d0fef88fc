"""Endpoints for the signed-in user.

- GET /me: current account
- GET /me/cookie: renew the session cookie (sliding session)
- DELETE /me/cookie: sign out by sending an already-expired cookie
- POST /me/password: change password, knowing the current one

All require a valid session cookie (401 otherwise).
"""

from fastapi import APIRouter, Response

from aidhub.api.deps import Auth, CurrentAuth
from aidhub.core.errors import InvalidCredentialsError, ValidationError
from aidhub.core.session_cookie import apply_session_cookie
from aidhub.schemas.accounts import ChangePasswordRequest, MeResponse

router = APIRouter()


@router.get("", response_model_by_alias=True)
async def get_me(auth: CurrentAuth) -> MeResponse:
    """Return the current account as {id, email, name, isAdmin}."""
    return MeResponse.from_account(auth.user)


@router.get("/cookie", status_code=204)
async def renew_cookie(auth: CurrentAuth, service: Auth) -> Response:
    """Reissue the session cookie with a fresh expiry."""
    response = Response(status_code=204)
    apply_session_cookie(response, service.renew_session(auth.user_id))
    return response


@router.delete("/cookie", status_code=204)
async def delete_cookie(
    auth: CurrentAuth,  # noqa: ARG001 - sign-out requires a valid session
    service: Auth,
) -> Response:
    """Sign out.

    Sessions are stateless: this only tells the browser to drop its cookie.
    A copied cookie keeps working until its own expiry.
    """
    response = Response(status_code=204)
    apply_session_cookie(response, service.end_session())
    return response


@router.post("/password", status_code=204)
async def change_password(
    body: ChangePasswordRequest,
    auth: CurrentAuth,
    service: Auth,
) -> Response:
    """Change the password and reissue the session cookie.

    Returns 204. 400 if the current password is wrong or the new one is
    too weak.
    """
    try:
        cookie = await service.change_password(
            auth.user_id, body.current_password, body.new_password
        )
    except InvalidCredentialsError as exc:
        raise ValidationError("Current password incorrect") from exc

    response = Response(status_code=204)
    apply_session_cookie(response, cookie)
    return response
