"""Outbound email for verification tokens.

The accounts subsystem only needs one thing from a mailer: deliver a token
to an address. Two backends:
- ConsoleMailer: logs the message (development and tests)
- ResendMailer: HTTP POST to the Resend API

Delivery is fire-and-forget. Routes hand PendingEmail objects to
dispatch_email through BackgroundTasks; failures are logged, never raised
back into the request.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol
from urllib.parse import quote, urlencode

import httpx
import structlog

from aidhub.core.config import settings
from aidhub.models.verification_token import TokenPurpose

logger = structlog.get_logger()

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0

_SUBJECTS: dict[TokenPurpose, str] = {
    TokenPurpose.REGISTRATION_CONFIRMATION: "Confirm your Distribute Aid account",
    TokenPurpose.PASSWORD_RESET: "Reset your Distribute Aid password",
}

_FRONTEND_PATHS: dict[TokenPurpose, str] = {
    TokenPurpose.REGISTRATION_CONFIRMATION: "/register/confirm",
    TokenPurpose.PASSWORD_RESET: "/password/new",
}


class Mailer(Protocol):
    """Anything that can deliver a verification token by email."""

    async def send(
        self, to_email: str, token: str, *, purpose: TokenPurpose
    ) -> None:
        """Deliver token to to_email. May raise on delivery failure."""


@dataclass(frozen=True)
class PendingEmail:
    """An email the service wants sent once the request has committed.

    Attributes:
        to_email: Recipient address (normalized).
        token: Plain verification token.
        purpose: Which flow the token belongs to.
    """

    to_email: str
    token: str
    purpose: TokenPurpose


def _build_body(to_email: str, token: str, purpose: TokenPurpose) -> str:
    """Plain-text email body with the token and a frontend link."""
    params = urlencode({"email": to_email, "token": token}, quote_via=quote)
    link = f"{settings.frontend_url}{_FRONTEND_PATHS[purpose]}?{params}"
    return (
        f"Your token is:\n\n{token}\n\n"
        f"Or open this link:\n\n{link}\n\n"
        "If you didn't request this, you can safely ignore this email."
    )


class ConsoleMailer:
    """Logs outgoing emails instead of sending them."""

    async def send(
        self, to_email: str, token: str, *, purpose: TokenPurpose
    ) -> None:
        """Log the email. The token is included so developers can use it."""
        logger.info(
            "Email not sent (console mailer)",
            to_email=to_email,
            subject=_SUBJECTS[purpose],
            token=token,
        )


class ResendMailer:
    """Sends email through the Resend HTTP API.

    Args:
        api_key: Resend API key.
        sender: From address.
    """

    def __init__(self, api_key: str, sender: str) -> None:
        self._api_key = api_key
        self._sender = sender

    async def send(
        self, to_email: str, token: str, *, purpose: TokenPurpose
    ) -> None:
        """POST the email to Resend.

        Raises:
            httpx.HTTPError: On transport failure or non-2xx response.
        """
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={
                    "from": self._sender,
                    "to": to_email,
                    "subject": _SUBJECTS[purpose],
                    "text": _build_body(to_email, token, purpose),
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()


@lru_cache(maxsize=1)
def get_mailer() -> Mailer:
    """Mailer selected by MAILER_BACKEND (FastAPI dependency)."""
    if settings.mailer_backend == "resend":
        return ResendMailer(
            settings.resend_api_key.get_secret_value(), settings.email_from
        )
    return ConsoleMailer()


async def dispatch_email(mailer: Mailer, email: PendingEmail) -> None:
    """Send one pending email, logging instead of raising on failure.

    Args:
        mailer: Backend to send through.
        email: What to send.
    """
    try:
        await mailer.send(email.to_email, email.token, purpose=email.purpose)
    except Exception:
        logger.warning(
            "Failed to send verification email",
            purpose=email.purpose.value,
            exc_info=True,
        )
