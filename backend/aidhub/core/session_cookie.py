"""Session cookie codec: stateless signed session credentials.

The session is an HS256 JWT carried in an httpOnly cookie. Nothing about it
is stored server-side: a cookie stays valid until its encoded expiry, and
signing out means sending the client a replacement cookie that has already
expired.

Pipeline:
- SessionCookieCodec.encode: subject + now -> SessionCookie (value + attributes)
- SessionCookieCodec.decode: cookie value + now -> subject, or a typed failure
- SessionCookieCodec.expired: cookie that tells the browser to drop the session
- apply_session_cookie: write a SessionCookie onto a Starlette response
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache

import jwt
from starlette.responses import Response

from aidhub.core.config import Settings, settings
from aidhub.core.errors import (
    InvalidSignatureError,
    MalformedSessionError,
    SessionExpiredError,
)

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "exp", "iat", "aud", "iss"]

# Unix epoch: the canonical "already expired" cookie date
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@lru_cache(maxsize=1)
def _ephemeral_secret() -> str:
    """Random signing secret for development runs without AUTH_SECRET."""
    logger.warning("AUTH_SECRET not set; using a random per-process secret")
    return secrets.token_hex(32)


@dataclass(frozen=True)
class SessionCookie:
    """A cookie ready to be sent with a response.

    Attributes:
        name: Cookie name.
        value: Signed session credential (empty for an expired cookie).
        expires: Absolute expiry written to the Expires attribute.
        path: Cookie path. Always "/".
        httponly: Hide the cookie from JavaScript. Always True.
    """

    name: str
    value: str
    expires: datetime
    path: str = "/"
    httponly: bool = True


class SessionCookieCodec:
    """Mint and parse signed, expiring session cookies.

    Args:
        secret: HMAC signing secret. Never leaves the server.
        ttl: Lifetime of a freshly minted cookie.
        issuer: Value of the iss claim.
        audience: Value of the aud claim.
        cookie_name: Name of the session cookie.
    """

    def __init__(
        self,
        secret: str,
        *,
        ttl: timedelta,
        issuer: str,
        audience: str,
        cookie_name: str,
    ) -> None:
        if not secret:
            msg = "Session cookie secret must not be empty"
            raise ValueError(msg)
        self._secret = secret
        self.ttl = ttl
        self._issuer = issuer
        self._audience = audience
        self.cookie_name = cookie_name

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "SessionCookieCodec":
        """Build a codec from application settings.

        Outside production an unset AUTH_SECRET falls back to a random
        per-process secret, so sessions do not survive a restart.
        """
        secret = config.auth_secret.get_secret_value()
        if not secret and config.environment != "production":
            secret = _ephemeral_secret()
        return cls(
            secret,
            ttl=timedelta(minutes=config.session_ttl_minutes),
            issuer=config.auth_issuer,
            audience=config.auth_audience,
            cookie_name=config.auth_cookie_name,
        )

    def encode(self, subject: int, now: datetime | None = None) -> SessionCookie:
        """Mint a session cookie for a user.

        Same subject and same now always give the same value.

        Args:
            subject: UserAccount id.
            now: Issuance time. Defaults to the current time.

        Returns:
            SessionCookie expiring ttl after now.
        """
        issued_at = (now or datetime.now(UTC)).replace(microsecond=0)
        expires = issued_at + self.ttl
        payload = {
            "sub": str(subject),
            "aud": self._audience,
            "iss": self._issuer,
            "iat": issued_at,
            "exp": expires,
        }
        value = jwt.encode(payload, self._secret, algorithm=_ALGORITHM)
        return SessionCookie(name=self.cookie_name, value=value, expires=expires)

    def decode(self, value: str, now: datetime | None = None) -> int:
        """Verify a session cookie and return its subject.

        Expiry is checked against now rather than the wall clock, so callers
        (and tests) control the reference time.

        Args:
            value: Cookie value as received.
            now: Reference time. Defaults to the current time.

        Returns:
            UserAccount id.

        Raises:
            MalformedSessionError: Not a JWT, wrong claims, or bad subject.
            InvalidSignatureError: Signature does not verify.
            SessionExpiredError: Signature fine but exp has passed.
        """
        try:
            payload = jwt.decode(
                value,
                self._secret,
                algorithms=[_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={
                    "require": _REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignatureError() from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedSessionError() from exc

        try:
            expires = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
            subject = int(payload["sub"])
        except (TypeError, ValueError, OverflowError) as exc:
            raise MalformedSessionError() from exc

        if expires <= (now or datetime.now(UTC)):
            raise SessionExpiredError()
        return subject

    def expired(self) -> SessionCookie:
        """Cookie instructing the client to drop its session."""
        return SessionCookie(name=self.cookie_name, value="", expires=_EPOCH)


def apply_session_cookie(
    response: Response, cookie: SessionCookie, config: Settings = settings
) -> None:
    """Set a session cookie on a response.

    Security: httpOnly prevents XSS cookie theft. Secure flag and SameSite
    are configured via settings for environment-appropriate security.

    Args:
        response: Starlette/FastAPI response object.
        cookie: Cookie to send.
        config: Settings supplying Secure, SameSite, and Domain.
    """
    response.set_cookie(
        key=cookie.name,
        value=cookie.value,
        expires=cookie.expires,
        path=cookie.path,
        httponly=cookie.httponly,
        secure=config.auth_cookie_secure,
        samesite=config.auth_cookie_samesite,
        domain=config.auth_cookie_domain or None,
    )
