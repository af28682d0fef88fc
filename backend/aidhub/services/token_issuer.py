"""Token issuer: single-use, time-limited verification tokens.

Issues the random tokens mailed out for registration confirmation and
password reset, and consumes them exactly once.

Security:
- Tokens come from secrets.token_urlsafe (CSPRNG, 256 bits)
- Only the SHA-256 hash is stored; a database leak exposes no usable token
- Issuing replaces any earlier token for the same account and purpose
- Consumption is an atomic DELETE ... RETURNING (see repository)
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from aidhub.core.errors import (
    TokenExpiredError,
    TokenInvalidError,
    TokenPurposeMismatchError,
)
from aidhub.models.verification_token import TokenPurpose
from aidhub.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

logger = logging.getLogger(__name__)

# 32 bytes of entropy, ~43 URL-safe characters
_TOKEN_BYTES = 32


@dataclass(frozen=True)
class IssuedToken:
    """A freshly issued token, plain value included.

    The plain value exists only here and in the email that delivers it.

    Attributes:
        token: Plain token to send to the user.
        user_account_id: Owning account.
        purpose: What the token may be used for.
        expires_at: When the token stops being accepted.
    """

    token: str
    user_account_id: int
    purpose: TokenPurpose
    expires_at: datetime


def hash_token(token: str) -> str:
    """SHA-256 hex digest used as the stored token key."""
    return hashlib.sha256(token.encode()).hexdigest()


class TokenIssuer:
    """Issue and consume verification tokens.

    Args:
        db: Async database session. The caller commits.
        repository: Token storage. Defaults to VerificationTokenRepository.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        repository: type[VerificationTokenRepository] = VerificationTokenRepository,
    ) -> None:
        self._db = db
        self._repository = repository

    async def issue(
        self,
        user_account_id: int,
        purpose: TokenPurpose,
        ttl: timedelta,
        *,
        now: datetime | None = None,
    ) -> IssuedToken:
        """Issue a new token, invalidating any outstanding one of that purpose.

        Args:
            user_account_id: Account the token belongs to.
            purpose: What the token may be used for.
            ttl: How long the token stays valid.
            now: Issuance time. Defaults to the current time.

        Returns:
            IssuedToken carrying the plain token.
        """
        plain = secrets.token_urlsafe(_TOKEN_BYTES)
        expires_at = (now or datetime.now(UTC)) + ttl
        await self._repository.replace(
            self._db,
            user_account_id=user_account_id,
            purpose=purpose.value,
            token_hash=hash_token(plain),
            expires_at=expires_at,
        )
        return IssuedToken(
            token=plain,
            user_account_id=user_account_id,
            purpose=purpose,
            expires_at=expires_at,
        )

    async def consume(
        self,
        token: str,
        purpose: TokenPurpose,
        *,
        now: datetime | None = None,
    ) -> int:
        """Use up a token.

        Args:
            token: Plain token as presented by the user.
            purpose: Operation the caller is performing.
            now: Reference time for the expiry check.

        Returns:
            ID of the account the token belongs to.

        Raises:
            TokenPurposeMismatchError: Token exists but for another purpose.
                It is left in place.
            TokenInvalidError: No such token, or it was already used.
            TokenExpiredError: Token found but expired. It is deleted anyway.
        """
        token_hash = hash_token(token)
        consumed = await self._repository.consume(
            self._db, token_hash=token_hash, purpose=purpose.value
        )
        if consumed is None:
            stored_purpose = await self._repository.get_purpose(
                self._db, token_hash=token_hash
            )
            if stored_purpose is not None:
                raise TokenPurposeMismatchError()
            raise TokenInvalidError()

        if consumed.expires_at <= (now or datetime.now(UTC)):
            logger.info(
                "Expired %s token presented for account %s",
                purpose.value,
                consumed.user_account_id,
            )
            raise TokenExpiredError()

        return consumed.user_account_id
