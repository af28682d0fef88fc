"""Repository for VerificationToken operations.

Single-use email tokens stored as SHA-256 hashes, one row per
(account, purpose), with time-limited expiry. Issuing is a single upsert and
consumption is a single DELETE ... RETURNING statement, so concurrent
requests never race into a unique violation and two requests presenting
the same token cannot both get the row back.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from aidhub.models.verification_token import VerificationToken

_ACCOUNT_PURPOSE_CONSTRAINT = "uq_verification_tokens_account_purpose"


@dataclass(frozen=True)
class ConsumedToken:
    """Row data returned by a successful consume().

    Attributes:
        user_account_id: Owning account.
        purpose: Purpose the token was issued for.
        expires_at: Expiry recorded at issuance.
    """

    user_account_id: int
    purpose: str
    expires_at: datetime


class VerificationTokenRepository:
    """Stateless repository for VerificationToken table operations.

    All methods are static; no instance state.
    """

    @staticmethod
    async def replace(
        db: AsyncSession,
        *,
        user_account_id: int,
        purpose: str,
        token_hash: str,
        expires_at: datetime,
    ) -> VerificationToken:
        """Store a token, overwriting any earlier one for the same purpose.

        A single INSERT ... ON CONFLICT DO UPDATE on the (account, purpose)
        constraint, so two concurrent reissues both succeed and the last
        writer's token wins.

        Args:
            db: Async database session.
            user_account_id: Owning account.
            purpose: Token purpose.
            token_hash: SHA-256 hash of the plain token.
            expires_at: Token expiry timestamp.

        Returns:
            Stored VerificationToken.
        """
        stmt = (
            insert(VerificationToken)
            .values(
                user_account_id=user_account_id,
                purpose=purpose,
                token_hash=token_hash,
                expires_at=expires_at,
            )
            .on_conflict_do_update(
                constraint=_ACCOUNT_PURPOSE_CONSTRAINT,
                set_={
                    "token_hash": token_hash,
                    "expires_at": expires_at,
                    "created_at": func.now(),
                },
            )
            .returning(VerificationToken)
            .execution_options(populate_existing=True)
        )
        result = await db.scalars(stmt)
        return result.one()

    @staticmethod
    async def consume(
        db: AsyncSession,
        *,
        token_hash: str,
        purpose: str,
    ) -> ConsumedToken | None:
        """Atomically delete and return a token with the given purpose.

        Expiry is not checked here; the row is removed either way so an
        expired token cannot be retried.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.
            purpose: Purpose the caller wants to use the token for.

        Returns:
            ConsumedToken if a row was deleted, None otherwise.
        """
        stmt = (
            delete(VerificationToken)
            .where(
                VerificationToken.token_hash == token_hash,
                VerificationToken.purpose == purpose,
            )
            .returning(
                VerificationToken.user_account_id,
                VerificationToken.purpose,
                VerificationToken.expires_at,
            )
        )
        result = await db.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return ConsumedToken(
            user_account_id=row.user_account_id,
            purpose=row.purpose,
            expires_at=row.expires_at,
        )

    @staticmethod
    async def get_purpose(db: AsyncSession, *, token_hash: str) -> str | None:
        """Look up the purpose of a stored token without consuming it.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.

        Returns:
            Stored purpose, or None if no such token exists.
        """
        stmt = select(VerificationToken.purpose).where(
            VerificationToken.token_hash == token_hash
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_expired(db: AsyncSession, now: datetime | None = None) -> int:
        """Delete all expired tokens (periodic cleanup).

        Args:
            db: Async database session.
            now: Reference time. Defaults to the current time.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(VerificationToken).where(
            VerificationToken.expires_at < (now or datetime.now(UTC)),
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
