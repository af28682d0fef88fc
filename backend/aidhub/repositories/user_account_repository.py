"""Repository for UserAccount operations.

Provides database access for the user_accounts table. Emails are
normalized (trimmed, lower-cased) on every write and every lookup, so the
unique constraint on the column is effectively case-insensitive.
"""

from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from aidhub.core.errors import DuplicateEmailError
from aidhub.models.user_account import UserAccount


def normalize_email(email: str) -> str:
    """Canonical form used for storage and comparison."""
    return email.strip().lower()


class UserAccountRepository:
    """Stateless repository for UserAccount table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> UserAccount | None:
        """Fetch an account by primary key.

        Args:
            db: Async database session.
            user_id: Integer primary key.

        Returns:
            UserAccount if found, None otherwise.
        """
        return await db.get(UserAccount, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> UserAccount | None:
        """Fetch an account by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            UserAccount if found, None otherwise.
        """
        stmt = select(UserAccount).where(UserAccount.email == normalize_email(email))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        name: str,
        password_hash: str,
    ) -> UserAccount:
        """Create a new, unconfirmed account.

        The insert runs in a savepoint so a unique violation leaves the
        caller's transaction usable.

        Args:
            db: Async database session.
            email: Email address (normalized before storage).
            name: Display name.
            password_hash: bcrypt digest.

        Returns:
            Created UserAccount with database-generated fields populated.

        Raises:
            DuplicateEmailError: If the normalized email already exists.
        """
        account = UserAccount(
            email=normalize_email(email),
            name=name,
            password_hash=password_hash,
        )
        try:
            async with db.begin_nested():
                db.add(account)
                await db.flush()
        except IntegrityError as exc:
            raise DuplicateEmailError() from exc
        await db.refresh(account)
        return account

    @staticmethod
    async def confirm(
        db: AsyncSession, user_id: int, *, now: datetime | None = None
    ) -> bool:
        """Mark an account confirmed.

        Only unconfirmed rows are touched, so confirmed_at is set exactly once.

        Args:
            db: Async database session.
            user_id: Account to confirm.
            now: Confirmation timestamp. Defaults to the current time.

        Returns:
            True if the account moved from unconfirmed to confirmed.
        """
        stmt = (
            update(UserAccount)
            .where(UserAccount.id == user_id, UserAccount.confirmed_at.is_(None))
            .values(confirmed_at=now or datetime.now(UTC))
            .execution_options(synchronize_session="fetch")
        )
        result = await db.execute(stmt)
        return bool(result.rowcount)  # type: ignore[attr-defined]

    @staticmethod
    async def update_password_hash(
        db: AsyncSession, user_id: int, password_hash: str
    ) -> None:
        """Replace an account's password hash.

        Args:
            db: Async database session.
            user_id: Account to update.
            password_hash: New bcrypt digest.
        """
        stmt = (
            update(UserAccount)
            .where(UserAccount.id == user_id)
            .values(password_hash=password_hash)
            .execution_options(synchronize_session="fetch")
        )
        await db.execute(stmt)
