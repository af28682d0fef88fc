"""Async database engine and per-request sessions for the accounts tables.

One AsyncSession per request, shared by UserAccountRepository and
VerificationTokenRepository for user_accounts and verification_tokens.

Transaction rules:
- AuthService commits its own writes (registration, confirmation, password
  changes, token issue); get_db commits whatever is still pending when the
  handler returns.
- Any exception rolls the request back. A consumed token row is restored
  when a later check in the same request fails, so a token rejected for the
  wrong account stays usable by its owner.
- expire_on_commit=False: accounts loaded before a service commit stay
  readable after it.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from aidhub.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.environment == "development",
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield the request's session; commit on success, roll back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
