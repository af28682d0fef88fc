"""Purge expired verification tokens.

Standalone maintenance script (not an Alembic migration). Expired tokens
are already unusable; this only keeps the table small. Safe to run at any
time, e.g. from cron.

Usage:
    cd backend && python -m scripts.purge_expired_tokens
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from aidhub.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class PurgeStats:
    """Statistics from a purge run."""

    cutoff: datetime
    tokens_deleted: int = 0


async def run_purge(
    session: AsyncSession, now: datetime | None = None
) -> PurgeStats:
    """Delete every verification token that expired before ``now``.

    Args:
        session: Active async database session. Caller is responsible
                 for committing or rolling back.
        now: Cutoff time. Defaults to the current time.

    Returns:
        PurgeStats with the cutoff used and the number of deleted rows.
    """
    stats = PurgeStats(cutoff=now or datetime.now(UTC))

    # Prevent concurrent purge runs (advisory lock released on commit/rollback)
    await session.execute(text("SELECT pg_advisory_xact_lock(4711001)"))

    stats.tokens_deleted = await VerificationTokenRepository.delete_expired(
        session, now=stats.cutoff
    )

    logger.info(
        "Purge complete: %d expired tokens deleted (cutoff %s)",
        stats.tokens_deleted,
        stats.cutoff.isoformat(),
    )
    return stats


async def main() -> None:
    """CLI entry point: purge against the configured database."""
    import sys

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from aidhub.core.config import settings

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_async_engine(settings.database_url, echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        result = await run_purge(session)
        await session.commit()

    await engine.dispose()

    logger.info("Final stats: %s", result)
    sys.exit(0)


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
