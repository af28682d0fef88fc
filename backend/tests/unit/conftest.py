"""In-memory storage doubles for service-level tests.

InMemoryUserAccounts and InMemoryVerificationTokens expose the same async
methods as the real repositories (session first, same keyword arguments),
so AuthService and TokenIssuer run unchanged on top of them without a
database.
"""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from aidhub.core.errors import DuplicateEmailError
from aidhub.models.user_account import UserAccount
from aidhub.repositories.user_account_repository import normalize_email
from aidhub.repositories.verification_token_repository import ConsumedToken
from aidhub.services.auth_service import AuthService
from aidhub.services.token_issuer import TokenIssuer, hash_token
from tests.conftest import TEST_BCRYPT_ROUNDS, make_codec


class InMemoryUserAccounts:
    """Dict-backed stand-in for UserAccountRepository."""

    def __init__(self) -> None:
        self.accounts: dict[int, UserAccount] = {}
        self._next_id = 1

    async def get_by_id(self, _db, user_id: int) -> UserAccount | None:
        return self.accounts.get(user_id)

    async def get_by_email(self, _db, email: str) -> UserAccount | None:
        wanted = normalize_email(email)
        return next((a for a in self.accounts.values() if a.email == wanted), None)

    async def create(
        self, db, *, email: str, name: str, password_hash: str
    ) -> UserAccount:
        if await self.get_by_email(db, email) is not None:
            raise DuplicateEmailError()
        account = UserAccount(
            id=self._next_id,
            email=normalize_email(email),
            name=name,
            password_hash=password_hash,
            is_admin=False,
            confirmed_at=None,
        )
        self.accounts[account.id] = account
        self._next_id += 1
        return account

    async def confirm(self, _db, user_id: int, *, now: datetime | None = None) -> bool:
        account = self.accounts.get(user_id)
        if account is None or account.confirmed_at is not None:
            return False
        account.confirmed_at = now or datetime.now(UTC)
        return True

    async def update_password_hash(self, _db, user_id: int, password_hash: str) -> None:
        account = self.accounts.get(user_id)
        if account is not None:
            account.password_hash = password_hash


class InMemoryVerificationTokens:
    """Dict-backed stand-in for VerificationTokenRepository, keyed by hash."""

    def __init__(self) -> None:
        self.rows: dict[str, ConsumedToken] = {}

    async def replace(
        self,
        _db,
        *,
        user_account_id: int,
        purpose: str,
        token_hash: str,
        expires_at: datetime,
    ) -> None:
        self.rows = {
            h: row
            for h, row in self.rows.items()
            if not (row.user_account_id == user_account_id and row.purpose == purpose)
        }
        self.rows[token_hash] = ConsumedToken(
            user_account_id=user_account_id, purpose=purpose, expires_at=expires_at
        )

    async def consume(
        self, _db, *, token_hash: str, purpose: str
    ) -> ConsumedToken | None:
        row = self.rows.get(token_hash)
        if row is None or row.purpose != purpose:
            return None
        del self.rows[token_hash]
        return row

    async def get_purpose(self, _db, *, token_hash: str) -> str | None:
        row = self.rows.get(token_hash)
        return row.purpose if row else None

    def expire(self, token: str) -> None:
        """Move a stored token's expiry into the past."""
        key = hash_token(token)
        self.rows[key] = replace(
            self.rows[key], expires_at=self.rows[key].expires_at - timedelta(days=30)
        )


@pytest.fixture
def mock_db() -> AsyncMock:
    """Session double; only commit/rollback are ever awaited on it."""
    return AsyncMock()


@pytest.fixture
def users() -> InMemoryUserAccounts:
    return InMemoryUserAccounts()


@pytest.fixture
def tokens() -> InMemoryVerificationTokens:
    return InMemoryVerificationTokens()


@pytest.fixture
def auth_service(
    mock_db: AsyncMock,
    users: InMemoryUserAccounts,
    tokens: InMemoryVerificationTokens,
) -> AuthService:
    """AuthService over in-memory storage with fast bcrypt."""
    return AuthService(
        mock_db,
        codec=make_codec(),
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
        confirmation_ttl=timedelta(hours=24),
        password_reset_ttl=timedelta(minutes=30),
        users=users,
        tokens=TokenIssuer(mock_db, repository=tokens),
    )
