import socket
from collections.abc import AsyncGenerator, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import bcrypt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from aidhub.core.config import settings
from aidhub.core.session_cookie import SessionCookieCodec
from aidhub.models import Base, TokenPurpose, UserAccount

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

TEST_EMAIL = "alice@example.com"
TEST_NAME = "Alice"
TEST_PASSWORD = 'y{uugBmw"9,?=L_'  # nosec B105  # gitleaks:allow
TEST_BCRYPT_ROUNDS = 4  # Low cost factor for fast tests


def make_codec(
    secret: str = TEST_AUTH_SECRET, ttl: timedelta = timedelta(minutes=20)
) -> SessionCookieCodec:
    """Session cookie codec matching the test settings."""
    return SessionCookieCodec(
        secret,
        ttl=ttl,
        issuer=settings.auth_issuer,
        audience=settings.auth_audience,
        cookie_name=settings.auth_cookie_name,
    )


def hash_for_tests(password: str) -> str:
    """bcrypt hash at the low test cost factor."""
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=TEST_BCRYPT_ROUNDS)
    ).decode()


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def confirmed_account(db_session: AsyncSession) -> UserAccount:
    """Confirmed account with TEST_EMAIL / TEST_PASSWORD."""
    account = UserAccount(
        email=TEST_EMAIL,
        name=TEST_NAME,
        password_hash=hash_for_tests(TEST_PASSWORD),
        is_admin=False,
        confirmed_at=datetime.now(UTC),
    )
    db_session.add(account)
    await db_session.commit()
    await db_session.refresh(account)
    return account


# =============================================================================
# Mail capture
# =============================================================================


@dataclass
class SentEmail:
    """One email captured by RecordingMailer."""

    to_email: str
    token: str
    purpose: TokenPurpose


@dataclass
class RecordingMailer:
    """Mailer that keeps every email in memory."""

    sent: list[SentEmail] = field(default_factory=list)

    async def send(self, to_email: str, token: str, *, purpose: TokenPurpose) -> None:
        self.sent.append(SentEmail(to_email=to_email, token=token, purpose=purpose))

    def last_token(self, purpose: TokenPurpose) -> str:
        """Token of the most recent email with the given purpose."""
        for email in reversed(self.sent):
            if email.purpose == purpose:
                return email.token
        msg = f"No {purpose.value} email was sent"
        raise AssertionError(msg)


@pytest.fixture
def mailer() -> RecordingMailer:
    """Fresh in-memory mailer."""
    return RecordingMailer()


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    db_engine, mailer: RecordingMailer
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, backed by the test database.

    Sets up:
    - Test database connection via dependency override
    - RecordingMailer in place of the configured mailer
    - Test signing secret, fast bcrypt, non-Secure cookies (plain http)
    - httpx.AsyncClient with ASGI transport and a cookie jar

    Args:
        db_engine: Test database engine from db_engine fixture.
        mailer: Captures confirmation and reset emails.

    Yields:
        AsyncClient; cookies set by responses are sent on later requests.
    """
    from aidhub.core.database import get_db
    from aidhub.core.email import get_mailer
    from aidhub.main import app

    test_session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    original_auth_secret = settings.auth_secret
    original_bcrypt_rounds = settings.bcrypt_rounds
    original_cookie_secure = settings.auth_cookie_secure
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.bcrypt_rounds = TEST_BCRYPT_ROUNDS
    settings.auth_cookie_secure = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    settings.auth_secret = original_auth_secret
    settings.bcrypt_rounds = original_bcrypt_rounds
    settings.auth_cookie_secure = original_cookie_secure
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting for tests.

    Rate limits would otherwise leak between tests through the shared
    in-memory storage. test_rate_limiting.py re-enables it locally.

    Yields:
        None (autouse fixture).
    """
    from aidhub.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original_enabled
