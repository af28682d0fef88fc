"""Authentication service: registration, login, sessions, passwords.

Orchestrates the credential store, token issuer, password hasher, and
session cookie codec. Routes call exactly one method per request; the
service commits its own writes and raises APIError subclasses on failure.

Security considerations:
- login: unknown email and wrong password raise the same error after the
  same amount of bcrypt work (dummy_hash at the configured cost)
- login: "not confirmed" is only revealed once the password has matched
- register: duplicate email gives one uniform 409, confirmed or not
- request_password_reset: identical outcome whether the email exists or not
- current_user: re-reads the account on every request, so admin and
  confirmation state are never stale
- tokens: a token only works for the account behind the email presented
"""

from dataclasses import dataclass
from datetime import timedelta

import structlog
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from aidhub.core.config import Settings, settings
from aidhub.core.email import PendingEmail
from aidhub.core.errors import (
    AccountNotConfirmedError,
    InvalidCredentialsError,
    TokenExpiredError,
    TokenInvalidError,
    UnauthenticatedError,
    ValidationError,
)
from aidhub.core.passwords import (
    hash_password_async,
    validate_password_strength,
    verify_dummy_async,
    verify_password_async,
)
from aidhub.core.session_cookie import SessionCookie, SessionCookieCodec
from aidhub.models.user_account import UserAccount
from aidhub.models.verification_token import TokenPurpose
from aidhub.repositories.user_account_repository import (
    UserAccountRepository,
    normalize_email,
)
from aidhub.services.token_issuer import TokenIssuer

logger = structlog.get_logger()

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, resolved once per request.

    Attributes:
        user: Current account, freshly loaded.
        is_admin: Admin capability, taken from the account row.
    """

    user: UserAccount
    is_admin: bool

    @property
    def user_id(self) -> int:
        """Shortcut for user.id."""
        return self.user.id


class AuthService:
    """Account and session operations for one request.

    Args:
        db: Async database session for this request.
        codec: Session cookie codec.
        bcrypt_rounds: Cost factor for new password hashes.
        confirmation_ttl: Lifetime of registration confirmation tokens.
        password_reset_ttl: Lifetime of password reset tokens.
        users: Account storage. Defaults to UserAccountRepository.
        tokens: Token issuer. Defaults to a TokenIssuer on db.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        codec: SessionCookieCodec,
        bcrypt_rounds: int,
        confirmation_ttl: timedelta,
        password_reset_ttl: timedelta,
        users: type[UserAccountRepository] = UserAccountRepository,
        tokens: TokenIssuer | None = None,
    ) -> None:
        self._db = db
        self._codec = codec
        self._rounds = bcrypt_rounds
        self._confirmation_ttl = confirmation_ttl
        self._password_reset_ttl = password_reset_ttl
        self._users = users
        self._tokens = tokens or TokenIssuer(db)

    @classmethod
    def from_settings(
        cls,
        db: AsyncSession,
        *,
        codec: SessionCookieCodec | None = None,
        config: Settings = settings,
    ) -> "AuthService":
        """Build a service configured from application settings."""
        return cls(
            db,
            codec=codec or SessionCookieCodec.from_settings(config),
            bcrypt_rounds=config.bcrypt_rounds,
            confirmation_ttl=timedelta(minutes=config.confirmation_token_ttl_minutes),
            password_reset_ttl=timedelta(
                minutes=config.password_reset_token_ttl_minutes
            ),
        )

    # -----------------------------------------------------------------------
    # Registration
    # -----------------------------------------------------------------------

    async def register(self, email: str, name: str, password: str) -> PendingEmail:
        """Create an unconfirmed account and a confirmation token.

        Args:
            email: Email address; must be well-formed.
            name: Display name; must not be blank.
            password: Plain password; must pass validate_password_strength.

        Returns:
            Confirmation email for the caller to dispatch.

        Raises:
            ValidationError: Bad email format, blank name, or weak password.
            DuplicateEmailError: Email (any casing) already registered.
        """
        email = _validated_email(email)
        name = name.strip()
        if not name:
            raise ValidationError("Name must not be empty")
        validate_password_strength(password)

        password_hash = await hash_password_async(password, self._rounds)
        account = await self._users.create(
            self._db, email=email, name=name, password_hash=password_hash
        )
        issued = await self._tokens.issue(
            account.id,
            TokenPurpose.REGISTRATION_CONFIRMATION,
            self._confirmation_ttl,
        )
        await self._db.commit()

        logger.info("Account registered", user_id=account.id)
        return PendingEmail(
            to_email=account.email,
            token=issued.token,
            purpose=TokenPurpose.REGISTRATION_CONFIRMATION,
        )

    async def confirm(self, email: str, token: str) -> None:
        """Confirm an account's email with its confirmation token.

        Args:
            email: Email the token was sent to.
            token: Plain confirmation token.

        Raises:
            TokenInvalidError: Unknown email, unknown or used token, token
                for another account or purpose, or expired token.
        """
        account = await self._users.get_by_email(self._db, email)
        if account is None:
            logger.info("Confirmation for unknown email rejected")
            raise TokenInvalidError()

        user_id = await self._consume(token, TokenPurpose.REGISTRATION_CONFIRMATION)
        if user_id != account.id:
            logger.warning(
                "Confirmation token presented for another account",
                user_id=account.id,
            )
            raise TokenInvalidError()

        await self._users.confirm(self._db, account.id)
        await self._db.commit()
        logger.info("Account confirmed", user_id=account.id)

    # -----------------------------------------------------------------------
    # Sessions
    # -----------------------------------------------------------------------

    async def login(self, email: str, password: str) -> SessionCookie:
        """Verify credentials and mint a session cookie.

        Args:
            email: Account email (any casing).
            password: Plain password.

        Returns:
            Fresh session cookie.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            AccountNotConfirmedError: Correct password, email not confirmed.
        """
        account = await self._users.get_by_email(self._db, email)

        if account is None:
            # Security: always perform bcrypt comparison to prevent timing attacks.
            await verify_dummy_async(password, self._rounds)
            logger.info("Login failed", reason="unknown_email")
            raise InvalidCredentialsError()

        if not await verify_password_async(password, account.password_hash):
            logger.info("Login failed", reason="wrong_password", user_id=account.id)
            raise InvalidCredentialsError()

        if not account.is_confirmed:
            logger.info("Login blocked", reason="not_confirmed", user_id=account.id)
            raise AccountNotConfirmedError()

        logger.info("Login succeeded", user_id=account.id)
        return self._codec.encode(account.id)

    async def current_user(self, cookie_value: str | None) -> AuthContext:
        """Resolve the session cookie of a request to an account.

        Args:
            cookie_value: Raw session cookie, or None if absent.

        Returns:
            AuthContext for the account.

        Raises:
            UnauthenticatedError: Missing, malformed, forged, or expired
                cookie, or the account no longer exists or is unconfirmed.
        """
        if not cookie_value:
            raise UnauthenticatedError()

        try:
            user_id = self._codec.decode(cookie_value)
        except UnauthenticatedError as exc:
            logger.debug("Session rejected", reason=exc.reason)
            raise

        account = await self._users.get_by_id(self._db, user_id)
        if account is None or not account.is_confirmed:
            logger.info("Session for unusable account rejected", user_id=user_id)
            raise UnauthenticatedError()

        return AuthContext(user=account, is_admin=account.is_admin)

    def renew_session(self, user_id: int) -> SessionCookie:
        """Reissue a session cookie with a fresh expiry window."""
        return self._codec.encode(user_id)

    def end_session(self) -> SessionCookie:
        """Cookie telling the client to discard its session."""
        return self._codec.expired()

    # -----------------------------------------------------------------------
    # Passwords
    # -----------------------------------------------------------------------

    async def change_password(
        self, user_id: int, current_password: str, new_password: str
    ) -> SessionCookie:
        """Change the password of a signed-in user.

        Existing cookies stay valid until they expire; a fresh one is
        returned to extend the current session.

        Args:
            user_id: Account of the current session.
            current_password: Must match the stored hash.
            new_password: Must pass validate_password_strength.

        Returns:
            Fresh session cookie.

        Raises:
            UnauthenticatedError: Account no longer exists.
            InvalidCredentialsError: Current password incorrect.
            ValidationError: New password too weak.
        """
        account = await self._users.get_by_id(self._db, user_id)
        if account is None:
            raise UnauthenticatedError()

        if not await verify_password_async(current_password, account.password_hash):
            logger.info("Password change rejected", user_id=user_id)
            raise InvalidCredentialsError("Current password incorrect")

        validate_password_strength(new_password)
        new_hash = await hash_password_async(new_password, self._rounds)
        await self._users.update_password_hash(self._db, user_id, new_hash)
        await self._db.commit()

        logger.info("Password changed", user_id=user_id)
        return self._codec.encode(user_id)

    async def request_password_reset(self, email: str) -> PendingEmail | None:
        """Issue a password reset token if the email belongs to an account.

        Callers must respond identically whatever this returns.

        Args:
            email: Address to send the reset token to.

        Returns:
            Reset email to dispatch, or None if there is no such account.
        """
        account = await self._users.get_by_email(self._db, email)
        if account is None:
            logger.info("Password reset requested for unknown email")
            return None

        issued = await self._tokens.issue(
            account.id, TokenPurpose.PASSWORD_RESET, self._password_reset_ttl
        )
        await self._db.commit()

        logger.info("Password reset token issued", user_id=account.id)
        return PendingEmail(
            to_email=account.email,
            token=issued.token,
            purpose=TokenPurpose.PASSWORD_RESET,
        )

    async def reset_password(self, email: str, token: str, new_password: str) -> None:
        """Set a new password using a password reset token.

        A successful reset also confirms the account: the token proves the
        user controls the email address.

        Args:
            email: Email the reset token was sent to.
            token: Plain reset token.
            new_password: Must pass validate_password_strength.

        Raises:
            ValidationError: New password too weak.
            TokenInvalidError: Unknown email, or token unknown, used,
                expired, for another account, or for another purpose.
        """
        validate_password_strength(new_password)

        account = await self._users.get_by_email(self._db, email)
        if account is None:
            logger.info("Password reset for unknown email rejected")
            raise TokenInvalidError()

        user_id = await self._consume(token, TokenPurpose.PASSWORD_RESET)
        if user_id != account.id:
            logger.warning(
                "Reset token presented for another account", user_id=account.id
            )
            raise TokenInvalidError()

        new_hash = await hash_password_async(new_password, self._rounds)
        await self._users.update_password_hash(self._db, account.id, new_hash)
        await self._users.confirm(self._db, account.id)
        await self._db.commit()
        logger.info("Password reset", user_id=account.id)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _consume(self, token: str, purpose: TokenPurpose) -> int:
        """Consume a token, keeping the deletion of an expired one."""
        try:
            return await self._tokens.consume(token, purpose)
        except TokenExpiredError:
            # The expired row was deleted; persist that before failing.
            await self._db.commit()
            logger.info("Token rejected", purpose=purpose.value, reason="expired")
            raise
        except TokenInvalidError as exc:
            logger.info("Token rejected", purpose=purpose.value, reason=exc.reason)
            raise


def _validated_email(email: str) -> str:
    """Check email format and return its normalized form.

    Raises:
        ValidationError: If the address is not a valid email.
    """
    try:
        valid = _email_adapter.validate_python(email.strip())
    except PydanticValidationError as exc:
        raise ValidationError("Invalid email address") from exc
    return normalize_email(valid)
