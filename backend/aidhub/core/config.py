"""Application configuration loaded from environment variables.

Settings for the database, the HTTP boundary, session cookies, password
hashing, verification tokens, and the mailer. Uses pydantic-settings for
validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_security_invariants() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "aidhub_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32

# Session cookies must expire strictly before this many minutes
_MAX_SESSION_TTL_MINUTES = 30

# bcrypt accepts cost factors 4..31
_MIN_BCRYPT_ROUNDS = 4
_MAX_BCRYPT_ROUNDS = 31


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "aidhub"
    database_user: str = "aidhub_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # CORS (Security)
    # CRITICAL: Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    # Session cookie
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "aidhub"
    auth_audience: str = "aidhub"
    auth_cookie_name: str = "aidhub.session"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    auth_cookie_domain: str = ""
    session_ttl_minutes: int = 20

    # Password hashing
    bcrypt_rounds: int = 12

    # Verification tokens
    confirmation_token_ttl_minutes: int = 24 * 60
    password_reset_token_ttl_minutes: int = 30

    # Email
    mailer_backend: Literal["console", "resend"] = "console"
    email_from: str = "noreply@distributeaid.org"
    resend_api_key: SecretStr = SecretStr("")

    # Frontend URL (links in confirmation and reset emails)
    frontend_url: str = "http://localhost:3000"

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_login: str = "10/minute"
    rate_limit_register: str = "5/hour"
    rate_limit_password_token: str = "5/hour"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_security_invariants(self) -> "Settings":
        """Validate security requirements.

        Checks:
        - Session TTL must be positive and strictly below 30 minutes
        - bcrypt rounds must be within the range bcrypt accepts
        - Token TTLs must be positive
        - SameSite=None requires Secure flag (browser requirement)
        - CORS must not use wildcard origin (incompatible with credentials)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        """
        if not 0 < self.session_ttl_minutes < _MAX_SESSION_TTL_MINUTES:
            msg = (
                f"SESSION_TTL_MINUTES must be between 1 and "
                f"{_MAX_SESSION_TTL_MINUTES - 1}. Got: {self.session_ttl_minutes}"
            )
            raise ValueError(msg)

        if not _MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= _MAX_BCRYPT_ROUNDS:
            msg = (
                f"BCRYPT_ROUNDS must be between {_MIN_BCRYPT_ROUNDS} and "
                f"{_MAX_BCRYPT_ROUNDS}. Got: {self.bcrypt_rounds}"
            )
            raise ValueError(msg)

        if (
            self.confirmation_token_ttl_minutes <= 0
            or self.password_reset_token_ttl_minutes <= 0
        ):
            msg = "Verification token TTLs must be positive."
            raise ValueError(msg)

        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)

            if self.mailer_backend == "resend" and not (
                self.resend_api_key.get_secret_value()
            ):
                msg = "RESEND_API_KEY must be set when MAILER_BACKEND=resend."
                raise ValueError(msg)

        return self


settings = Settings()
