"""Verification token model - single-use email tokens.

Stores the SHA-256 hash of each token, never the token itself. One row per
(account, purpose): issuing a new token replaces the previous one.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aidhub.models.base import Base

if TYPE_CHECKING:
    from aidhub.models.user_account import UserAccount


class TokenPurpose(str, Enum):
    """What a verification token may be used for."""

    REGISTRATION_CONFIRMATION = "registration_confirmation"
    PASSWORD_RESET = "password_reset"  # nosec B105


class VerificationToken(Base):
    """Single-use, time-limited email verification token.

    Attributes:
        id: Integer primary key.
        token_hash: SHA-256 hex digest of the plain token.
        user_account_id: Owning account.
        purpose: A TokenPurpose value.
        created_at: Issuance timestamp.
        expires_at: Token expiry timestamp.
    """

    __tablename__ = "verification_tokens"
    __table_args__ = (
        UniqueConstraint(
            "user_account_id",
            "purpose",
            name="uq_verification_tokens_account_purpose",
        ),
        CheckConstraint(
            "purpose IN ('registration_confirmation', 'password_reset')",
            name="ck_verification_tokens_purpose",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )
    user_account_id: Mapped[int] = mapped_column(
        ForeignKey("user_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    purpose: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    user_account: Mapped["UserAccount"] = relationship(
        "UserAccount",
        back_populates="verification_tokens",
    )
