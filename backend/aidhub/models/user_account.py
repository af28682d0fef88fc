"""UserAccount model - the identity behind every session."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aidhub.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from aidhub.models.verification_token import VerificationToken


class UserAccount(Base, TimestampMixin):
    """User account for authentication.

    Attributes:
        id: Integer primary key, generated on insert.
        email: Unique email address, stored lower-cased.
        name: Display name given at registration.
        password_hash: bcrypt hash. Never serialized.
        is_admin: Whether the user has admin privileges. Defaults to False.
        confirmed_at: When the email was confirmed. NULL = cannot log in.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "user_accounts"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    verification_tokens: Mapped[list["VerificationToken"]] = relationship(
        "VerificationToken",
        back_populates="user_account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_confirmed(self) -> bool:
        """Whether the account has completed email confirmation."""
        return self.confirmed_at is not None
