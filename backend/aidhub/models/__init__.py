"""SQLAlchemy ORM models for the accounts subsystem.

All models are exported from this module for convenient imports:
    from aidhub.models import UserAccount, VerificationToken

- user_account.py: UserAccount
- verification_token.py: VerificationToken, TokenPurpose
"""

from aidhub.models.base import Base, TimestampMixin
from aidhub.models.user_account import UserAccount
from aidhub.models.verification_token import TokenPurpose, VerificationToken

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Tables
    "UserAccount",
    "VerificationToken",
    # Enums
    "TokenPurpose",
]
