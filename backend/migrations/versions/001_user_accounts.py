"""Create user_accounts and verification_tokens.

Revision ID: 001_user_accounts
Revises:
Create Date: 2026-10-19

- user_accounts: integer id, unique lower-cased email, bcrypt hash,
  admin flag, confirmation timestamp.
- verification_tokens: SHA-256 token hashes, one row per
  (account, purpose).
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_user_accounts"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # =========================================================================
    # user_accounts
    # =========================================================================
    op.create_table(
        "user_accounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "is_admin",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("email", name="uq_user_accounts_email"),
    )

    # =========================================================================
    # verification_tokens
    # =========================================================================
    op.create_table(
        "verification_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column(
            "user_account_id",
            sa.Integer(),
            sa.ForeignKey("user_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("purpose", sa.String(32), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("token_hash", name="uq_verification_tokens_token_hash"),
        sa.UniqueConstraint(
            "user_account_id",
            "purpose",
            name="uq_verification_tokens_account_purpose",
        ),
        sa.CheckConstraint(
            "purpose IN ('registration_confirmation', 'password_reset')",
            name="ck_verification_tokens_purpose",
        ),
    )
    # Purge job scans by expiry
    op.create_index(
        "idx_verification_tokens_expires_at",
        "verification_tokens",
        ["expires_at"],
    )


def downgrade() -> None:
    op.drop_index(
        "idx_verification_tokens_expires_at", table_name="verification_tokens"
    )
    op.drop_table("verification_tokens")
    op.drop_table("user_accounts")
