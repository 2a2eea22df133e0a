"""Create identity tables: accounts, verification_tokens.

Revision ID: 001_identity_tables
Revises:
Create Date: 2026-10-18

- accounts: credentials, verification flag, pending password reset and the
  session revocation cutoff. The reset digest and expiry are paired by a
  CHECK constraint.
- verification_tokens: SHA-256 digests of emailed verification tokens,
  deleted with their account.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import ENUM, UUID

revision: str = "001_identity_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_account_role = ENUM(
    "HR Personnel",
    "Candidate",
    name="account_role",
    create_type=False,
)


def upgrade() -> None:
    # pgcrypto provides gen_random_uuid() for UUID primary keys
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    _account_role.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "accounts",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", _account_role, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column(
            "is_verified",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("reset_token_digest", sa.String(64), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("email", name="uq_accounts_email"),
        sa.CheckConstraint(
            "(reset_token_digest IS NULL) = (reset_token_expiry IS NULL)",
            name="ck_accounts_reset_token_paired",
        ),
    )
    op.create_index(
        "ix_accounts_reset_token_digest", "accounts", ["reset_token_digest"]
    )

    op.create_table(
        "verification_tokens",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "account_id",
            UUID(as_uuid=True),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token_digest", sa.String(64), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_verification_tokens_account_id", "verification_tokens", ["account_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_verification_tokens_account_id", table_name="verification_tokens")
    op.drop_table("verification_tokens")
    op.drop_index("ix_accounts_reset_token_digest", table_name="accounts")
    op.drop_table("accounts")
    _account_role.drop(op.get_bind(), checkfirst=True)
