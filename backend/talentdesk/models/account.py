"""Account model - identity and credentials.

One row per person who can sign in. Passwords are stored as bcrypt hashes;
the pending password reset, if any, lives on the row as a digest plus an
absolute expiry.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, String, UniqueConstraint, text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talentdesk.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from talentdesk.models.verification_token import VerificationToken


class AccountRole(str, Enum):
    """Role of an account. Login endpoints may require one."""

    HR_PERSONNEL = "HR Personnel"
    CANDIDATE = "Candidate"


class Account(Base, TimestampMixin):
    """Account for authentication.

    Attributes:
        id: UUID primary key.
        email: Unique email address, stored lower-cased.
        name: Display name.
        role: AccountRole.
        password_hash: bcrypt hash. NULL for accounts without a password.
        is_verified: Whether the email address was confirmed.
        reset_token_digest: SHA-256 of the pending reset token.
        reset_token_expiry: When the pending reset token stops working.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("email", name="uq_accounts_email"),
        CheckConstraint(
            "(reset_token_digest IS NULL) = (reset_token_expiry IS NULL)",
            name="ck_accounts_reset_token_paired",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[AccountRole] = mapped_column(
        SAEnum(
            AccountRole,
            name="account_role",
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=AccountRole.HR_PERSONNEL,
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    reset_token_digest: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    reset_token_expiry: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    verification_tokens: Mapped[list["VerificationToken"]] = relationship(
        "VerificationToken",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
