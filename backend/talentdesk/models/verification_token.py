"""Verification token model - email confirmation links.

Single-use and time-limited. Only the SHA-256 digest is stored; the
plaintext exists solely in the emailed link. Expiry is derived from
created_at at query time.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talentdesk.models.base import Base

if TYPE_CHECKING:
    from talentdesk.models.account import Account


class VerificationToken(Base):
    """Email verification token.

    Attributes:
        id: UUID primary key.
        account_id: Account the token verifies.
        token_digest: SHA-256 hex of the plaintext token.
        created_at: Issue time. The token expires a fixed TTL later.
    """

    __tablename__ = "verification_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_digest: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    account: Mapped["Account"] = relationship(
        "Account",
        back_populates="verification_tokens",
    )
