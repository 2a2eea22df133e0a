"""SQLAlchemy ORM models for TalentDesk identity.

All models are exported from this module for convenient imports:
    from talentdesk.models import Account, VerificationToken

Importing the package registers every table on Base.metadata, which
Alembic autogenerate and the test fixtures rely on.
"""

from talentdesk.models.account import Account, AccountRole
from talentdesk.models.base import Base, TimestampMixin
from talentdesk.models.verification_token import VerificationToken

__all__ = [
    "Account",
    "AccountRole",
    "Base",
    "TimestampMixin",
    "VerificationToken",
]
