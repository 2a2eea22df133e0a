"""Repository for Account CRUD operations.

Provides database access for the accounts table. Callers own the
transaction: methods flush, they never commit.
"""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from talentdesk.models.account import Account, AccountRole
from talentdesk.schemas.account import AccountUpdate


class AccountRepository:
    """Stateless repository for Account table operations.

    All methods are static; there is no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, account_id: uuid.UUID) -> Account | None:
        """Fetch an account by primary key.

        Args:
            db: Async database session.
            account_id: UUID primary key.

        Returns:
            Account if found, None otherwise.
        """
        return await db.get(Account, account_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Account | None:
        """Fetch an account by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            Account if found, None otherwise.
        """
        stmt = select(Account).where(Account.email == email.strip().lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_reset_digest(
        db: AsyncSession, *, digest: str, now: datetime
    ) -> Account | None:
        """Fetch the account holding an unexpired reset token.

        Args:
            db: Async database session.
            digest: SHA-256 hex of the submitted reset token.
            now: Current time. The stored expiry must be strictly later.

        Returns:
            Account if a live reset token matches, None otherwise.
        """
        stmt = select(Account).where(
            Account.reset_token_digest == digest,
            Account.reset_token_expiry > now,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        name: str,
        role: AccountRole,
        password_hash: str | None,
    ) -> Account:
        """Create a new, unverified account.

        Email is normalized to lowercase before storage.

        Args:
            db: Async database session.
            email: Account email address.
            name: Display name.
            role: Account role.
            password_hash: bcrypt hash (None for password-less accounts).

        Returns:
            Created Account with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        account = Account(
            email=email.strip().lower(),
            name=name,
            role=role,
            password_hash=password_hash,
            is_verified=False,
        )
        db.add(account)
        await db.flush()
        await db.refresh(account)
        return account

    @staticmethod
    async def update(
        db: AsyncSession,
        account_id: uuid.UUID,
        changes: AccountUpdate,
    ) -> Account | None:
        """Apply an explicit partial update.

        Only fields set on ``changes`` are written.

        Args:
            db: Async database session.
            account_id: UUID of the account to update.
            changes: Validated partial update.

        Returns:
            Updated Account if found, None if the account does not exist.
        """
        account = await db.get(Account, account_id)
        if account is None:
            return None

        for field, value in changes.changes().items():
            setattr(account, field, value)

        await db.flush()
        await db.refresh(account)
        return account
