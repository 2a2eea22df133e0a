"""Repository for VerificationToken operations.

Tokens are stored as SHA-256 digests. Expiry is a query-time filter on
created_at; the caller passes the cutoff (now - TTL) so the repository
never reads the clock.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from talentdesk.models.verification_token import VerificationToken


class VerificationTokenRepository:
    """Stateless repository for VerificationToken table operations.

    All methods are static; there is no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        account_id: uuid.UUID,
        token_digest: str,
        created_at: datetime,
    ) -> VerificationToken:
        """Store a new verification token.

        Args:
            db: Async database session.
            account_id: Account the token verifies.
            token_digest: SHA-256 hash of the plain token.
            created_at: Issue time (start of the TTL window).

        Returns:
            Created VerificationToken.
        """
        vt = VerificationToken(
            account_id=account_id,
            token_digest=token_digest,
            created_at=created_at,
        )
        db.add(vt)
        await db.flush()
        return vt

    @staticmethod
    async def consume(
        db: AsyncSession,
        *,
        account_id: uuid.UUID,
        token_digest: str,
        issued_after: datetime,
    ) -> bool:
        """Atomically delete a live token.

        A single ``DELETE ... RETURNING`` statement, so two concurrent
        consumers of the same token cannot both succeed.

        Args:
            db: Async database session.
            account_id: Account the token must belong to.
            token_digest: SHA-256 hash of the submitted token.
            issued_after: Oldest created_at still considered live.

        Returns:
            True if a token was consumed, False if none matched.
        """
        stmt = (
            delete(VerificationToken)
            .where(
                VerificationToken.account_id == account_id,
                VerificationToken.token_digest == token_digest,
                VerificationToken.created_at > issued_after,
            )
            .returning(VerificationToken.id)
        )
        result = await db.execute(stmt)
        return result.first() is not None

    @staticmethod
    async def count_for_account(db: AsyncSession, account_id: uuid.UUID) -> int:
        """Count stored tokens (live or expired) for an account.

        Args:
            db: Async database session.
            account_id: Account UUID.

        Returns:
            Number of token rows.
        """
        stmt = (
            select(func.count())
            .select_from(VerificationToken)
            .where(VerificationToken.account_id == account_id)
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def purge_expired(db: AsyncSession, *, issued_before: datetime) -> int:
        """Delete tokens created at or before a cutoff (periodic cleanup).

        Args:
            db: Async database session.
            issued_before: Cutoff (now - TTL).

        Returns:
            Number of deleted rows.
        """
        stmt = delete(VerificationToken).where(
            VerificationToken.created_at <= issued_before,
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
