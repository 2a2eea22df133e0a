"""Tests for VerificationTokenRepository.

Runs against PostgreSQL. Consumption is a single DELETE ... RETURNING, so
these tests check it in the database rather than against a fake.
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from talentdesk.models.account import Account, AccountRole
from talentdesk.repositories.account_repository import AccountRepository
from talentdesk.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

_DIGEST = "ab" * 32
_OTHER_DIGEST = "cd" * 32
_NOW = datetime.now(UTC)
_TTL = timedelta(hours=1)


@pytest.fixture
async def account(db_session: AsyncSession) -> Account:
    return await AccountRepository.create(
        db_session,
        email="tokens@example.com",
        name="Token Holder",
        role=AccountRole.HR_PERSONNEL,
        password_hash=None,
    )


async def _issue(db: AsyncSession, account: Account, *, digest=_DIGEST, age=timedelta()):
    return await VerificationTokenRepository.create(
        db, account_id=account.id, token_digest=digest, created_at=_NOW - age
    )


class TestConsume:
    """Test VerificationTokenRepository.consume()."""

    async def test_live_token_consumed_once(self, db_session: AsyncSession, account):
        await _issue(db_session, account)
        kwargs = {
            "account_id": account.id,
            "token_digest": _DIGEST,
            "issued_after": _NOW - _TTL,
        }
        assert await VerificationTokenRepository.consume(db_session, **kwargs) is True
        assert await VerificationTokenRepository.consume(db_session, **kwargs) is False
        assert await VerificationTokenRepository.count_for_account(
            db_session, account.id
        ) == 0

    async def test_expired_token_not_consumed(self, db_session: AsyncSession, account):
        await _issue(db_session, account, age=_TTL + timedelta(seconds=1))
        consumed = await VerificationTokenRepository.consume(
            db_session,
            account_id=account.id,
            token_digest=_DIGEST,
            issued_after=_NOW - _TTL,
        )
        assert consumed is False
        assert await VerificationTokenRepository.count_for_account(
            db_session, account.id
        ) == 1

    async def test_wrong_digest(self, db_session: AsyncSession, account):
        await _issue(db_session, account)
        consumed = await VerificationTokenRepository.consume(
            db_session,
            account_id=account.id,
            token_digest=_OTHER_DIGEST,
            issued_after=_NOW - _TTL,
        )
        assert consumed is False

    async def test_only_matching_token_removed(self, db_session: AsyncSession, account):
        await _issue(db_session, account)
        await _issue(db_session, account, digest=_OTHER_DIGEST)
        await VerificationTokenRepository.consume(
            db_session,
            account_id=account.id,
            token_digest=_DIGEST,
            issued_after=_NOW - _TTL,
        )
        assert await VerificationTokenRepository.count_for_account(
            db_session, account.id
        ) == 1

    async def test_concurrent_consume_succeeds_once(self, db_engine):
        """Two sessions racing on one token: exactly one wins."""
        session_factory = async_sessionmaker(
            db_engine, class_=AsyncSession, expire_on_commit=False
        )
        async with session_factory() as session:
            holder = await AccountRepository.create(
                session,
                email="race@example.com",
                name="Racer",
                role=AccountRole.HR_PERSONNEL,
                password_hash=None,
            )
            await _issue(session, holder)
            await session.commit()

        async def consume() -> bool:
            async with session_factory() as session:
                consumed = await VerificationTokenRepository.consume(
                    session,
                    account_id=holder.id,
                    token_digest=_DIGEST,
                    issued_after=_NOW - _TTL,
                )
                await session.commit()
                return consumed

        results = await asyncio.gather(consume(), consume())

        assert sorted(results) == [False, True]
        async with session_factory() as session:
            assert await VerificationTokenRepository.count_for_account(
                session, holder.id
            ) == 0


class TestPurgeExpired:
    """Test VerificationTokenRepository.purge_expired()."""

    async def test_deletes_only_expired(self, db_session: AsyncSession, account):
        await _issue(db_session, account, age=timedelta(hours=2))
        await _issue(db_session, account, digest=_OTHER_DIGEST)

        deleted = await VerificationTokenRepository.purge_expired(
            db_session, issued_before=_NOW - _TTL
        )
        assert deleted == 1
        assert await VerificationTokenRepository.count_for_account(
            db_session, account.id
        ) == 1


class TestCascade:
    async def test_tokens_deleted_with_account(self, db_session: AsyncSession, account):
        await _issue(db_session, account)
        await db_session.delete(account)
        await db_session.flush()
        assert await VerificationTokenRepository.count_for_account(
            db_session, account.id
        ) == 0
