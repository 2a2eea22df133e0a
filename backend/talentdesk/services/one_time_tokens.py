"""Single-use, time-limited email verification tokens.

The store hands out plaintext values and keeps only their digests. A value
can be consumed once, and only within its TTL. Every failure surfaces as
InvalidOrExpiredTokenError: never issued, expired, wrong value and already
used all look the same to the caller.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from talentdesk.core.errors import InvalidOrExpiredTokenError
from talentdesk.core.secret_tokens import VERIFICATION_TOKEN_BYTES, digest, random_token
from talentdesk.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class IssuedToken:
    """A freshly issued token. ``value`` is the only copy of the plaintext."""

    value: str
    created_at: datetime


class OneTimeTokenStore:
    """Issues and consumes verification tokens.

    Args:
        db: Async database session. The caller commits.
        ttl: How long an issued token stays consumable.
        clock: Source of the current time.
        repository: Token persistence (swappable in tests).
    """

    def __init__(
        self,
        db: AsyncSession,
        ttl: timedelta,
        clock: Clock = utc_now,
        repository: type[VerificationTokenRepository] = VerificationTokenRepository,
    ) -> None:
        self._db = db
        self._ttl = ttl
        self._clock = clock
        self._repository = repository

    async def issue(self, account_id: uuid.UUID) -> IssuedToken:
        """Create a token for an account.

        Args:
            account_id: Account the token will verify.

        Returns:
            IssuedToken holding the plaintext value.
        """
        value = random_token(VERIFICATION_TOKEN_BYTES)
        created_at = self._clock()
        await self._repository.create(
            self._db,
            account_id=account_id,
            token_digest=digest(value),
            created_at=created_at,
        )
        return IssuedToken(value=value, created_at=created_at)

    async def consume(self, account_id: uuid.UUID, value: str) -> None:
        """Consume a token, deleting it.

        Args:
            account_id: Account the token must belong to.
            value: Plaintext token from the link.

        Raises:
            InvalidOrExpiredTokenError: No live token matched.
        """
        consumed = await self._repository.consume(
            self._db,
            account_id=account_id,
            token_digest=digest(value),
            issued_after=self._clock() - self._ttl,
        )
        if not consumed:
            raise InvalidOrExpiredTokenError()
