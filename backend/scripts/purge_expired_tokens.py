"""Delete expired email verification tokens.

Standalone maintenance script. Expired tokens are already ignored at lookup
time, so this only reclaims space; run it from cron as often as you like.

Usage:
    cd backend && python -m scripts.purge_expired_tokens
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from talentdesk.core.config import AuthConfig
from talentdesk.repositories.verification_token_repository import (
    VerificationTokenRepository,
)
from talentdesk.services.one_time_tokens import utc_now

logger = logging.getLogger(__name__)


async def purge_expired_tokens(
    session: AsyncSession,
    config: AuthConfig,
    now: datetime | None = None,
) -> int:
    """Delete verification tokens older than their TTL.

    Args:
        session: Async database session. The caller commits.
        config: Supplies the verification token TTL.
        now: Current time. Defaults to the current UTC time.

    Returns:
        Number of deleted tokens.
    """
    cutoff = (now or utc_now()) - config.verification_token_ttl
    deleted = await VerificationTokenRepository.purge_expired(
        session, issued_before=cutoff
    )
    logger.info("Purged %d verification tokens issued before %s", deleted, cutoff)
    return deleted


async def main() -> None:
    """CLI entry point: purge against the configured database."""
    from talentdesk.core.config import settings
    from talentdesk.core.database import dispose_engine, open_session
    from talentdesk.core.logging_config import configure_logging

    configure_logging(settings.log_level)

    async with open_session() as session:
        await purge_expired_tokens(session, settings.auth_config())

    await dispose_engine()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
