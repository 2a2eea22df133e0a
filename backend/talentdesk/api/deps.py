"""Shared dependencies for API endpoints.

Everything an endpoint needs is injected here: the DB session, the frozen
AuthConfig, the email sender and the lifecycle service built from them.
Tests override get_lifecycle_service or get_auth_config via
app.dependency_overrides.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from talentdesk.core.config import AuthConfig, settings
from talentdesk.core.database import get_db
from talentdesk.core.email import EmailSender, get_email_sender
from talentdesk.core.errors import UnauthorizedError
from talentdesk.models.account import Account
from talentdesk.services.account_lifecycle import AccountLifecycleService

# auto_error=False so a missing header becomes our 401 envelope, not
# FastAPI's 403.
_bearer = HTTPBearer(auto_error=False)


@lru_cache
def get_auth_config() -> AuthConfig:
    """Auth configuration, frozen once per process."""
    return settings.auth_config()


DbSession = Annotated[AsyncSession, Depends(get_db)]
Config = Annotated[AuthConfig, Depends(get_auth_config)]


def get_lifecycle_service(
    db: DbSession,
    config: Config,
    email_sender: Annotated[EmailSender, Depends(get_email_sender)],
) -> AccountLifecycleService:
    """Build the per-request lifecycle service."""
    return AccountLifecycleService(db, config, email_sender)


LifecycleService = Annotated[AccountLifecycleService, Depends(get_lifecycle_service)]


async def get_current_account(
    service: LifecycleService,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> Account:
    """Resolve the account from an ``Authorization: Bearer`` access token.

    Raises:
        UnauthorizedError: 401 for any auth failure. The reason (missing,
            expired, bad signature, account gone) is never disclosed.
    """
    if credentials is None:
        raise UnauthorizedError()
    return await service.current_account(credentials.credentials)


CurrentAccount = Annotated[Account, Depends(get_current_account)]
