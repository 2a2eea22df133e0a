"""Fixtures for unit tests of the account lifecycle.

The service runs against in-memory repositories, a recording email sender
and a controllable clock. No database is needed.
"""

from unittest.mock import AsyncMock

import pytest

from talentdesk.core.config import AuthConfig
from talentdesk.core.passwords import hash_password
from talentdesk.models.account import Account, AccountRole
from talentdesk.services.account_lifecycle import AccountLifecycleService
from tests.conftest import TEST_PASSWORD
from tests.fakes import (
    FakeClock,
    InMemoryAccountRepository,
    InMemoryVerificationTokenRepository,
    RecordingEmailSender,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def accounts() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def tokens() -> InMemoryVerificationTokenRepository:
    return InMemoryVerificationTokenRepository()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def db() -> AsyncMock:
    """Session stand-in; the service only commits and rolls back."""
    return AsyncMock()


@pytest.fixture
def service(
    db, auth_config: AuthConfig, email_sender, clock, accounts, tokens
) -> AccountLifecycleService:
    return AccountLifecycleService(
        db,
        auth_config,
        email_sender,
        clock=clock,
        accounts=accounts,
        tokens=tokens,
    )


@pytest.fixture
def verified_account(accounts, auth_config: AuthConfig) -> Account:
    """Verified HR account whose password is TEST_PASSWORD."""
    return accounts.add(
        email="alice@example.com",
        name="Alice",
        password_hash=hash_password(TEST_PASSWORD, auth_config.bcrypt_rounds),
    )


@pytest.fixture
def candidate_account(accounts, auth_config: AuthConfig) -> Account:
    """Verified candidate account whose password is TEST_PASSWORD."""
    return accounts.add(
        email="carol@example.com",
        name="Carol",
        role=AccountRole.CANDIDATE,
        password_hash=hash_password(TEST_PASSWORD, auth_config.bcrypt_rounds),
    )
