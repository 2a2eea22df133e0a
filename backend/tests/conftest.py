import socket
from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from talentdesk.core.config import AuthConfig, settings
from talentdesk.models import Base

# Use separate test database
TEST_DATABASE_URL = (
    settings.database_url.rsplit("/", 1)[0] + f"/{settings.database_name}_test"
)

# Security: test-only secrets. Production reads real secrets from env.
TEST_ACCESS_SECRET = "test-access-secret-that-is-at-least-32-characters"  # nosec B105  # gitleaks:allow
TEST_REFRESH_SECRET = "test-refresh-secret-that-is-at-least-32-characters"  # nosec B105  # gitleaks:allow

TEST_PASSWORD = "secret1"  # nosec B105  # gitleaks:allow

# bcrypt cost 4 keeps hashing fast in tests
TEST_AUTH_CONFIG = AuthConfig(
    access_secret=TEST_ACCESS_SECRET,
    refresh_secret=TEST_REFRESH_SECRET,
    access_ttl=timedelta(minutes=15),
    refresh_ttl=timedelta(days=7),
    issuer="talentdesk-test",
    audience="talentdesk-test-api",
    bcrypt_rounds=4,
    backend_url="http://test",
)


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest.fixture
def auth_config() -> AuthConfig:
    """Auth configuration with test secrets and cheap bcrypt."""
    return TEST_AUTH_CONFIG


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()
