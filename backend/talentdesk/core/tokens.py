"""Signed session tokens (JWT, HS256).

Two kinds exist. Access tokens are short-lived and presented as a Bearer
header. Refresh tokens are long-lived and travel in the ``jwt`` cookie. Each
kind is signed with its own secret and carries a ``typ`` claim, so one can
never be verified as the other.

Tokens are stateless: nothing is stored server-side, and a token stays valid
until it expires. ``iat`` is written as a float timestamp so ``issued_at``
round-trips with sub-second precision.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import jwt

from talentdesk.core.config import AuthConfig

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "typ", "iss", "aud", "iat", "exp"]


class TokenKind(str, Enum):
    """Value of the ``typ`` claim."""

    ACCESS = "access"
    REFRESH = "refresh"


class SessionTokenError(Exception):
    """Base class for session token verification failures."""


class TokenExpired(SessionTokenError):
    """The ``exp`` claim is in the past."""


class TokenMalformed(SessionTokenError):
    """Not a JWT, missing claims, wrong audience/issuer, or wrong ``typ``."""


class TokenSignatureInvalid(SessionTokenError):
    """Signature does not match the secret for the expected kind."""


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token."""

    subject_id: uuid.UUID
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime


class SessionTokenIssuer:
    """Issues and verifies session tokens.

    Holds nothing but the immutable AuthConfig, so one instance can be
    shared freely.

    Args:
        config: Secrets, lifetimes, issuer and audience.
    """

    def __init__(self, config: AuthConfig) -> None:
        self._config = config

    def _secret(self, kind: TokenKind) -> str:
        if kind is TokenKind.ACCESS:
            return self._config.access_secret
        return self._config.refresh_secret

    def _issue(
        self, subject_id: uuid.UUID, kind: TokenKind, now: datetime | None
    ) -> str:
        now = now or datetime.now(UTC)
        ttl = (
            self._config.access_ttl
            if kind is TokenKind.ACCESS
            else self._config.refresh_ttl
        )
        payload = {
            "sub": str(subject_id),
            "typ": kind.value,
            "iss": self._config.issuer,
            "aud": self._config.audience,
            "iat": now.timestamp(),
            "exp": now + ttl,
        }
        return jwt.encode(payload, self._secret(kind), algorithm=_ALGORITHM)

    def issue_access(self, subject_id: uuid.UUID, now: datetime | None = None) -> str:
        """Issue an access token for an account.

        Args:
            subject_id: Account id for the ``sub`` claim.
            now: Issue time. Defaults to the current UTC time.

        Returns:
            Encoded JWT string.
        """
        return self._issue(subject_id, TokenKind.ACCESS, now)

    def issue_refresh(self, subject_id: uuid.UUID, now: datetime | None = None) -> str:
        """Issue a refresh token for an account.

        Args:
            subject_id: Account id for the ``sub`` claim.
            now: Issue time. Defaults to the current UTC time.

        Returns:
            Encoded JWT string.
        """
        return self._issue(subject_id, TokenKind.REFRESH, now)

    def verify(self, token: str, kind: TokenKind) -> TokenClaims:
        """Verify a token of the given kind and return its claims.

        Checks signature, expiry, issuer, audience, the presence of every
        claim, the ``typ`` claim and that ``sub`` is a UUID.

        Args:
            token: Encoded JWT.
            kind: Expected token kind. Selects the secret.

        Returns:
            TokenClaims of the verified token.

        Raises:
            TokenExpired: Token is past its ``exp``.
            TokenSignatureInvalid: Signature check failed.
            TokenMalformed: Any other defect.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret(kind),
                algorithms=[_ALGORITHM],
                audience=self._config.audience,
                issuer=self._config.issuer,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            logger.debug("Rejected %s token: expired", kind.value)
            raise TokenExpired from exc
        except jwt.InvalidSignatureError as exc:
            logger.debug("Rejected %s token: bad signature", kind.value)
            raise TokenSignatureInvalid from exc
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected %s token: %s", kind.value, type(exc).__name__)
            raise TokenMalformed from exc

        if payload["typ"] != kind.value:
            logger.debug("Rejected %s token: typ=%r", kind.value, payload["typ"])
            raise TokenMalformed

        try:
            subject_id = uuid.UUID(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise TokenMalformed from exc

        return TokenClaims(
            subject_id=subject_id,
            kind=kind,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        )
