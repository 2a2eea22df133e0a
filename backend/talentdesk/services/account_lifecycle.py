"""Account lifecycle: registration, verification, login, sessions, reset.

Every flow raises exactly one APIError subclass per failure condition and
never returns partial success.

Email dispatch follows one of two policies. Under both, a delivery failure
fails the flow with EmailDispatchFailedError (500); they differ in what
happens to the state written before the send:

- BEST_EFFORT (registration): nothing is rolled back. The account and its
  verification token stay.
- COMPENSATING (forgot password): the pending reset is cleared again.

Sessions are stateless. Logout only clears the refresh cookie (see the
logout route), so a refresh token stays valid until it expires.

bcrypt runs in a worker thread so hashing doesn't stall the event loop.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from talentdesk.core.config import AuthConfig
from talentdesk.core.email import EmailDeliveryError, EmailSender
from talentdesk.core.errors import (
    AlreadyExistsError,
    EmailDispatchFailedError,
    EmailNotVerifiedError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidLinkError,
    InvalidOrExpiredTokenError,
    InvalidRefreshTokenError,
    NoRefreshTokenError,
    UnauthorizedError,
    UnsupportedAuthMethodError,
    UserNotFoundError,
)
from talentdesk.core.passwords import DUMMY_HASH, hash_password, verify_password
from talentdesk.core.secret_tokens import RESET_TOKEN_BYTES, digest, random_token
from talentdesk.core.tokens import SessionTokenError, SessionTokenIssuer, TokenKind
from talentdesk.models.account import Account, AccountRole
from talentdesk.repositories.account_repository import AccountRepository
from talentdesk.repositories.verification_token_repository import (
    VerificationTokenRepository,
)
from talentdesk.schemas.account import AccountProjection, AccountUpdate
from talentdesk.services.one_time_tokens import Clock, OneTimeTokenStore, utc_now

logger = logging.getLogger(__name__)

_VERIFY_SUBJECT = "Verify Your Account"
_RESET_SUBJECT = "Password Reset Request"


class DispatchPolicy(str, Enum):
    """What a flow does when its email cannot be delivered."""

    BEST_EFFORT = "best_effort"
    COMPENSATING = "compensating"


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login."""

    account: AccountProjection
    access_token: str
    refresh_token: str


class AccountLifecycleService:
    """Orchestrates every account state transition.

    Args:
        db: Async database session. The service commits at the end of each
            mutating flow.
        config: Immutable auth configuration.
        email_sender: Outbound email transport.
        clock: Source of the current time.
        accounts: Account persistence (swappable in tests).
        tokens: Verification token persistence (swappable in tests).
    """

    def __init__(
        self,
        db: AsyncSession,
        config: AuthConfig,
        email_sender: EmailSender,
        *,
        clock: Clock = utc_now,
        accounts: type[AccountRepository] = AccountRepository,
        tokens: type[VerificationTokenRepository] = VerificationTokenRepository,
    ) -> None:
        self._db = db
        self._config = config
        self._email = email_sender
        self._clock = clock
        self._accounts = accounts
        self._issuer = SessionTokenIssuer(config)
        self._one_time_tokens = OneTimeTokenStore(
            db,
            ttl=config.verification_token_ttl,
            clock=clock,
            repository=tokens,
        )

    # =========================================================================
    # Registration & verification
    # =========================================================================

    async def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: AccountRole = AccountRole.HR_PERSONNEL,
    ) -> AccountProjection:
        """Create an unverified account and email its verification link.

        Args:
            name: Display name.
            email: Email address (normalized to lowercase).
            password: Plaintext password. Only its hash is stored.
            role: Role of the new account.

        Returns:
            Projection of the new account.

        Raises:
            AlreadyExistsError: An account with this email exists.
            EmailDispatchFailedError: The verification email could not be
                sent. The account and its token are kept.
        """
        if await self._accounts.get_by_email(self._db, email) is not None:
            raise AlreadyExistsError()

        password_hash = await asyncio.to_thread(
            hash_password, password, self._config.bcrypt_rounds
        )

        try:
            account = await self._accounts.create(
                self._db,
                email=email,
                name=name,
                role=role,
                password_hash=password_hash,
            )
        except IntegrityError as exc:
            # Concurrent registration with the same email
            await self._db.rollback()
            raise AlreadyExistsError() from exc

        token = await self._one_time_tokens.issue(account.id)
        await self._db.commit()
        logger.info("Registered account %s (%s)", account.id, account.role.value)

        link = f"{self._config.backend_url}/api/v1/auth/verify/{account.id}/{token.value}"
        await self._dispatch(
            DispatchPolicy.BEST_EFFORT,
            to=account.email,
            subject=_VERIFY_SUBJECT,
            body=f"Please click on the following link to verify your account: {link}",
        )
        return AccountProjection.model_validate(account)

    async def verify(self, account_id: uuid.UUID, token: str) -> None:
        """Mark an account verified by consuming its emailed token.

        Raises:
            InvalidLinkError: No such account.
            InvalidOrExpiredTokenError: Token unknown, expired or used.
        """
        account = await self._accounts.get_by_id(self._db, account_id)
        if account is None:
            raise InvalidLinkError()

        await self._one_time_tokens.consume(account.id, token)
        await self._accounts.update(
            self._db, account.id, AccountUpdate(is_verified=True)
        )
        await self._db.commit()
        logger.info("Verified account %s", account.id)

    # =========================================================================
    # Sessions
    # =========================================================================

    async def login(
        self,
        *,
        email: str,
        password: str,
        required_role: AccountRole | None = None,
    ) -> LoginResult:
        """Authenticate with email and password.

        Checks run in a fixed order: account exists, role matches (when
        required), account has a password, account is verified, password
        matches.

        Args:
            email: Email address.
            password: Plaintext password.
            required_role: If set, only accounts with this role may log in.

        Returns:
            LoginResult with the projection and both session tokens.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            ForbiddenError: Role does not match required_role.
            UnsupportedAuthMethodError: Account has no password.
            EmailNotVerifiedError: Account is not verified.
        """
        account = await self._accounts.get_by_email(self._db, email)
        if account is None:
            # Security: always run bcrypt so response time doesn't reveal
            # whether the email is registered.
            await asyncio.to_thread(verify_password, password, DUMMY_HASH)
            raise InvalidCredentialsError()

        if required_role is not None and account.role != required_role:
            raise ForbiddenError()

        if not account.password_hash:
            raise UnsupportedAuthMethodError()

        if not account.is_verified:
            raise EmailNotVerifiedError()

        if not await asyncio.to_thread(
            verify_password, password, account.password_hash
        ):
            raise InvalidCredentialsError()

        now = self._clock()
        logger.info("Login succeeded for account %s", account.id)
        return LoginResult(
            account=AccountProjection.model_validate(account),
            access_token=self._issuer.issue_access(account.id, now),
            refresh_token=self._issuer.issue_refresh(account.id, now),
        )

    async def refresh(self, refresh_token: str | None) -> str:
        """Exchange a refresh token for a new access token.

        The refresh token itself is not rotated.

        Raises:
            NoRefreshTokenError: No token presented.
            InvalidRefreshTokenError: Token fails verification.
            UserNotFoundError: The token's account no longer exists (401).
        """
        if not refresh_token:
            raise NoRefreshTokenError()

        try:
            claims = self._issuer.verify(refresh_token, TokenKind.REFRESH)
        except SessionTokenError as exc:
            raise InvalidRefreshTokenError() from exc

        account = await self._accounts.get_by_id(self._db, claims.subject_id)
        if account is None:
            raise UserNotFoundError(status_code=401)

        return self._issuer.issue_access(account.id, self._clock())

    async def current_account(self, access_token: str) -> Account:
        """Resolve the account behind an access token.

        Raises:
            UnauthorizedError: Token invalid, or account gone.
        """
        try:
            claims = self._issuer.verify(access_token, TokenKind.ACCESS)
        except SessionTokenError as exc:
            raise UnauthorizedError() from exc

        account = await self._accounts.get_by_id(self._db, claims.subject_id)
        if account is None:
            raise UnauthorizedError()
        return account

    # =========================================================================
    # Password reset
    # =========================================================================

    async def forgot_password(self, email: str) -> None:
        """Start a password reset and email the reset link.

        Raises:
            UserNotFoundError: No account with this email (404).
            EmailDispatchFailedError: The email could not be sent. The
                pending reset has been cleared again.
        """
        account = await self._accounts.get_by_email(self._db, email)
        if account is None:
            raise UserNotFoundError()

        value = random_token(RESET_TOKEN_BYTES)
        await self._accounts.update(
            self._db,
            account.id,
            AccountUpdate(
                reset_token_digest=digest(value),
                reset_token_expiry=self._clock() + self._config.reset_token_ttl,
            ),
        )
        await self._db.commit()

        async def clear_pending_reset() -> None:
            await self._accounts.update(
                self._db, account.id, AccountUpdate.clear_reset()
            )
            await self._db.commit()

        link = f"{self._config.backend_url}/api/v1/auth/resetpassword/{value}"
        await self._dispatch(
            DispatchPolicy.COMPENSATING,
            to=account.email,
            subject=_RESET_SUBJECT,
            body=(
                "You are receiving this email because you (or someone else) "
                "has requested a password reset. Please click on the following "
                f"link to reset your password:\n\n{link}\n\n"
                "This link will expire in 10 minutes."
            ),
            compensate=clear_pending_reset,
        )
        logger.info("Password reset requested for account %s", account.id)

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password using an emailed reset token.

        Raises:
            InvalidOrExpiredTokenError: No account holds this token, or it
                has expired.
        """
        account = await self._accounts.get_by_reset_digest(
            self._db, digest=digest(token), now=self._clock()
        )
        if account is None:
            raise InvalidOrExpiredTokenError()

        password_hash = await asyncio.to_thread(
            hash_password, new_password, self._config.bcrypt_rounds
        )
        await self._accounts.update(
            self._db,
            account.id,
            AccountUpdate.clear_reset(password_hash=password_hash),
        )
        await self._db.commit()
        logger.info("Password reset completed for account %s", account.id)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _dispatch(
        self,
        policy: DispatchPolicy,
        *,
        to: str,
        subject: str,
        body: str,
        compensate: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        """Send an email under the given policy.

        Args:
            policy: What happens to earlier writes if delivery fails.
            to: Recipient address.
            subject: Subject line.
            body: Plain-text body.
            compensate: Undoes the caller's writes. Required for
                COMPENSATING, ignored for BEST_EFFORT.

        Raises:
            EmailDispatchFailedError: Delivery failed, under either policy.
        """
        try:
            await self._email.send(to=to, subject=subject, body=body)
        except EmailDeliveryError as exc:
            if policy is DispatchPolicy.COMPENSATING and compensate is not None:
                logger.error("Failed to send %r email to %s, undoing", subject, to)
                await compensate()
            else:
                logger.error(
                    "Failed to send %r email to %s, earlier changes kept", subject, to
                )
            raise EmailDispatchFailedError() from exc
