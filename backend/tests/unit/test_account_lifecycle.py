"""Tests for AccountLifecycleService.

Runs against in-memory repositories with a controllable clock, so expiry
is tested without sleeping or a database.
"""

import logging
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

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
from talentdesk.core.secret_tokens import digest
from talentdesk.core.tokens import SessionTokenIssuer, TokenKind
from talentdesk.models.account import AccountRole
from tests.conftest import TEST_PASSWORD
from tests.fakes import reset_token_from, verification_token_from

_NEW_PASSWORD = "brand-new-pass"  # nosec B105  # gitleaks:allow


@pytest.fixture
def issuer(auth_config) -> SessionTokenIssuer:
    return SessionTokenIssuer(auth_config)


# ===================================================================
# register
# ===================================================================


class TestRegister:
    async def test_creates_unverified_account(self, service, accounts):
        result = await service.register(
            name="Alice", email="a@x.com", password=TEST_PASSWORD
        )
        account = accounts.accounts[result.id]
        assert account.is_verified is False
        assert account.role is AccountRole.HR_PERSONNEL

    async def test_password_stored_only_as_hash(self, service, accounts):
        result = await service.register(
            name="Alice", email="a@x.com", password=TEST_PASSWORD
        )
        account = accounts.accounts[result.id]
        assert account.password_hash != TEST_PASSWORD
        assert verify_password(TEST_PASSWORD, account.password_hash)

    async def test_returns_projection_only(self, service):
        result = await service.register(
            name="Alice", email="a@x.com", password=TEST_PASSWORD
        )
        assert set(result.model_dump()) == {"id", "name", "email", "role"}
        assert result.name == "Alice"

    async def test_email_normalized_to_lowercase(self, service):
        result = await service.register(
            name="Alice", email="Alice@Example.COM", password=TEST_PASSWORD
        )
        assert result.email == "alice@example.com"

    async def test_issues_one_verification_token(self, service, tokens):
        result = await service.register(
            name="Alice", email="a@x.com", password=TEST_PASSWORD
        )
        assert await tokens.count_for_account(None, result.id) == 1

    async def test_sends_verification_link(self, service, email_sender, auth_config):
        result = await service.register(
            name="Alice", email="a@x.com", password=TEST_PASSWORD
        )
        assert len(email_sender.sent) == 1
        sent = email_sender.sent[0]
        assert sent.to == "a@x.com"
        assert sent.subject == "Verify Your Account"
        assert f"{auth_config.backend_url}/api/v1/auth/verify/" in sent.body
        account_id, _token = verification_token_from(sent)
        assert account_id == result.id

    async def test_link_token_matches_stored_digest(self, service, email_sender, tokens):
        await service.register(name="Alice", email="a@x.com", password=TEST_PASSWORD)
        _account_id, token = verification_token_from(email_sender.sent[0])
        assert tokens.tokens[0].token_digest == digest(token)

    async def test_commits_before_sending(self, service, db, email_sender):
        async def assert_committed(**_kwargs):
            db.commit.assert_awaited()

        email_sender.send = assert_committed
        await service.register(name="Alice", email="a@x.com", password=TEST_PASSWORD)

    async def test_custom_role(self, service):
        result = await service.register(
            name="Carol",
            email="c@x.com",
            password=TEST_PASSWORD,
            role=AccountRole.CANDIDATE,
        )
        assert result.role is AccountRole.CANDIDATE

    async def test_duplicate_email_rejected(self, service):
        await service.register(name="Alice", email="a@x.com", password=TEST_PASSWORD)
        with pytest.raises(AlreadyExistsError):
            await service.register(
                name="Other", email="A@X.com", password=TEST_PASSWORD
            )

    async def test_concurrent_duplicate_becomes_already_exists(
        self, service, accounts, db
    ):
        """Insert race: pre-check passes but the unique constraint fires."""
        accounts.add(email="a@x.com")
        with patch.object(accounts, "get_by_email", AsyncMock(return_value=None)):
            with pytest.raises(AlreadyExistsError):
                await service.register(
                    name="Alice", email="a@x.com", password=TEST_PASSWORD
                )
        db.rollback.assert_awaited_once()

    async def test_dispatch_failure_keeps_account_and_token(
        self, service, email_sender, accounts, tokens, caplog
    ):
        """Best effort: the request fails but nothing is rolled back."""
        email_sender.fail = True
        with caplog.at_level(logging.WARNING):
            with pytest.raises(EmailDispatchFailedError):
                await service.register(
                    name="Alice", email="a@x.com", password=TEST_PASSWORD
                )
        account = await accounts.get_by_email(None, "a@x.com")
        assert account is not None
        assert account.is_verified is False
        assert await tokens.count_for_account(None, account.id) == 1
        assert "Failed to send" in caplog.text

    async def test_dispatch_failure_commits_before_raising(
        self, service, email_sender, db
    ):
        email_sender.fail = True
        with pytest.raises(EmailDispatchFailedError):
            await service.register(name="Alice", email="a@x.com", password=TEST_PASSWORD)
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()


# ===================================================================
# verify
# ===================================================================


class TestVerify:
    @pytest.fixture
    async def registered(self, service, email_sender):
        await service.register(name="Alice", email="a@x.com", password=TEST_PASSWORD)
        return verification_token_from(email_sender.sent[0])

    async def test_correct_token_verifies(self, service, registered, accounts, tokens):
        account_id, token = registered
        await service.verify(account_id, token)
        assert accounts.accounts[account_id].is_verified is True
        assert await tokens.count_for_account(None, account_id) == 0

    async def test_wrong_token_rejected(self, service, registered, accounts):
        account_id, _token = registered
        with pytest.raises(InvalidOrExpiredTokenError):
            await service.verify(account_id, "0" * 64)
        assert accounts.accounts[account_id].is_verified is False

    async def test_replay_rejected(self, service, registered):
        account_id, token = registered
        await service.verify(account_id, token)
        with pytest.raises(InvalidOrExpiredTokenError):
            await service.verify(account_id, token)

    async def test_unknown_account_is_invalid_link(self, service, registered):
        _account_id, token = registered
        with pytest.raises(InvalidLinkError):
            await service.verify(uuid.uuid4(), token)

    async def test_expired_token_rejected(self, service, registered, clock, accounts):
        account_id, token = registered
        clock.advance(hours=1, minutes=1)
        with pytest.raises(InvalidOrExpiredTokenError):
            await service.verify(account_id, token)
        assert accounts.accounts[account_id].is_verified is False


# ===================================================================
# login
# ===================================================================


class TestLogin:
    async def test_success_returns_both_tokens(
        self, service, verified_account, issuer
    ):
        result = await service.login(email="alice@example.com", password=TEST_PASSWORD)
        assert result.account.id == verified_account.id
        access = issuer.verify(result.access_token, TokenKind.ACCESS)
        refresh = issuer.verify(result.refresh_token, TokenKind.REFRESH)
        assert access.subject_id == refresh.subject_id == verified_account.id

    async def test_email_case_insensitive(self, service, verified_account):
        result = await service.login(email="ALICE@example.com", password=TEST_PASSWORD)
        assert result.account.id == verified_account.id

    async def test_unknown_email(self, service):
        with pytest.raises(InvalidCredentialsError):
            await service.login(email="nobody@example.com", password=TEST_PASSWORD)

    async def test_unknown_email_still_runs_bcrypt(self, service):
        """Timing: unknown emails pay the same bcrypt cost as known ones."""
        with patch(
            "talentdesk.services.account_lifecycle.verify_password",
            wraps=verify_password,
        ) as spy:
            with pytest.raises(InvalidCredentialsError):
                await service.login(email="nobody@example.com", password="whatever")
        spy.assert_called_once_with("whatever", DUMMY_HASH)

    async def test_wrong_password(self, service, verified_account):
        with pytest.raises(InvalidCredentialsError):
            await service.login(email=verified_account.email, password="wrong-pass")

    async def test_unverified_account(self, service, accounts, auth_config):
        accounts.add(
            email="u@x.com",
            is_verified=False,
            password_hash=hash_password(TEST_PASSWORD, auth_config.bcrypt_rounds),
        )
        with pytest.raises(EmailNotVerifiedError):
            await service.login(email="u@x.com", password=TEST_PASSWORD)

    async def test_unverified_checked_before_password(self, service, accounts, auth_config):
        accounts.add(
            email="u@x.com",
            is_verified=False,
            password_hash=hash_password(TEST_PASSWORD, auth_config.bcrypt_rounds),
        )
        with pytest.raises(EmailNotVerifiedError):
            await service.login(email="u@x.com", password="wrong-pass")

    async def test_no_password_hash(self, service, accounts):
        accounts.add(email="sso@x.com", password_hash=None, is_verified=False)
        with pytest.raises(UnsupportedAuthMethodError):
            await service.login(email="sso@x.com", password=TEST_PASSWORD)

    async def test_role_checked_first(self, service, accounts):
        """Role mismatch wins over missing password and unverified."""
        accounts.add(email="hr@x.com", password_hash=None, is_verified=False)
        with pytest.raises(ForbiddenError):
            await service.login(
                email="hr@x.com",
                password=TEST_PASSWORD,
                required_role=AccountRole.CANDIDATE,
            )

    async def test_candidate_variant_accepts_candidate(self, service, candidate_account):
        result = await service.login(
            email=candidate_account.email,
            password=TEST_PASSWORD,
            required_role=AccountRole.CANDIDATE,
        )
        assert result.account.role is AccountRole.CANDIDATE

    async def test_candidate_variant_rejects_hr(self, service, verified_account):
        with pytest.raises(ForbiddenError):
            await service.login(
                email=verified_account.email,
                password=TEST_PASSWORD,
                required_role=AccountRole.CANDIDATE,
            )

    async def test_generic_login_accepts_any_role(self, service, candidate_account):
        result = await service.login(
            email=candidate_account.email, password=TEST_PASSWORD
        )
        assert result.account.id == candidate_account.id


# ===================================================================
# refresh
# ===================================================================


class TestRefresh:
    async def test_missing_token(self, service):
        with pytest.raises(NoRefreshTokenError):
            await service.refresh(None)

    async def test_empty_token(self, service):
        with pytest.raises(NoRefreshTokenError):
            await service.refresh("")

    async def test_tampered_token(self, service, verified_account):
        result = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(result.refresh_token + "x")

    async def test_access_token_is_not_a_refresh_token(self, service, verified_account):
        result = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(result.access_token)

    async def test_returns_new_access_token(self, service, verified_account, issuer):
        result = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        access_token = await service.refresh(result.refresh_token)
        claims = issuer.verify(access_token, TokenKind.ACCESS)
        assert claims.subject_id == verified_account.id

    async def test_deleted_account(self, service, verified_account, accounts):
        result = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        del accounts.accounts[verified_account.id]
        with pytest.raises(UserNotFoundError) as exc_info:
            await service.refresh(result.refresh_token)
        assert exc_info.value.status_code == 401


    async def test_sessions_are_independent(self, service, verified_account):
        first = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        second = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        assert await service.refresh(first.refresh_token)
        assert await service.refresh(second.refresh_token)

    async def test_refresh_does_not_touch_database(
        self, service, verified_account, db
    ):
        result = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        await service.refresh(result.refresh_token)
        db.commit.assert_not_awaited()


# ===================================================================
# forgot & reset password
# ===================================================================


class TestForgotPassword:
    async def test_unknown_email(self, service):
        with pytest.raises(UserNotFoundError) as exc_info:
            await service.forgot_password("nobody@example.com")
        assert exc_info.value.status_code == 404

    async def test_sets_digest_and_expiry(
        self, service, verified_account, email_sender, clock
    ):
        await service.forgot_password(verified_account.email)
        token = reset_token_from(email_sender.sent[0])
        assert verified_account.reset_token_digest == digest(token)
        assert verified_account.reset_token_expiry == clock.now + timedelta(minutes=10)

    async def test_sends_reset_link(
        self, service, verified_account, email_sender, auth_config
    ):
        await service.forgot_password(verified_account.email)
        sent = email_sender.sent[0]
        assert sent.to == verified_account.email
        assert sent.subject == "Password Reset Request"
        assert f"{auth_config.backend_url}/api/v1/auth/resetpassword/" in sent.body

    async def test_dispatch_failure_clears_reset(
        self, service, verified_account, email_sender, db
    ):
        """Compensating: a failed email undoes the pending reset."""
        email_sender.fail = True
        with pytest.raises(EmailDispatchFailedError):
            await service.forgot_password(verified_account.email)
        assert verified_account.reset_token_digest is None
        assert verified_account.reset_token_expiry is None
        assert db.commit.await_count == 2


class TestResetPassword:
    @pytest.fixture
    async def reset_token(self, service, verified_account, email_sender) -> str:
        await service.forgot_password(verified_account.email)
        return reset_token_from(email_sender.sent[0])

    async def test_sets_new_password(self, service, verified_account, reset_token):
        await service.reset_password(reset_token, _NEW_PASSWORD)
        assert verify_password(_NEW_PASSWORD, verified_account.password_hash)
        with pytest.raises(InvalidCredentialsError):
            await service.login(email=verified_account.email, password=TEST_PASSWORD)

    async def test_clears_reset_fields(self, service, verified_account, reset_token):
        await service.reset_password(reset_token, _NEW_PASSWORD)
        assert verified_account.reset_token_digest is None
        assert verified_account.reset_token_expiry is None

    async def test_token_single_use(self, service, reset_token):
        await service.reset_password(reset_token, _NEW_PASSWORD)
        with pytest.raises(InvalidOrExpiredTokenError):
            await service.reset_password(reset_token, "another-pass")

    async def test_wrong_token(self, service, reset_token):
        with pytest.raises(InvalidOrExpiredTokenError):
            await service.reset_password("0" * 40, _NEW_PASSWORD)

    async def test_before_expiry_succeeds(self, service, reset_token, clock):
        clock.advance(minutes=9, seconds=59)
        await service.reset_password(reset_token, _NEW_PASSWORD)

    async def test_after_expiry_fails(self, service, verified_account, reset_token, clock):
        clock.advance(minutes=10, seconds=1)
        with pytest.raises(InvalidOrExpiredTokenError):
            await service.reset_password(reset_token, _NEW_PASSWORD)
        assert verify_password(TEST_PASSWORD, verified_account.password_hash)

    async def test_existing_sessions_survive(
        self, service, verified_account, reset_token
    ):
        session = await service.login(
            email=verified_account.email, password=TEST_PASSWORD
        )
        await service.reset_password(reset_token, _NEW_PASSWORD)
        assert await service.refresh(session.refresh_token)
        account = await service.current_account(session.access_token)
        assert account.id == verified_account.id


# ===================================================================
# current_account
# ===================================================================


class TestCurrentAccount:
    async def test_valid_access_token(self, service, verified_account):
        result = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        account = await service.current_account(result.access_token)
        assert account.id == verified_account.id

    async def test_refresh_token_rejected(self, service, verified_account):
        result = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        with pytest.raises(UnauthorizedError):
            await service.current_account(result.refresh_token)

    async def test_deleted_account_rejected(self, service, verified_account, accounts):
        result = await service.login(email=verified_account.email, password=TEST_PASSWORD)
        del accounts.accounts[verified_account.id]
        with pytest.raises(UnauthorizedError):
            await service.current_account(result.access_token)
