"""Authentication endpoints.

Registration, email verification, login (any role, or candidates only),
logout, access-token refresh, forgot/reset password, and the current
account. All logic lives in AccountLifecycleService; these handlers only
translate between HTTP and the service.

Security considerations:
- login: constant-time comparison via DUMMY_HASH prevents account enumeration
- refresh token: httpOnly, SameSite=Strict cookie, Secure in production
- sessions are stateless: logout clears the cookie, tokens live until expiry
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Request, Response
from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from talentdesk.api.deps import Config, CurrentAccount, LifecycleService
from talentdesk.core.auth import clear_refresh_cookie, set_refresh_cookie
from talentdesk.core.errors import InvalidLinkError
from talentdesk.core.passwords import MAX_PASSWORD_BYTES, fits_bcrypt
from talentdesk.core.responses import DataMessageResponse, DataResponse, MessageResponse
from talentdesk.models.account import AccountRole
from talentdesk.schemas.account import AccessTokenData, AccountProjection, LoginData
from talentdesk.services.account_lifecycle import LoginResult

_MIN_PASSWORD_LENGTH = 6
_MAX_PASSWORD_LENGTH = 128

router = APIRouter()


# ===================================================================
# Request models
# ===================================================================


def _check_password_bytes(value: str) -> str:
    if not fits_bcrypt(value):
        msg = f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
        raise ValueError(msg)
    return value


NewPassword = Annotated[
    str,
    Field(min_length=_MIN_PASSWORD_LENGTH, max_length=_MAX_PASSWORD_LENGTH),
    AfterValidator(_check_password_bytes),
]


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: NewPassword


class LoginRequest(BaseModel):
    """Request body for POST /auth/login and /auth/logincandidate."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /auth/forgotpassword."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request body for PUT /auth/resetpassword/{token}."""

    model_config = ConfigDict(extra="forbid")

    password: NewPassword


def _login_response(
    result: LoginResult, response: Response, config: Config
) -> DataResponse[LoginData]:
    set_refresh_cookie(response, result.refresh_token, config)
    return DataResponse(
        data=LoginData(
            **result.account.model_dump(),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        )
    )


# ===================================================================
# Registration & verification
# ===================================================================


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    service: LifecycleService,
) -> DataMessageResponse[AccountProjection]:
    """Register a new account and send its verification email.

    If the email cannot be sent the request fails with 500, but the account
    stays registered.
    """
    account = await service.register(
        name=body.name, email=body.email, password=body.password
    )
    return DataMessageResponse(
        data=account,
        message="Verification email sent. Please check your email to verify your account.",
    )


@router.get("/verify/{account_id}/{token}")
async def verify_email(
    account_id: str,
    token: str,
    service: LifecycleService,
) -> MessageResponse:
    """Verify an account from the emailed link."""
    try:
        parsed_id = uuid.UUID(account_id)
    except ValueError as exc:
        raise InvalidLinkError() from exc

    await service.verify(parsed_id, token)
    return MessageResponse(message="Account verified successfully. You can now log in.")


# ===================================================================
# Sessions
# ===================================================================


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    service: LifecycleService,
    config: Config,
) -> DataResponse[LoginData]:
    """Log in with email and password (any role).

    Returns the access token and sets the refresh token cookie.
    """
    result = await service.login(email=body.email, password=body.password)
    return _login_response(result, response, config)


@router.post("/logincandidate")
async def login_candidate(
    body: LoginRequest,
    response: Response,
    service: LifecycleService,
    config: Config,
) -> DataResponse[LoginData]:
    """Log in with email and password; only candidate accounts succeed."""
    result = await service.login(
        email=body.email,
        password=body.password,
        required_role=AccountRole.CANDIDATE,
    )
    return _login_response(result, response, config)


@router.post("/logout")
async def logout(response: Response, config: Config) -> MessageResponse:
    """Clear the refresh cookie.

    Sessions are stateless, so a copied refresh token stays valid until it
    expires.
    """
    clear_refresh_cookie(response, config)
    return MessageResponse(message="Logged out successfully")


@router.get("/refresh")
async def refresh(
    request: Request,
    service: LifecycleService,
    config: Config,
) -> DataResponse[AccessTokenData]:
    """Exchange the refresh cookie for a new access token."""
    access_token = await service.refresh(request.cookies.get(config.cookie_name))
    return DataResponse(data=AccessTokenData(access_token=access_token))


@router.get("/me")
async def me(account: CurrentAccount) -> DataResponse[AccountProjection]:
    """Return the account behind the Bearer access token."""
    return DataResponse(data=AccountProjection.model_validate(account))


# ===================================================================
# Password reset
# ===================================================================


@router.post("/forgotpassword")
async def forgot_password(
    body: ForgotPasswordRequest,
    service: LifecycleService,
) -> MessageResponse:
    """Email a password reset link valid for 10 minutes."""
    await service.forgot_password(body.email)
    return MessageResponse(message="Password reset email sent")


@router.put("/resetpassword/{token}")
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    service: LifecycleService,
) -> MessageResponse:
    """Set a new password using the emailed reset token."""
    await service.reset_password(token, body.password)
    return MessageResponse(message="Password updated successfully")
