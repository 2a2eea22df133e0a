"""API error classes.

Every failure of the account lifecycle maps to exactly one subclass here,
and each subclass carries its HTTP status and machine-readable code. The
exception handlers in main.py render them in the standard error envelope.

Messages are deliberately short and generic: they name the failed rule,
never the internal step (e.g. which lookup missed).
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_CREDENTIALS").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


# =============================================================================
# Generic errors
# =============================================================================


class ValidationError(APIError):
    """Field validation failed (400)."""

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid access token is presented.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Authenticated, but the account's role is not allowed here (403)."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )


# =============================================================================
# Account lifecycle errors
# =============================================================================


class AlreadyExistsError(APIError):
    """Registration with an email that already has an account (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="ALREADY_EXISTS",
            message="User already exists",
            status_code=400,
        )


class InvalidLinkError(APIError):
    """Verification link names an account that does not exist (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_LINK",
            message="Invalid link",
            status_code=400,
        )


class InvalidOrExpiredTokenError(APIError):
    """One-time token is unknown, expired, wrong, or already used (400).

    The four cases are indistinguishable on purpose.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_OR_EXPIRED_TOKEN",
            message="Invalid or expired token",
            status_code=400,
        )


class InvalidCredentialsError(APIError):
    """Unknown email or wrong password (401)."""

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_CREDENTIALS",
            message="Invalid credentials",
            status_code=401,
        )


class UnsupportedAuthMethodError(APIError):
    """Account has no password hash, so password login is impossible (401)."""

    def __init__(self) -> None:
        super().__init__(
            code="UNSUPPORTED_AUTH_METHOD",
            message="Authentication method not supported",
            status_code=401,
        )


class EmailNotVerifiedError(APIError):
    """Account exists but its email address was never verified (401)."""

    def __init__(self) -> None:
        super().__init__(
            code="EMAIL_NOT_VERIFIED",
            message="Please verify your email before logging in",
            status_code=401,
        )


class NoRefreshTokenError(APIError):
    """Refresh requested without a refresh cookie (401)."""

    def __init__(self) -> None:
        super().__init__(
            code="NO_REFRESH_TOKEN",
            message="No refresh token found",
            status_code=401,
        )


class InvalidRefreshTokenError(APIError):
    """Refresh cookie failed verification (403).

    Every verification failure, expiry included, surfaces as this one
    error.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_REFRESH_TOKEN",
            message="Invalid refresh token",
            status_code=403,
        )


class UserNotFoundError(APIError):
    """No account for the given email or token subject.

    Forgot-password reports it as 404. Refresh reports it as 401 because the
    caller is holding a credential for an account that is gone.

    Args:
        status_code: HTTP status to return. Defaults to 404.
    """

    def __init__(self, status_code: int = 404) -> None:
        super().__init__(
            code="USER_NOT_FOUND",
            message="User not found",
            status_code=status_code,
        )


class EmailDispatchFailedError(APIError):
    """Outbound email could not be delivered (500)."""

    def __init__(self) -> None:
        super().__init__(
            code="EMAIL_DISPATCH_FAILED",
            message="Email could not be sent",
            status_code=500,
        )
