"""Response envelope models.

Success bodies are ``{"data": ...}`` (optionally with a ``message``), or a
bare ``{"message": ...}`` for flows that produce no data. Errors are always
``{"error": {"code", "message", "details"}}``.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    Usage:
        @router.get("/auth/me")
        async def me(account: CurrentAccount) -> DataResponse[AccountProjection]:
            return DataResponse(data=AccountProjection.model_validate(account))
    """

    data: T


class DataMessageResponse(DataResponse[T], Generic[T]):
    """Data envelope that also carries a human-readable message.

    Registration uses it to return the new account together with a note
    about the verification email.
    """

    message: str


class MessageResponse(BaseModel):
    """Envelope for flows that only report an outcome."""

    message: str


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_CREDENTIALS").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope.

    Usage in exception handlers:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=ErrorDetail(code=exc.code, message=exc.message)
            ).model_dump(),
        )
    """

    error: ErrorDetail
