"""Refresh cookie helpers.

The refresh token is delivered in an httpOnly, SameSite=Strict cookie whose
max-age matches the token lifetime. Clearing uses the same attributes, or
browsers keep the original cookie.
"""

from fastapi import Response

from talentdesk.core.config import AuthConfig


def set_refresh_cookie(response: Response, token: str, config: AuthConfig) -> None:
    """Set httpOnly refresh-token cookie on response.

    Security: httpOnly prevents XSS cookie theft. SameSite=Strict keeps the
    cookie off cross-site requests. Secure is on in production.

    Args:
        response: FastAPI response object.
        token: Refresh JWT.
        config: Cookie name, security flag and refresh lifetime.
    """
    response.set_cookie(
        key=config.cookie_name,
        value=token,
        httponly=True,
        secure=config.cookie_secure,
        samesite="strict",
        path="/",
        max_age=int(config.refresh_ttl.total_seconds()),
    )


def clear_refresh_cookie(response: Response, config: AuthConfig) -> None:
    """Expire the refresh-token cookie immediately."""
    response.delete_cookie(
        key=config.cookie_name,
        httponly=True,
        secure=config.cookie_secure,
        samesite="strict",
        path="/",
    )
