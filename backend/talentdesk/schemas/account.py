"""Account schemas.

AccountProjection is the only shape in which account data leaves the
service. AccountUpdate is the partial-update model the repository applies;
only fields the caller explicitly sets are written.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, model_validator

from talentdesk.models.account import AccountRole

# =============================================================================
# Outward projections
# =============================================================================


class AccountProjection(BaseModel):
    """Public view of an account. Never includes credentials.

    Attributes:
        id: Account UUID.
        name: Display name.
        email: Email address (lower-cased).
        role: Account role.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: AccountRole


class LoginData(AccountProjection):
    """Response payload of a successful login.

    The refresh token is also set as a cookie; it is repeated here for
    clients that keep it themselves.
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AccessTokenData(BaseModel):
    """Response payload of GET /auth/refresh."""

    access_token: str
    token_type: str = "bearer"


# =============================================================================
# Partial updates
# =============================================================================


class AccountUpdate(BaseModel):
    """Explicit partial update for an account.

    Email, role and id are not updatable. The reset digest and expiry must
    change together: both set to values, or both cleared to None.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    is_verified: bool | None = None
    password_hash: str | None = None
    reset_token_digest: str | None = None
    reset_token_expiry: datetime | None = None

    @model_validator(mode="after")
    def check_reset_fields_paired(self) -> "AccountUpdate":
        """Reject updates that would leave only one reset field set."""
        fields = self.model_fields_set
        touches_digest = "reset_token_digest" in fields
        touches_expiry = "reset_token_expiry" in fields
        if touches_digest != touches_expiry:
            msg = "reset_token_digest and reset_token_expiry must be updated together"
            raise ValueError(msg)
        if (self.reset_token_digest is None) != (self.reset_token_expiry is None):
            msg = "reset_token_digest and reset_token_expiry must both be set or both be None"
            raise ValueError(msg)
        return self

    @classmethod
    def clear_reset(cls, **changes: object) -> "AccountUpdate":
        """Update that clears the pending reset, plus any other changes."""
        return cls(reset_token_digest=None, reset_token_expiry=None, **changes)

    def changes(self) -> dict[str, object]:
        """Fields explicitly set on this update, by name."""
        return self.model_dump(exclude_unset=True)
