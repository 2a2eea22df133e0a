"""Application configuration loaded from environment variables.

Settings for database, HTTP, session tokens and outbound email. Uses
pydantic-settings for validation and .env file support.

The signing secrets and token lifetimes are read once at process start and
frozen into an AuthConfig, which is what the token issuer and the account
lifecycle service receive. Nothing in the auth core reads Settings directly.
"""

from dataclasses import dataclass
from datetime import timedelta

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure defaults that must not be used in production
_INSECURE_DEFAULT_PASSWORD = "talentdesk_dev_password"  # nosec B105
_INSECURE_DEFAULT_ACCESS_SECRET = "talentdesk-dev-access-secret"  # nosec B105
_INSECURE_DEFAULT_REFRESH_SECRET = "talentdesk-dev-refresh-secret"  # nosec B105

# Minimum length for signing secrets in production (256 bits = 32 bytes)
_MIN_SECRET_LENGTH = 32

# One-time token lifetimes
_VERIFICATION_TOKEN_TTL = timedelta(hours=1)
_RESET_TOKEN_TTL = timedelta(minutes=10)


@dataclass(frozen=True)
class AuthConfig:
    """Immutable auth configuration shared by the issuer and lifecycle service.

    Attributes:
        access_secret: HMAC secret for access tokens.
        refresh_secret: HMAC secret for refresh tokens. Always distinct
            from access_secret.
        access_ttl: Lifetime of an access token.
        refresh_ttl: Lifetime of a refresh token (and of its cookie).
        issuer: ``iss`` claim written to and required on every token.
        audience: ``aud`` claim written to and required on every token.
        verification_token_ttl: Lifetime of an email verification token.
        reset_token_ttl: Lifetime of a password reset token.
        bcrypt_rounds: bcrypt cost factor.
        backend_url: Base URL used to build links sent by email.
        cookie_name: Name of the refresh-token cookie.
        cookie_secure: Whether the refresh cookie carries the Secure flag.
    """

    access_secret: str
    refresh_secret: str
    access_ttl: timedelta
    refresh_ttl: timedelta
    issuer: str
    audience: str
    verification_token_ttl: timedelta = _VERIFICATION_TOKEN_TTL
    reset_token_ttl: timedelta = _RESET_TOKEN_TTL
    bcrypt_rounds: int = 12
    backend_url: str = "http://localhost:8000"
    cookie_name: str = "jwt"
    cookie_secure: bool = False


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "talentdesk"
    database_user: str = "talentdesk_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS
    # Never set to ["*"]: the refresh cookie requires allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Session tokens
    access_token_secret: SecretStr = SecretStr(_INSECURE_DEFAULT_ACCESS_SECRET)
    refresh_token_secret: SecretStr = SecretStr(_INSECURE_DEFAULT_REFRESH_SECRET)
    access_token_ttl_minutes: int = 15
    refresh_token_ttl_days: int = 7
    auth_issuer: str = "talentdesk"
    auth_audience: str = "talentdesk-api"
    refresh_cookie_name: str = "jwt"
    bcrypt_rounds: int = 12

    # Email (Resend). Empty API key means emails are only logged.
    email_from: str = "noreply@talentdesk.io"
    resend_api_key: SecretStr = SecretStr("")

    # Backend URL (verification and reset links hit the API directly)
    backend_url: str = "http://localhost:8000"

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def auth_config(self) -> AuthConfig:
        """Freeze the auth-related settings into an AuthConfig.

        Returns:
            AuthConfig built from the current settings values.
        """
        return AuthConfig(
            access_secret=self.access_token_secret.get_secret_value(),
            refresh_secret=self.refresh_token_secret.get_secret_value(),
            access_ttl=timedelta(minutes=self.access_token_ttl_minutes),
            refresh_ttl=timedelta(days=self.refresh_token_ttl_days),
            issuer=self.auth_issuer,
            audience=self.auth_audience,
            bcrypt_rounds=self.bcrypt_rounds,
            backend_url=self.backend_url.rstrip("/"),
            cookie_name=self.refresh_cookie_name,
            cookie_secure=self.is_production,
        )

    @model_validator(mode="after")
    def check_security(self) -> "Settings":
        """Validate security requirements.

        Checks:
        - Access and refresh secrets must be non-empty and differ (all
          environments)
        - Token lifetimes must be positive (all environments)
        - CORS must not use wildcard origin (incompatible with credentials)
        - In production: both secrets >= 32 chars and not the development
          defaults, and the database password is not the default
        """
        access = self.access_token_secret.get_secret_value()
        refresh = self.refresh_token_secret.get_secret_value()

        for name, value in (
            ("ACCESS_TOKEN_SECRET", access),
            ("REFRESH_TOKEN_SECRET", refresh),
        ):
            if not value:
                msg = f"{name} must not be empty"
                raise ValueError(msg)

        if access == refresh:
            msg = (
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different. "
                "A shared secret lets an access token pass as a refresh token."
            )
            raise ValueError(msg)

        if self.access_token_ttl_minutes <= 0 or self.refresh_token_ttl_days <= 0:
            msg = "Token lifetimes must be positive"
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "The refresh cookie requires credentialed CORS requests."
            )
            raise ValueError(msg)

        if self.is_production:
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            for name, value in (
                ("ACCESS_TOKEN_SECRET", access),
                ("REFRESH_TOKEN_SECRET", refresh),
            ):
                if value in (
                    _INSECURE_DEFAULT_ACCESS_SECRET,
                    _INSECURE_DEFAULT_REFRESH_SECRET,
                ):
                    msg = f"Cannot use default {name} in production"
                    raise ValueError(msg)
                if len(value) < _MIN_SECRET_LENGTH:
                    msg = (
                        f"{name} must be set to at least {_MIN_SECRET_LENGTH} "
                        'characters in production. Generate with: python -c "import '
                        'secrets; print(secrets.token_hex(32))"'
                    )
                    raise ValueError(msg)

        return self


settings = Settings()
