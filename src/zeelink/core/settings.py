"""Application settings and configuration.

This module defines all configuration options for the Zeelink campus service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Zeelink Campus", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: Literal["development", "test", "production"] = Field(
        default="development",
        alias="ENVIRONMENT",
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    auth_cookie_name: str = Field(default="auth_token", alias="AUTH_COOKIE_NAME")
    password_hash_rounds: int = Field(default=10, ge=4, le=31, alias="PASSWORD_HASH_ROUNDS")

    # Database configuration
    database_url: str = Field(default="sqlite:///./zeelink.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Verification codes
    verification_code_ttl_seconds: int = Field(
        default=300,
        alias="VERIFICATION_CODE_TTL_SECONDS",
    )
    verification_resend_interval_seconds: int = Field(
        default=0,
        alias="VERIFICATION_RESEND_INTERVAL_SECONDS",
    )
    verification_store: Literal["memory", "redis"] = Field(
        default="memory",
        alias="VERIFICATION_STORE",
    )
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # SMS gateway
    sms_backend: Literal["log", "http"] = Field(default="log", alias="SMS_BACKEND")
    sms_gateway_url: str | None = Field(default=None, alias="SMS_GATEWAY_URL")
    sms_gateway_token: str | None = Field(default=None, alias="SMS_GATEWAY_TOKEN")
    sms_signature: str = Field(default="【Zeelink】", alias="SMS_SIGNATURE")
    sms_timeout_seconds: float = Field(default=10.0, alias="SMS_TIMEOUT_SECONDS")

    # Object storage for uploads
    storage_backend: Literal["local", "http"] = Field(default="local", alias="STORAGE_BACKEND")
    storage_local_root: str = Field(default="./media", alias="STORAGE_LOCAL_ROOT")
    storage_base_path: str = Field(default="uploads", alias="STORAGE_BASE_PATH")
    storage_public_domain: str = Field(
        default="http://localhost:8000/media",
        alias="STORAGE_PUBLIC_DOMAIN",
    )
    storage_upload_url: str | None = Field(default=None, alias="STORAGE_UPLOAD_URL")
    storage_token: str | None = Field(default=None, alias="STORAGE_TOKEN")
    storage_timeout_seconds: float = Field(default=30.0, alias="STORAGE_TIMEOUT_SECONDS")
    upload_max_file_size: int = Field(default=10 * 1024 * 1024, alias="UPLOAD_MAX_FILE_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Return True when running with production semantics."""
        return self.environment == "production"

    @property
    def expose_verification_codes(self) -> bool:
        """Return True if issued codes may be echoed back to the client.

        Only non-production environments do this, so that the login flow can
        be exercised without a real SMS gateway.
        """
        return not self.is_production

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url


settings = Settings()  # type: ignore[call-arg]
