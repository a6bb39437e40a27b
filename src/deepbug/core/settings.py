"""Application settings and configuration.

This module defines all configuration options for the DeepBug portal.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="DeepBug", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./deepbug.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Session storage ("memory" keeps sessions in-process, "redis" shares them)
    session_backend: str = Field(default="memory", alias="SESSION_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Login throttling
    max_login_attempts: int = Field(default=5, alias="MAX_LOGIN_ATTEMPTS")
    lockout_duration_seconds: int = Field(default=15 * 60, alias="LOCKOUT_DURATION_SECONDS")

    # Input bounds
    min_name_length: int = Field(default=2, alias="MIN_NAME_LENGTH")
    max_name_length: int = Field(default=50, alias="MAX_NAME_LENGTH")
    max_email_length: int = Field(default=100, alias="MAX_EMAIL_LENGTH")
    max_message_length: int = Field(default=1000, alias="MAX_MESSAGE_LENGTH")
    min_password_length: int = Field(default=8, alias="MIN_PASSWORD_LENGTH")

    # Sessions and access tokens share one lifetime
    session_timeout_seconds: int = Field(default=24 * 60 * 60, alias="SESSION_TIMEOUT_SECONDS")

    # Chat
    chat_history_limit: int = Field(default=50, alias="CHAT_HISTORY_LIMIT")

    # Identity provider (Firebase Identity Toolkit REST API)
    firebase_api_key: str | None = Field(default=None, alias="FIREBASE_API_KEY")
    firebase_auth_base_url: str = Field(
        default="https://identitytoolkit.googleapis.com/v1",
        alias="FIREBASE_AUTH_BASE_URL",
    )
    identity_http_timeout_seconds: float = Field(
        default=10.0,
        alias="IDENTITY_HTTP_TIMEOUT_SECONDS",
    )
    identity_request_uri: str = Field(
        default="http://localhost",
        alias="IDENTITY_REQUEST_URI",
    )

    # Default administrator created by scripts.ensure_admin
    default_admin_name: str = Field(default="DeepBug Admin", alias="DEFAULT_ADMIN_NAME")
    default_admin_email: str = Field(default="admin@deepbug.com", alias="DEFAULT_ADMIN_EMAIL")
    default_admin_password: str | None = Field(default=None, alias="DEFAULT_ADMIN_PASSWORD")

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
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
