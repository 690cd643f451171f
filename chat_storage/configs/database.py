"""
Database configuration settings.

Connection URL, credentials, pool sizing and write-retry policy for the
conversation store. Supports a local embedded SQLite file and a remote
PostgreSQL server behind the same settings.

Dependencies: pydantic, pydantic_settings
System role: Database connection configuration for the conversation store
"""

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from chat_storage.configs.base import BaseSettings


class DatabaseSettings(BaseSettings):
    """Conversation store database configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHAT_STORAGE_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = Field(
        default="file:data/conversations.db",
        description="Connection URL: file path, file: URL, sqlite:// or postgresql://",
    )
    auth_token: SecretStr | None = Field(
        default=None,
        description="Authentication token for remote backends",
    )

    pool_size: int = Field(default=10, ge=1, description="Connection pool size")
    max_overflow: int = Field(default=20, ge=0, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, ge=1, description="Connection pool timeout in seconds")
    connect_timeout: int = Field(default=30, ge=1, description="Driver connect timeout in seconds")
    echo_sql: bool = Field(default=False, description="Echo SQL statements to logs")

    append_retries: int = Field(
        default=3,
        ge=0,
        description="Retries when a computed message index collides with another writer",
    )
    retry_backoff: float = Field(
        default=0.05,
        ge=0,
        description="Base backoff in seconds, doubled per retry",
    )
    max_history_size: int | None = Field(
        default=None,
        ge=1,
        description="Default number of most recent messages returned by fetch (None = all)",
    )

    @property
    def token(self) -> str | None:
        """
        Plain auth token value.

        Returns:
            str | None: Token secret, or None when not configured
        """
        if self.auth_token is None:
            return None
        return self.auth_token.get_secret_value()
