"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.

Dependencies: All config modules
System role: Central configuration aggregator
"""

from functools import lru_cache

from pydantic import Field

from chat_storage.configs.base import BaseSettings
from chat_storage.configs.database import DatabaseSettings


class Settings(BaseSettings):
    """Unified settings aggregating all config modules."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns Settings instance, cached after first call.
    Environment variables loaded once.

    Returns:
        Settings: Settings instance

    Usage:
        from chat_storage.configs import get_settings
        settings = get_settings()
    """
    return Settings()
