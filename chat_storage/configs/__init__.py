"""
Configuration management module.

Provides centralized, type-safe configuration using Pydantic Settings.
All config modules support environment variable mapping with validation.
"""

from chat_storage.configs.database import DatabaseSettings
from chat_storage.configs.settings import Settings, get_settings

__all__ = ["DatabaseSettings", "Settings", "get_settings"]
