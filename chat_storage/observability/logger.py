"""
Logger configuration.

Installs one stdout handler with ISO timestamps and sets levels from
Settings: the root level from log_level, and SQLAlchemy's engine logger
from the database echo_sql flag.

Dependencies: logging (stdlib), chat_storage.configs
System role: Centralized logging configuration
"""

import logging
import sys

from chat_storage.configs.settings import Settings, get_settings


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure Python logging for the conversation store.

    Safe to call more than once; existing root handlers are replaced.

    Args:
        settings: Application settings (defaults to get_settings())
    """
    settings = settings or get_settings()

    # Remove any existing handlers to avoid duplicates
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.setLevel(_level_from_name(settings.log_level))
    root_logger.addHandler(handler)

    sql_level = logging.INFO if settings.database.echo_sql else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
