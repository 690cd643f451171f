"""
Observability module.

Provides logging configuration and scope-aware logging helpers.
"""

from chat_storage.observability.log_utils import (
    log_store_failure,
    log_with_context,
    safe_log_value,
    scope_label,
)
from chat_storage.observability.logger import configure_logging

__all__ = [
    "configure_logging",
    "log_store_failure",
    "log_with_context",
    "safe_log_value",
    "scope_label",
]
