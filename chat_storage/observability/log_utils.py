"""
Logging utilities for conversation store events.

Renders scopes as compact labels and summarizes message payloads so log
lines carry enough to find a conversation without dumping its contents.

Dependencies: logging (stdlib)
System role: Logging helper functions
"""

import logging
from typing import Any

PREVIEW_LENGTH = 60


def scope_label(user_id: str, session_id: str, agent_id: str | None = None) -> str:
    """
    Render a (user, session, agent) scope as ``user/session/agent``.

    A missing agent renders as ``*``, meaning every agent in the session.
    """
    return f"{user_id}/{session_id}/{agent_id or '*'}"


def _is_scope(value: Any) -> bool:
    return (
        isinstance(value, tuple)
        and len(value) == 3
        and isinstance(value[0], str)
        and isinstance(value[1], str)
        and (value[2] is None or isinstance(value[2], str))
    )


def _preview(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return repr(text)
    return f"{text[:max_length]!r}... ({len(text)} chars)"


def safe_log_value(value: Any, max_length: int = PREVIEW_LENGTH) -> str:
    """
    Summarize a value for a log line.

    Scope tuples become labels, messages become ``role: <content summary>``,
    text is quoted and cut to a preview, and structured content is reduced
    to its shape.

    Args:
        value: Scope tuple, message, content payload or plain value
        max_length: Longest text preview before truncating

    Returns:
        str: Short, single-line summary
    """
    try:
        if value is None:
            return "null"
        if _is_scope(value):
            return scope_label(*value)
        role = getattr(value, "role", None)
        if isinstance(role, str) and hasattr(value, "content"):
            return f"{role}: {safe_log_value(value.content, max_length)}"
        if isinstance(value, str):
            return _preview(value, max_length)
        if isinstance(value, dict):
            keys = ", ".join(str(key) for key in list(value)[:5])
            more = ", ..." if len(value) > 5 else ""
            return f"dict(keys: {keys}{more})"
        if isinstance(value, (list, tuple)):
            return f"{type(value).__name__}({len(value)} items)"
        return str(value)
    except Exception as e:
        return f"<unable to log: {type(e).__name__}>"


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context,
) -> None:
    """
    Log a message with its context rendered inline and attached as extras.

    Context values pass through safe_log_value, so a ``scope`` tuple shows
    up as ``scope=u1/s1/a1``.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        message: Log message
        **context: Context key-value pairs
    """
    safe_context = {key: safe_log_value(val) for key, val in context.items()}
    if safe_context:
        rendered = " ".join(f"{key}={val}" for key, val in safe_context.items())
        message = f"{message} [{rendered}]"
    logger.log(level, message, extra=safe_context)


def log_store_failure(
    logger: logging.Logger,
    operation: str,
    exc: BaseException,
    **context,
) -> None:
    """
    Log a failed store operation with its traceback and context.

    Args:
        logger: Logger instance
        operation: Store operation name ("append", "fetch", ...)
        exc: The backend exception
        **context: Scope and arguments of the failed call
    """
    safe_context = {key: safe_log_value(val) for key, val in context.items()}
    safe_context["error_type"] = type(exc).__name__
    rendered = " ".join(f"{key}={val}" for key, val in safe_context.items())
    logger.error(
        f"Conversation store {operation} failed [{rendered}]",
        exc_info=exc,
        extra=safe_context,
    )
