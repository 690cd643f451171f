"""
Exception hierarchy for the chat storage package.

Provides layered exception structure for storage errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the package
"""

from typing import Any


class ChatStorageException(Exception):
    """Base exception for all chat storage errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging

        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(ChatStorageException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class ConfigurationError(ChatStorageException):
    """Raised when connection settings cannot be turned into an engine."""

    pass


class StoreStateError(ChatStorageException):
    """Base exception for operations issued in the wrong lifecycle state."""

    pass


class StoreNotInitializedError(StoreStateError):
    """Raised when an operation runs before initialize() completed."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Store must be initialized before '{operation}'",
            {"operation": operation},
        )


class StoreClosedError(StoreStateError):
    """Raised when an operation runs after close()."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Store is closed, cannot run '{operation}'",
            {"operation": operation},
        )


class InitializationError(ChatStorageException):
    """Raised when the backend is unreachable or the schema cannot be created."""

    pass


class DuplicateMessageError(ChatStorageException):
    """Raised when a message index already exists in its scope."""

    def __init__(
        self,
        user_id: str,
        session_id: str,
        agent_id: str,
        message_index: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize duplicate message error.

        Args:
            user_id: Scope user
            session_id: Scope session
            agent_id: Scope agent
            message_index: Conflicting index
            details: Additional context
        """
        details = details or {}
        details.update(
            {
                "user_id": user_id,
                "session_id": session_id,
                "agent_id": agent_id,
                "message_index": message_index,
            }
        )
        super().__init__(
            f"Message {message_index} already exists for "
            f"({user_id}, {session_id}, {agent_id})",
            details,
        )


class MessageSerializationError(ChatStorageException):
    """Raised when message content cannot be converted to or from JSON."""

    pass


class StorageOperationError(ChatStorageException):
    """Raised when a backend read or write fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize storage operation error.

        Args:
            message: Error message
            operation: Operation that failed (append, fetch, clear, ...)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
