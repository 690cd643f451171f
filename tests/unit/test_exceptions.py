"""
Test suite for the exception hierarchy.

System role: Verification of error context propagation
"""

from chat_storage.core.exceptions import (
    ChatStorageException,
    DuplicateMessageError,
    StorageOperationError,
    StoreClosedError,
    StoreNotInitializedError,
    StoreStateError,
    ValidationError,
)


class TestExceptionHierarchy:
    """Test suite for exception types and their details."""

    def test_str_should_include_details(self) -> None:
        """Test details are rendered after the message."""
        error = ChatStorageException("boom", {"key": "value"})

        assert str(error) == "boom | Details: {'key': 'value'}"

    def test_str_without_details_should_be_message(self) -> None:
        """Test plain message when no details are present."""
        assert str(ChatStorageException("boom")) == "boom"

    def test_validation_error_should_record_field(self) -> None:
        """Test the failing field lands in details."""
        error = ValidationError("bad", field="user_id")

        assert error.details == {"field": "user_id"}

    def test_duplicate_message_error_should_record_scope(self) -> None:
        """Test the conflicting scope and index land in details."""
        error = DuplicateMessageError("u1", "s1", "a1", 3)

        assert error.details == {
            "user_id": "u1",
            "session_id": "s1",
            "agent_id": "a1",
            "message_index": 3,
        }
        assert "Message 3 already exists" in error.message

    def test_state_errors_should_share_base(self) -> None:
        """Test lifecycle errors can be caught together."""
        assert isinstance(StoreClosedError("fetch"), StoreStateError)
        assert isinstance(StoreNotInitializedError("fetch"), StoreStateError)
        assert StoreClosedError("fetch").details == {"operation": "fetch"}

    def test_storage_operation_error_should_record_operation(self) -> None:
        """Test the failing operation lands in details."""
        error = StorageOperationError("failed", operation="append", details={"user_id": "u1"})

        assert error.details == {"user_id": "u1", "operation": "append"}
        assert isinstance(error, ChatStorageException)
