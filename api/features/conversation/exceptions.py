"""Exceptions for the Conversation feature."""
from typing import Any, Dict, Optional

from api.shared.exceptions import (
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
)


class SessionNotFoundError(NotFoundError):
    """Raised when a chat session does not exist."""

    def __init__(self, session_id: str):
        super().__init__("Chat session", session_id)
        self.error_code = "SESSION_NOT_FOUND"


class SessionAccessDeniedError(ForbiddenError):
    """Raised when the requester does not own the chat session."""

    def __init__(self, session_id: str, requester_id: int):
        super().__init__(
            f"Access to chat session '{session_id}' denied",
            {"session_id": session_id, "requester_id": requester_id},
        )
        self.error_code = "SESSION_ACCESS_DENIED"


class InvalidMessageError(ValidationError):
    """Raised when message text or a title fails validation."""


class MessageStorageError(StorageError):
    """Raised when a session or message could not be read or written."""

    def __init__(self, operation: str, message: str, details: Optional[Dict[str, Any]] = None):
        error_details = {"operation": operation}
        if details:
            error_details.update(details)
        super().__init__(f"Storage failure during {operation}: {message}", error_details)


class NothingToRetryError(ConflictError):
    """Raised when a retry is requested but the last message already has a reply."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Chat session '{session_id}' has no unanswered message",
            {"session_id": session_id},
        )
        self.error_code = "NOTHING_TO_RETRY"


class CompletionError(ExternalServiceError):
    """Base class for completion service failures.

    ``details["user_message_saved"]`` tells the caller whether its input was
    persisted before generation failed.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UPSTREAM_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("Completion", message, details, error_code=error_code)

    def mark_saved(self, session_id: str, user_message_id: Optional[str]) -> "CompletionError":
        self.details.update(
            {
                "session_id": session_id,
                "user_message_id": user_message_id,
                "user_message_saved": user_message_id is not None,
            }
        )
        return self


class UpstreamError(CompletionError):
    """Raised on transport or API failures of the completion service."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "UPSTREAM_ERROR", details)


class UpstreamTimeout(CompletionError):
    """Raised when the completion service does not answer within the timeout."""

    status_code = 504

    def __init__(self, timeout_seconds: float, details: Optional[Dict[str, Any]] = None):
        error_details = {"timeout_seconds": timeout_seconds}
        if details:
            error_details.update(details)
        super().__init__(
            f"no response within {timeout_seconds:g}s", "UPSTREAM_TIMEOUT", error_details
        )


class NoCompletion(CompletionError):
    """Raised when the service answers successfully but returns no candidates."""

    def __init__(self, model: str):
        super().__init__(
            f"model '{model}' returned no completion", "NO_COMPLETION", {"model": model}
        )
