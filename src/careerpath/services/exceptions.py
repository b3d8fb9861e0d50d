"""Custom exceptions for CareerPath services."""

from enum import Enum


class CompletionStatus(str, Enum):
    """Classified outcome of a completion service call."""

    OK = "ok"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    TRANSPORT_ERROR = "transport_error"


class ClassifiedTransportError(Exception):
    """Raised when the completion service call did not succeed.

    Attributes:
        status: Classified failure status
        message: Human-readable message suitable for showing to the user
        status_code: HTTP status code, if a response was received
    """

    status: CompletionStatus = CompletionStatus.TRANSPORT_ERROR
    default_message = "Failed to get response from mentor."

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.message)


class RateLimitedError(ClassifiedTransportError):
    """The completion service answered 429."""

    status = CompletionStatus.RATE_LIMITED
    default_message = "Rate limit exceeded. Please try again later."


class QuotaExceededError(ClassifiedTransportError):
    """The completion service answered 402."""

    status = CompletionStatus.QUOTA_EXCEEDED
    default_message = "AI usage limit reached. Please contact support."


class TransportError(ClassifiedTransportError):
    """Any other non-success status, connection failure or missing body."""


class ParseFailure(ValueError):
    """Upstream content was not in the expected structured shape."""


class PersistenceError(Exception):
    """Raised when a durable store read or write fails.

    Attributes:
        operation: Store operation that failed (e.g. "insert_entry")
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class MentorBusyError(RuntimeError):
    """Raised when a mentor turn is started while another is streaming."""
