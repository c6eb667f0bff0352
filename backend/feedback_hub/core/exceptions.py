"""Application error taxonomy.

Services raise these; ``feedback_hub.main`` renders them as JSON with the
matching HTTP status. Validation always runs before any mutation, so a raised
error never leaves a partial write behind.
"""


class FeedbackHubError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: list[str] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)


class ValidationError(FeedbackHubError):
    """Missing required field or malformed survey configuration."""

    status_code = 400
    default_message = "Validation failed"


class CardOperationError(ValidationError):
    """Rejected builder operation on a survey card."""


class AuthenticationError(FeedbackHubError):
    status_code = 401
    default_message = "Invalid credentials"


class AuthorizationError(FeedbackHubError):
    """Role or ownership mismatch."""

    status_code = 403
    default_message = "Forbidden"


class NotFoundError(FeedbackHubError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(FeedbackHubError):
    """State conflict, e.g. pausing an already paused token."""

    status_code = 409
    default_message = "Conflict"


class RateLimitedError(FeedbackHubError):
    status_code = 429
    default_message = "Too many requests"


class StorageError(FeedbackHubError):
    """Database or filesystem failure. Never carries raw driver messages."""

    status_code = 500
    default_message = "Database error"


class DeliveryError(FeedbackHubError):
    """Outbound call to an external collaborator failed (e-mail workflow)."""

    status_code = 502
    default_message = "Failed to deliver message"
