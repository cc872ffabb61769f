"""Error types shared by services and the HTTP layer."""

from datetime import datetime
from uuid import UUID


class AppError(Exception):
    """Base class for errors that map to a structured API response."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationError(AppError):
    """Malformed or out-of-range input, or an unresolvable reference."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(AppError):
    """A primary-key lookup found nothing."""

    kind = "not_found"
    status_code = 404


class RateLimitExceeded(AppError):
    """A session ran out of budget in its current rate window."""

    kind = "rate_limit_exceeded"
    status_code = 429

    def __init__(
        self,
        message: str,
        *,
        retry_after: int,
        limit: int,
        remaining: int,
        reset_at: datetime,
        limits: dict[str, object],
        details: list[str] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.retry_after = retry_after
        self.limit = limit
        self.remaining = remaining
        self.reset_at = reset_at
        self.limits = limits


class SessionNotFoundError(Exception):
    """Raised by the session service when a session id does not resolve."""

    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id
