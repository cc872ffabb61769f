"""Request validation shared by the upload, analysis and video flows."""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from image_analyzer.domain.analysis import ValidatedAnalysisRequest
from image_analyzer.domain.images import StoredImage
from image_analyzer.domain.sessions import LimitKind, SessionRecord
from image_analyzer.errors import (
    RateLimitExceeded,
    SessionNotFoundError,
    ValidationError,
)
from image_analyzer.services import rate_limits
from image_analyzer.services.sessions import SessionService

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_SESSION_NOT_FOUND = "Session not found or expired"


def is_uuid(value: object) -> bool:
    """Return True for 8-4-4-4-12 hex strings with a version nibble of 1-5."""
    return isinstance(value, str) and _UUID_PATTERN.match(value) is not None


def parse_uuid(value: object, field_name: str) -> UUID:
    """Parse a UUID-shaped string or raise a validation error naming the field."""
    if value is None or value == "":
        raise ValidationError(
            f"{field_name} is required", [f"{field_name} must be provided"]
        )
    if not is_uuid(value):
        raise ValidationError(
            f"Invalid {field_name} format",
            [f"{field_name} must be a valid UUID, got {value!r}"],
        )
    return UUID(str(value))


def require_session(session_service: SessionService, value: object) -> SessionRecord:
    """Resolve a client-supplied session id to a live session."""
    return require_live_session(session_service, parse_uuid(value, "sessionId"))


def require_live_session(
    session_service: SessionService, session_id: UUID
) -> SessionRecord:
    """Return the session or raise if it has expired or been swept."""
    session = session_service.get(session_id)
    if session is None:
        raise ValidationError(
            _SESSION_NOT_FOUND, [f"Session {session_id} does not exist"]
        )
    return session


def admit_request(session_service: SessionService, session_id: UUID) -> SessionRecord:
    """Spend one request from the session budget or raise a 429-class error."""
    try:
        decision = session_service.touch_rate_limit(session_id, LimitKind.REQUESTS)
    except SessionNotFoundError as exc:
        raise ValidationError(
            _SESSION_NOT_FOUND, [f"Session {session_id} does not exist"]
        ) from exc
    if not decision.allowed:
        raise _rate_limit_error(
            decision.session,
            LimitKind.REQUESTS,
            "Rate limit exceeded",
            f"Requests per minute: limit {decision.window.limit}, "
            f"remaining {decision.window.remaining}",
            session_service.clock(),
        )
    tokens = decision.session.tokens_per_minute
    if tokens.remaining <= 0:
        raise _rate_limit_error(
            decision.session,
            LimitKind.TOKENS,
            "Token rate limit exceeded",
            f"Tokens per minute: limit {tokens.limit}, remaining {tokens.remaining}",
            session_service.clock(),
        )
    return decision.session


def validate_prompt(value: object, max_chars: int) -> str:
    """Return the trimmed prompt or raise a validation error."""
    if value is None:
        raise ValidationError("prompt is required", ["prompt must be provided"])
    if not isinstance(value, str):
        raise ValidationError("prompt must be a string", ["prompt must be a string"])
    if not value.strip():
        raise ValidationError(
            "prompt must not be empty", ["prompt must contain non-whitespace text"]
        )
    if len(value) > max_chars:
        raise ValidationError(
            f"prompt exceeds maximum length of {max_chars} characters",
            [f"Prompt length: {len(value)} characters, limit: {max_chars} characters"],
        )
    return value.strip()


def require_object(payload: object) -> dict[str, object]:
    """Reject request bodies that are not JSON objects."""
    if not isinstance(payload, dict):
        raise ValidationError(
            "Invalid request body", ["Request body must be a JSON object"]
        )
    return payload


class ImageLookup(Protocol):
    """Resolves an image id within the owning session."""

    def get_owned_image(self, image_id: UUID, session_id: UUID) -> StoredImage | None:
        """Return the image only if the session owns it."""


@dataclass
class AnalysisRequestValidator:
    """Checks an analysis request before it reaches the collaborator."""

    session_service: SessionService
    image_lookup: ImageLookup
    max_images: int = 5
    max_prompt_chars: int = 2000

    def validate(self, payload: object) -> ValidatedAnalysisRequest:
        """Run every check in order and return the resolved request."""
        body = require_object(payload)
        session = require_session(self.session_service, body.get("sessionId"))
        session = admit_request(self.session_service, session.id)
        images = self._resolve_images(body.get("imageIds"), session.id)
        prompt = validate_prompt(body.get("prompt"), self.max_prompt_chars)
        return ValidatedAnalysisRequest(session=session, images=images, prompt=prompt)

    def _resolve_images(self, value: object, session_id: UUID) -> list[StoredImage]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValidationError(
                "imageIds must be an array", ["imageIds must be a list of UUIDs"]
            )
        if len(value) > self.max_images:
            raise ValidationError(
                f"Too many imageIds: maximum {self.max_images} allowed",
                [f"Received {len(value)} imageIds, maximum is {self.max_images}"],
            )
        images: list[StoredImage] = []
        for raw_id in value:
            image_id = parse_uuid(raw_id, "imageId")
            image = self.image_lookup.get_owned_image(image_id, session_id)
            if image is None:
                raise ValidationError(
                    "Image not found or invalid",
                    [f"Image {image_id} was not found for this session"],
                )
            images.append(image)
        return images


def _rate_limit_error(
    session: SessionRecord,
    kind: LimitKind,
    message: str,
    detail: str,
    now: datetime,
) -> RateLimitExceeded:
    window = session.window(kind)
    return RateLimitExceeded(
        message,
        retry_after=rate_limits.retry_after_seconds(window, now),
        limit=window.limit,
        remaining=window.remaining,
        reset_at=window.reset_at,
        limits=rate_limits.limits_snapshot(session),
        details=[detail],
    )
