"""Tests for analysis request validation."""

from uuid import uuid4

import pytest

from image_analyzer.errors import RateLimitExceeded, ValidationError
from image_analyzer.services.images import ImageService
from image_analyzer.services.sessions import SessionService
from image_analyzer.services.validation import AnalysisRequestValidator, is_uuid
from tests.conftest import png_upload


def test_valid_request_resolves_images_and_trims_prompt(
    analysis_validator: AnalysisRequestValidator,
    image_service: ImageService,
    session_service: SessionService,
) -> None:
    session = session_service.create()
    [image] = image_service.upload(str(session.id), [png_upload()])

    validated = analysis_validator.validate(
        {
            "sessionId": str(session.id),
            "imageIds": [str(image.id)],
            "prompt": "  Describe this image  ",
        }
    )

    assert validated.images == [image]
    assert validated.prompt == "Describe this image"
    assert validated.session.requests_per_minute.remaining == 9


def test_image_ids_are_optional(
    analysis_validator: AnalysisRequestValidator, session_service: SessionService
) -> None:
    session = session_service.create()

    validated = analysis_validator.validate(
        {"sessionId": str(session.id), "prompt": "Write a haiku"}
    )

    assert validated.images == []


@pytest.mark.parametrize("payload", [[], "text", None, 42])
def test_non_object_body_is_rejected(
    analysis_validator: AnalysisRequestValidator, payload: object
) -> None:
    with pytest.raises(ValidationError) as exc_info:
        analysis_validator.validate(payload)

    assert exc_info.value.message == "Invalid request body"


def test_missing_session_is_reported_first(
    analysis_validator: AnalysisRequestValidator,
) -> None:
    with pytest.raises(ValidationError) as exc_info:
        analysis_validator.validate({"imageIds": "oops", "prompt": ""})

    assert exc_info.value.message == "sessionId is required"


def test_rate_limit_is_checked_before_images_and_prompt(
    analysis_validator: AnalysisRequestValidator, session_service: SessionService
) -> None:
    session = session_service.create()
    payload = {"sessionId": str(session.id), "prompt": "ok"}
    for _ in range(10):
        analysis_validator.validate(payload)

    with pytest.raises(RateLimitExceeded) as exc_info:
        analysis_validator.validate({"sessionId": str(session.id), "prompt": ""})

    error = exc_info.value
    assert error.message == "Rate limit exceeded"
    assert error.retry_after == 30
    assert error.remaining == 0
    assert error.limits["requestsPerMinute"]["remaining"] == 0


def test_exhausted_token_window_is_rejected(
    analysis_validator: AnalysisRequestValidator, session_service: SessionService
) -> None:
    session = session_service.create()
    session_service.charge_tokens(session.id, 250_000)

    with pytest.raises(RateLimitExceeded) as exc_info:
        analysis_validator.validate({"sessionId": str(session.id), "prompt": "hi"})

    assert exc_info.value.message == "Token rate limit exceeded"
    # The rejected request still counts against the request window.
    assert session_service.get(session.id).requests_per_minute.remaining == 9


@pytest.mark.parametrize(
    ("image_ids", "message"),
    [
        ("not-a-list", "imageIds must be an array"),
        ([str(uuid4()) for _ in range(6)], "Too many imageIds: maximum 5 allowed"),
        (["not-a-uuid"], "Invalid imageId format"),
        ([str(uuid4())], "Image not found or invalid"),
    ],
)
def test_bad_image_ids_are_rejected(
    analysis_validator: AnalysisRequestValidator,
    session_service: SessionService,
    image_ids: object,
    message: str,
) -> None:
    session = session_service.create()

    with pytest.raises(ValidationError) as exc_info:
        analysis_validator.validate(
            {"sessionId": str(session.id), "imageIds": image_ids, "prompt": "hi"}
        )

    assert exc_info.value.message == message


def test_images_of_another_session_are_not_found(
    analysis_validator: AnalysisRequestValidator,
    image_service: ImageService,
    session_service: SessionService,
) -> None:
    owner = session_service.create()
    other = session_service.create()
    [image] = image_service.upload(str(owner.id), [png_upload()])

    with pytest.raises(ValidationError) as exc_info:
        analysis_validator.validate(
            {"sessionId": str(other.id), "imageIds": [str(image.id)], "prompt": "hi"}
        )

    assert exc_info.value.message == "Image not found or invalid"


@pytest.mark.parametrize(
    ("prompt", "message"),
    [
        (None, "prompt is required"),
        (123, "prompt must be a string"),
        ("   ", "prompt must not be empty"),
        ("x" * 2001, "prompt exceeds maximum length of 2000 characters"),
    ],
)
def test_bad_prompts_are_rejected(
    analysis_validator: AnalysisRequestValidator,
    session_service: SessionService,
    prompt: object,
    message: str,
) -> None:
    session = session_service.create()

    with pytest.raises(ValidationError) as exc_info:
        analysis_validator.validate({"sessionId": str(session.id), "prompt": prompt})

    assert exc_info.value.message == message


def test_prompt_at_maximum_length_is_accepted(
    analysis_validator: AnalysisRequestValidator, session_service: SessionService
) -> None:
    session = session_service.create()

    validated = analysis_validator.validate(
        {"sessionId": str(session.id), "prompt": "x" * 2000}
    )

    assert len(validated.prompt) == 2000


def test_uuid_shape_checks_version_nibble_and_ignores_case() -> None:
    assert is_uuid("550E8400-E29B-41D4-A716-446655440000")
    assert not is_uuid("550e8400-e29b-01d4-a716-446655440000")
    assert not is_uuid("550e8400e29b41d4a716446655440000")
    assert not is_uuid(None)
