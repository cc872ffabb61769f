"""Video generation jobs tracked per session."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID, uuid4

from image_analyzer.domain.images import StoredImage
from image_analyzer.domain.video import VideoJob, VideoOperation, VideoStatus
from image_analyzer.errors import NotFoundError, ValidationError
from image_analyzer.services.sessions import SessionService
from image_analyzer.services.validation import (
    ImageLookup,
    admit_request,
    parse_uuid,
    require_live_session,
    require_object,
    require_session,
    validate_prompt,
)
from image_analyzer.timestamps import to_iso, utcnow

logger = logging.getLogger(__name__)

ALLOWED_VIDEO_MODELS = (
    "veo-3.0-generate-001",
    "veo-3.0-fast-generate-001",
    "veo-2.0-generate-001",
)
ALLOWED_ASPECT_RATIOS = ("16:9", "9:16")
ALLOWED_RESOLUTIONS = ("720p", "1080p")
ESTIMATED_GENERATION_TIME = timedelta(seconds=60)
FILTERED_MESSAGE = "Content filtered by responsible AI policy"


class VideoClient(Protocol):
    """Interface for the long-running video generation collaborator."""

    async def start(  # noqa: PLR0913
        self,
        *,
        model: str,
        prompt: str,
        negative_prompt: str | None,
        image: StoredImage | None,
        aspect_ratio: str,
        resolution: str,
    ) -> VideoOperation:
        """Start a generation and return the operation snapshot."""

    async def refresh(self, operation_name: str) -> VideoOperation:
        """Return the latest snapshot of an operation."""

    async def download(self, uri: str) -> bytes:
        """Return the bytes of a generated video."""


class VideoJobRepository(Protocol):
    """Persistence interface for video jobs."""

    def add_job(self, job: VideoJob) -> None:
        """Store a new job."""

    def get_job(self, job_id: UUID) -> VideoJob | None:
        """Return a job by id, if present."""

    def save_job(self, job: VideoJob) -> None:
        """Replace the stored copy of a job."""

    def delete_session_jobs(self, session_id: UUID) -> int:
        """Delete every job owned by a session and return how many."""


@dataclass(frozen=True)
class VideoContent:
    """Downloaded video bytes and their media type."""

    data: bytes
    mime_type: str


@dataclass
class VideoService:
    """Starts, polls and downloads video generations."""

    client: VideoClient
    repository: VideoJobRepository
    session_service: SessionService
    image_lookup: ImageLookup
    default_model: str = ALLOWED_VIDEO_MODELS[0]
    max_prompt_chars: int = 2000
    clock: Callable[[], datetime] = utcnow

    async def start(self, payload: object) -> VideoJob:
        """Validate a generation request and start it at the collaborator."""
        body = require_object(payload)
        session = require_session(self.session_service, body.get("sessionId"))
        session = admit_request(self.session_service, session.id)
        prompt = validate_prompt(body.get("prompt"), self.max_prompt_chars)
        negative_prompt = _optional_text(
            body.get("negativePrompt"), "negativePrompt", self.max_prompt_chars
        )
        model = _choice(body.get("model"), "model", ALLOWED_VIDEO_MODELS)
        aspect_ratio = _choice(
            body.get("aspectRatio"), "aspectRatio", ALLOWED_ASPECT_RATIOS
        )
        resolution = _choice(body.get("resolution"), "resolution", ALLOWED_RESOLUTIONS)
        image = self._resolve_image(body.get("imageId"), session.id)

        operation = await self.client.start(
            model=model or self.default_model,
            prompt=prompt,
            negative_prompt=negative_prompt,
            image=image,
            aspect_ratio=aspect_ratio or ALLOWED_ASPECT_RATIOS[0],
            resolution=resolution or ALLOWED_RESOLUTIONS[0],
        )
        require_live_session(self.session_service, session.id)
        now = self.clock()
        job = _apply_operation(
            VideoJob(
                id=uuid4(),
                session_id=session.id,
                operation_name=operation.name,
                model=model or self.default_model,
                prompt=prompt,
                status=VideoStatus.PROCESSING,
                created_at=now,
                updated_at=now,
            ),
            operation,
            now,
        )
        self.repository.add_job(job)
        logger.info(
            "Video generation started",
            extra={
                "session_id": str(session.id),
                "job_id": str(job.id),
                "model": job.model,
                "has_image": image is not None,
            },
        )
        return job

    async def status(self, job_id: object) -> VideoJob:
        """Return a job, refreshing it from the collaborator while unfinished."""
        job = self._require(job_id)
        if job.status is not VideoStatus.PROCESSING:
            return job
        operation = await self.client.refresh(job.operation_name)
        updated = _apply_operation(job, operation, self.clock())
        if updated.status is not job.status:
            logger.info(
                "Video generation finished",
                extra={
                    "job_id": str(job.id),
                    "status": updated.status.value,
                    "error": updated.error,
                },
            )
        self.repository.save_job(updated)
        return updated

    async def content(self, job_id: object) -> VideoContent:
        """Download a finished video through the server."""
        job = self._require(job_id)
        if job.status is not VideoStatus.COMPLETED or not job.video_uri:
            raise NotFoundError(
                "Video not available", [f"Video job {job.id} is {job.status.value}"]
            )
        data = await self.client.download(job.video_uri)
        return VideoContent(data=data, mime_type=job.mime_type or "video/mp4")

    def _require(self, job_id: object) -> VideoJob:
        parsed = parse_uuid(job_id, "operationId")
        job = self.repository.get_job(parsed)
        if job is None:
            raise NotFoundError(
                "Video operation not found", [f"No video job exists with id {parsed}"]
            )
        return job

    def _resolve_image(self, value: object, session_id: UUID) -> StoredImage | None:
        if value is None:
            return None
        image_id = parse_uuid(value, "imageId")
        image = self.image_lookup.get_owned_image(image_id, session_id)
        if image is None:
            raise ValidationError(
                "Image not found or invalid",
                [f"Image {image_id} was not found for this session"],
            )
        return image


def video_payload(job: VideoJob, now: datetime) -> dict[str, object]:
    """Return a job in wire format."""
    payload: dict[str, object] = {
        "operationId": str(job.id),
        "status": job.status.value,
        "model": job.model,
        "createdAt": to_iso(job.created_at),
        "updatedAt": to_iso(job.updated_at),
    }
    if job.status is VideoStatus.PROCESSING:
        payload["estimatedCompletionTime"] = to_iso(now + ESTIMATED_GENERATION_TIME)
    if job.status is VideoStatus.COMPLETED:
        payload["videoUrl"] = f"/api/v1/video/{job.id}/content"
        payload["mimeType"] = job.mime_type or "video/mp4"
    if job.error:
        payload["error"] = job.error
    return payload


def _apply_operation(
    job: VideoJob, operation: VideoOperation, now: datetime
) -> VideoJob:
    if operation.error:
        return replace(
            job, status=VideoStatus.FAILED, error=operation.error, updated_at=now
        )
    if operation.done and operation.video_uri:
        return replace(
            job,
            status=VideoStatus.COMPLETED,
            video_uri=operation.video_uri,
            mime_type=operation.mime_type,
            updated_at=now,
        )
    if operation.done:
        return replace(
            job, status=VideoStatus.FAILED, error=FILTERED_MESSAGE, updated_at=now
        )
    return replace(job, updated_at=now)


def _choice(value: object, field_name: str, allowed: tuple[str, ...]) -> str | None:
    if value is None:
        return None
    if value not in allowed:
        raise ValidationError(
            f"Invalid {field_name}: {value}",
            [f"{field_name} must be one of {', '.join(allowed)}"],
        )
    return str(value)


def _optional_text(value: object, field_name: str, max_chars: int) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if len(value) > max_chars:
        raise ValidationError(
            f"{field_name} exceeds maximum length of {max_chars} characters"
        )
    return value.strip() or None
