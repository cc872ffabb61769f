"""Domain models for video generation jobs."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class VideoStatus(StrEnum):
    """Lifecycle states of a video job."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class VideoOperation:
    """Snapshot of a long-running operation at the video collaborator."""

    name: str
    done: bool
    video_uri: str | None = None
    mime_type: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class VideoJob:
    """A video generation job owned by a session."""

    id: UUID
    session_id: UUID
    operation_name: str
    model: str
    prompt: str
    status: VideoStatus
    created_at: datetime
    updated_at: datetime
    video_uri: str | None = None
    mime_type: str | None = None
    error: str | None = None
