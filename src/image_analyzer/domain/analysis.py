"""Domain models for analysis requests and results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from image_analyzer.domain.images import StoredImage
from image_analyzer.domain.sessions import SessionRecord


class AnalysisStatus(StrEnum):
    """Lifecycle states of an analysis record."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass(frozen=True)
class GeneratedImage:
    """An image produced by the collaborator, base64 encoded."""

    mime_type: str
    data: str


@dataclass(frozen=True)
class AnalysisResult:
    """Output returned by the analysis collaborator."""

    content: str
    format: str = "markdown"
    tokens_used: int | None = None
    generated_images: list[GeneratedImage] = field(default_factory=list)


@dataclass(frozen=True)
class ValidatedAnalysisRequest:
    """An analysis request that passed validation and the rate gate."""

    session: SessionRecord
    images: list[StoredImage]
    prompt: str


@dataclass(frozen=True)
class AnalysisRecord:
    """Stored outcome of one prompt and its images."""

    id: UUID
    request_id: UUID
    session_id: UUID
    image_ids: list[UUID]
    prompt: str
    status: AnalysisStatus
    created_at: datetime
    result: AnalysisResult | None = None

    @property
    def is_completed(self) -> bool:
        return self.status is AnalysisStatus.COMPLETED and self.result is not None
