"""Analysis orchestration against the generative collaborator."""

import base64
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID, uuid4

from image_analyzer.domain.analysis import (
    AnalysisRecord,
    AnalysisResult,
    AnalysisStatus,
    ValidatedAnalysisRequest,
)
from image_analyzer.services.sessions import SessionService
from image_analyzer.services.validation import require_live_session
from image_analyzer.timestamps import utcnow

logger = logging.getLogger(__name__)


class AnalysisClient(Protocol):
    """Interface for the generative analysis collaborator."""

    async def analyze(
        self, *, model: str, prompt: str, image_data_urls: list[str]
    ) -> AnalysisResult:
        """Return generated content for a prompt and its images."""


class AnalysisRepository(Protocol):
    """Persistence interface for analysis records."""

    def add_analysis(self, record: AnalysisRecord) -> None:
        """Store a new record."""

    def get_by_request_id(self, request_id: UUID) -> AnalysisRecord | None:
        """Return a record by its external request id."""

    def list_session_analyses(self, session_id: UUID) -> list[AnalysisRecord]:
        """Return every record owned by a session, in insertion order."""

    def delete_session_analyses(self, session_id: UUID) -> int:
        """Delete every record owned by a session and return how many."""


@dataclass
class AnalysisService:
    """Runs validated requests through the collaborator and records results."""

    client: AnalysisClient
    repository: AnalysisRepository
    session_service: SessionService
    model: str
    clock: Callable[[], datetime] = utcnow

    async def run(self, request: ValidatedAnalysisRequest) -> AnalysisRecord:
        """Call the collaborator and store a completed record.

        Collaborator errors propagate and nothing is stored for them.
        """
        session_id = request.session.id
        logger.info(
            "Starting analysis",
            extra={
                "session_id": str(session_id),
                "image_count": len(request.images),
                "prompt_length": len(request.prompt),
            },
        )
        started = time.perf_counter()
        result = await self.client.analyze(
            model=self.model,
            prompt=request.prompt,
            image_data_urls=[
                _to_data_url(image.data, image.mime_type) for image in request.images
            ],
        )
        # The sweeper may have evicted the session while the call was in flight.
        require_live_session(self.session_service, session_id)
        record = AnalysisRecord(
            id=uuid4(),
            request_id=uuid4(),
            session_id=session_id,
            image_ids=[image.id for image in request.images],
            prompt=request.prompt,
            status=AnalysisStatus.COMPLETED,
            created_at=self.clock(),
            result=result,
        )
        self.repository.add_analysis(record)
        if result.tokens_used:
            self.session_service.charge_tokens(session_id, result.tokens_used)
        logger.info(
            "Analysis completed",
            extra={
                "session_id": str(session_id),
                "request_id": str(record.request_id),
                "tokens_used": result.tokens_used,
                "generated_images": len(result.generated_images),
                "duration_ms": round((time.perf_counter() - started) * 1000),
            },
        )
        return record


def _to_data_url(image_bytes: bytes, mime_type: str) -> str:
    """Convert bytes to a base64 data URL for image input."""
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"
