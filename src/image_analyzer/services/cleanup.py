"""Periodic eviction of expired sessions and everything they own."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from image_analyzer.services.analysis import AnalysisRepository
from image_analyzer.services.images import ImageRepository
from image_analyzer.services.sessions import SessionService
from image_analyzer.services.video import VideoJobRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepReport:
    """Counts of what a sweep removed."""

    sessions: int = 0
    images: int = 0
    analyses: int = 0
    video_jobs: int = 0


@dataclass
class SessionSweeper:
    """Removes expired sessions together with their images, results and jobs."""

    session_service: SessionService
    image_repository: ImageRepository
    analysis_repository: AnalysisRepository
    video_repository: VideoJobRepository

    def sweep(self, now: datetime | None = None) -> SweepReport:
        """Run one eviction pass."""
        expired = self.session_service.sweep_expired(now)
        images = analyses = video_jobs = 0
        for session_id in expired:
            images += self.image_repository.delete_session_images(session_id)
            analyses += self.analysis_repository.delete_session_analyses(session_id)
            video_jobs += self.video_repository.delete_session_jobs(session_id)
        report = SweepReport(
            sessions=len(expired),
            images=images,
            analyses=analyses,
            video_jobs=video_jobs,
        )
        if expired:
            logger.info(
                "Evicted expired session data",
                extra={
                    "sessions": report.sessions,
                    "images": report.images,
                    "analyses": report.analyses,
                    "video_jobs": report.video_jobs,
                },
            )
        return report

    async def run_periodically(self, interval_seconds: float) -> None:
        """Sweep every interval until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                self.sweep()
            except Exception:
                logger.exception("Session sweep failed")
