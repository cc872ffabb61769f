"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from image_analyzer.adapters.memory_analysis_repository import (
    InMemoryAnalysisRepository,
)
from image_analyzer.adapters.memory_image_repository import InMemoryImageRepository
from image_analyzer.adapters.memory_session_repository import (
    InMemorySessionRepository,
)
from image_analyzer.adapters.memory_video_repository import InMemoryVideoJobRepository
from image_analyzer.adapters.openai_analysis_client import OpenAIAnalysisClient
from image_analyzer.adapters.veo_video_client import VeoVideoClient
from image_analyzer.config import Settings
from image_analyzer.services.analysis import AnalysisService
from image_analyzer.services.cleanup import SessionSweeper
from image_analyzer.services.history import HistoryService
from image_analyzer.services.images import ImageService
from image_analyzer.services.sessions import SessionService
from image_analyzer.services.validation import AnalysisRequestValidator
from image_analyzer.services.video import VideoService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_service: SessionService
    image_service: ImageService
    analysis_validator: AnalysisRequestValidator
    analysis_service: AnalysisService
    history_service: HistoryService
    video_service: VideoService
    sweeper: SessionSweeper
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    image_repository = InMemoryImageRepository()
    analysis_repository = InMemoryAnalysisRepository()
    video_repository = InMemoryVideoJobRepository()
    session_service = SessionService(
        repository=InMemorySessionRepository(),
        requests_per_minute=resolved_settings.rate_limit_requests,
        tokens_per_minute=resolved_settings.rate_limit_tokens,
        ttl=timedelta(seconds=resolved_settings.session_ttl_seconds),
    )
    image_service = ImageService(
        repository=image_repository,
        session_service=session_service,
        max_images=resolved_settings.max_images,
        max_file_size_bytes=resolved_settings.max_file_size_bytes,
        max_total_size_bytes=resolved_settings.max_total_size_bytes,
    )
    analysis_validator = AnalysisRequestValidator(
        session_service=session_service,
        image_lookup=image_service,
        max_images=resolved_settings.max_images,
        max_prompt_chars=resolved_settings.max_prompt_chars,
    )
    openai_client = OpenAIAnalysisClient.create(
        resolved_settings.openai_api_key,
        timeout=resolved_settings.analysis_timeout_seconds,
        image_generation=resolved_settings.openai_image_generation,
    )
    analysis_service = AnalysisService(
        client=openai_client,
        repository=analysis_repository,
        session_service=session_service,
        model=resolved_settings.openai_model,
    )
    history_service = HistoryService(
        repository=analysis_repository, session_service=session_service
    )
    veo_client = VeoVideoClient.create(resolved_settings.google_api_key)
    video_service = VideoService(
        client=veo_client,
        repository=video_repository,
        session_service=session_service,
        image_lookup=image_service,
        default_model=resolved_settings.veo_model,
        max_prompt_chars=resolved_settings.max_prompt_chars,
    )
    sweeper = SessionSweeper(
        session_service=session_service,
        image_repository=image_repository,
        analysis_repository=analysis_repository,
        video_repository=video_repository,
    )

    async def close_resources() -> None:
        await openai_client.close()
        await veo_client.close()

    return AppContainer(
        settings=resolved_settings,
        session_service=session_service,
        image_service=image_service,
        analysis_validator=analysis_validator,
        analysis_service=analysis_service,
        history_service=history_service,
        video_service=video_service,
        sweeper=sweeper,
        close_resources=close_resources,
    )
