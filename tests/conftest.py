"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from image_analyzer.adapters.memory_analysis_repository import (
    InMemoryAnalysisRepository,
)
from image_analyzer.adapters.memory_image_repository import InMemoryImageRepository
from image_analyzer.adapters.memory_session_repository import (
    InMemorySessionRepository,
)
from image_analyzer.adapters.memory_video_repository import InMemoryVideoJobRepository
from image_analyzer.config import Settings
from image_analyzer.containers import AppContainer
from image_analyzer.domain.analysis import AnalysisResult
from image_analyzer.domain.images import StoredImage, UploadedFile
from image_analyzer.domain.video import VideoOperation
from image_analyzer.services.analysis import AnalysisClient, AnalysisService
from image_analyzer.services.cleanup import SessionSweeper
from image_analyzer.services.history import HistoryService
from image_analyzer.services.images import ImageService
from image_analyzer.services.sessions import SessionService
from image_analyzer.services.validation import AnalysisRequestValidator
from image_analyzer.services.video import VideoClient, VideoService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
START_TIME = datetime(2025, 1, 1, 12, 0, 30, tzinfo=UTC)


@dataclass
class FakeClock:
    """Controllable clock for services that take a clock callable."""

    now: datetime = START_TIME

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class FakeAnalysisClient(AnalysisClient):
    """Fake analysis collaborator that records calls."""

    result: AnalysisResult = field(
        default_factory=lambda: AnalysisResult(
            content="# Analysis\n\nA small test image.", tokens_used=120
        )
    )
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def analyze(
        self, *, model: str, prompt: str, image_data_urls: list[str]
    ) -> AnalysisResult:
        self.calls.append(
            {"model": model, "prompt": prompt, "image_data_urls": image_data_urls}
        )
        if self.error is not None:
            raise self.error
        return self.result


@dataclass
class FakeVideoClient(VideoClient):
    """Fake video collaborator whose next snapshot can be set by a test."""

    next_operation: VideoOperation | None = None
    started: list[dict[str, object]] = field(default_factory=list)
    refreshed: list[str] = field(default_factory=list)
    downloaded: list[str] = field(default_factory=list)

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
        self.started.append(
            {
                "model": model,
                "prompt": prompt,
                "negative_prompt": negative_prompt,
                "image": image,
                "aspect_ratio": aspect_ratio,
                "resolution": resolution,
            }
        )
        return VideoOperation(name="models/veo/operations/op-1", done=False)

    async def refresh(self, operation_name: str) -> VideoOperation:
        self.refreshed.append(operation_name)
        return self.next_operation or VideoOperation(name=operation_name, done=False)

    async def download(self, uri: str) -> bytes:
        self.downloaded.append(uri)
        return b"video-bytes"


def png_upload(name: str = "photo.png", size: int | None = None) -> UploadedFile:
    data = PNG_BYTES if size is None else b"\x00" * size
    return UploadedFile(filename=name, mime_type="image/png", data=data)


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="openai-key", google_api_key="google-key")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_service(clock: FakeClock) -> SessionService:
    return SessionService(repository=InMemorySessionRepository(), clock=clock)


@pytest.fixture
def image_repository() -> InMemoryImageRepository:
    return InMemoryImageRepository()


@pytest.fixture
def image_service(
    image_repository: InMemoryImageRepository,
    session_service: SessionService,
    clock: FakeClock,
) -> ImageService:
    return ImageService(
        repository=image_repository, session_service=session_service, clock=clock
    )


@pytest.fixture
def analysis_repository() -> InMemoryAnalysisRepository:
    return InMemoryAnalysisRepository()


@pytest.fixture
def video_repository() -> InMemoryVideoJobRepository:
    return InMemoryVideoJobRepository()


@pytest.fixture
def analysis_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture
def video_client() -> FakeVideoClient:
    return FakeVideoClient()


@pytest.fixture
def analysis_validator(
    session_service: SessionService, image_service: ImageService
) -> AnalysisRequestValidator:
    return AnalysisRequestValidator(
        session_service=session_service, image_lookup=image_service
    )


@pytest.fixture
def analysis_service(
    analysis_client: FakeAnalysisClient,
    analysis_repository: InMemoryAnalysisRepository,
    session_service: SessionService,
    clock: FakeClock,
) -> AnalysisService:
    return AnalysisService(
        client=analysis_client,
        repository=analysis_repository,
        session_service=session_service,
        model="gpt-test",
        clock=clock,
    )


@pytest.fixture
def history_service(
    analysis_repository: InMemoryAnalysisRepository, session_service: SessionService
) -> HistoryService:
    return HistoryService(
        repository=analysis_repository, session_service=session_service
    )


@pytest.fixture
def video_service(
    video_client: FakeVideoClient,
    video_repository: InMemoryVideoJobRepository,
    session_service: SessionService,
    image_service: ImageService,
    clock: FakeClock,
) -> VideoService:
    return VideoService(
        client=video_client,
        repository=video_repository,
        session_service=session_service,
        image_lookup=image_service,
        clock=clock,
    )


@pytest.fixture
def sweeper(
    session_service: SessionService,
    image_repository: InMemoryImageRepository,
    analysis_repository: InMemoryAnalysisRepository,
    video_repository: InMemoryVideoJobRepository,
) -> SessionSweeper:
    return SessionSweeper(
        session_service=session_service,
        image_repository=image_repository,
        analysis_repository=analysis_repository,
        video_repository=video_repository,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    session_service: SessionService,
    image_service: ImageService,
    analysis_validator: AnalysisRequestValidator,
    analysis_service: AnalysisService,
    history_service: HistoryService,
    video_service: VideoService,
    sweeper: SessionSweeper,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_service=session_service,
        image_service=image_service,
        analysis_validator=analysis_validator,
        analysis_service=analysis_service,
        history_service=history_service,
        video_service=video_service,
        sweeper=sweeper,
        close_resources=close_resources,
    )
