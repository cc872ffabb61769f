"""Tests for SDK and HTTP adapters."""

import asyncio
from types import SimpleNamespace

import httpx

from image_analyzer.adapters.openai_analysis_client import OpenAIAnalysisClient
from image_analyzer.adapters.veo_video_client import VeoVideoClient
from image_analyzer.domain.analysis import GeneratedImage
from image_analyzer.services.video import FILTERED_MESSAGE


class _FakeResponses:
    def __init__(self, response: object) -> None:
        self.response = response
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return self.response


class _FakeOpenAI:
    def __init__(self, response: object) -> None:
        self.responses = _FakeResponses(response)


def _openai_response(**overrides: object) -> SimpleNamespace:
    fields = {
        "output_text": "## Result\n\nA cat.",
        "output": [],
        "usage": SimpleNamespace(total_tokens=42),
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_openai_analysis_client_sends_prompt_and_images() -> None:
    fake = _FakeOpenAI(_openai_response())
    client = OpenAIAnalysisClient(client=fake)

    result = asyncio.run(
        client.analyze(
            model="gpt-4.1-mini",
            prompt="Describe",
            image_data_urls=["data:image/png;base64,ZmFrZQ=="],
        )
    )

    assert result.content == "## Result\n\nA cat."
    assert result.format == "markdown"
    assert result.tokens_used == 42
    assert result.generated_images == []
    assert fake.responses.last_payload == {
        "model": "gpt-4.1-mini",
        "input": [
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": "Describe"},
                    {
                        "type": "input_image",
                        "image_url": "data:image/png;base64,ZmFrZQ==",
                    },
                ],
            }
        ],
    }


def test_openai_analysis_client_collects_generated_images() -> None:
    output = [
        SimpleNamespace(type="message"),
        SimpleNamespace(type="image_generation_call", result="aW1hZ2U="),
    ]
    fake = _FakeOpenAI(_openai_response(output_text="", output=output))
    client = OpenAIAnalysisClient(client=fake, image_generation=True)

    result = asyncio.run(
        client.analyze(model="gpt-4.1-mini", prompt="Draw a cat", image_data_urls=[])
    )

    assert result.generated_images == [
        GeneratedImage(mime_type="image/png", data="aW1hZ2U=")
    ]
    assert fake.responses.last_payload["tools"] == [{"type": "image_generation"}]


class _FakeGenaiModels:
    def __init__(self) -> None:
        self.last_kwargs: dict[str, object] | None = None

    async def generate_videos(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_kwargs = kwargs
        return SimpleNamespace(
            name="models/veo/operations/op-1", done=False, error=None, response=None
        )


class _FakeGenaiOperations:
    def __init__(self, operation: object) -> None:
        self.operation = operation
        self.requested: list[str] = []

    async def get(self, operation):  # type: ignore[no-untyped-def]
        self.requested.append(operation.name)
        return self.operation


class _FakeGenai:
    def __init__(self, operation: object | None = None) -> None:
        self.aio = SimpleNamespace(
            models=_FakeGenaiModels(), operations=_FakeGenaiOperations(operation)
        )


def _veo(genai_client: _FakeGenai, http_client: httpx.AsyncClient | None = None):
    return VeoVideoClient(
        client=genai_client,
        api_key="google-key",
        http_client=http_client or httpx.AsyncClient(),
    )


def _done_operation(**response_fields: object) -> SimpleNamespace:
    fields = {
        "generated_videos": [],
        "rai_media_filtered_count": None,
        "rai_media_filtered_reasons": None,
    }
    fields.update(response_fields)
    return SimpleNamespace(
        name="models/veo/operations/op-1",
        done=True,
        error=None,
        response=SimpleNamespace(**fields),
    )


def test_veo_client_starts_generation() -> None:
    genai_client = _FakeGenai()
    client = _veo(genai_client)

    operation = asyncio.run(
        client.start(
            model="veo-3.0-generate-001",
            prompt="A cat surfing",
            negative_prompt=None,
            image=None,
            aspect_ratio="16:9",
            resolution="720p",
        )
    )

    assert operation.name == "models/veo/operations/op-1"
    assert operation.done is False
    kwargs = genai_client.aio.models.last_kwargs
    assert kwargs["model"] == "veo-3.0-generate-001"
    assert kwargs["image"] is None
    assert kwargs["config"].aspect_ratio == "16:9"


def test_veo_client_refresh_maps_finished_video() -> None:
    video = SimpleNamespace(uri="https://example.test/v.mp4", mime_type="video/mp4")
    genai_client = _FakeGenai(
        _done_operation(generated_videos=[SimpleNamespace(video=video)])
    )

    operation = asyncio.run(_veo(genai_client).refresh("models/veo/operations/op-1"))

    assert operation.done is True
    assert operation.video_uri == "https://example.test/v.mp4"
    assert operation.mime_type == "video/mp4"
    assert genai_client.aio.operations.requested == ["models/veo/operations/op-1"]


def test_veo_client_refresh_maps_filtered_and_failed_operations() -> None:
    filtered = asyncio.run(
        _veo(
            _FakeGenai(
                _done_operation(
                    rai_media_filtered_count=1,
                    rai_media_filtered_reasons=["Unsafe content"],
                )
            )
        ).refresh("op")
    )
    unexplained = asyncio.run(
        _veo(_FakeGenai(_done_operation(rai_media_filtered_count=1))).refresh("op")
    )
    failed = asyncio.run(
        _veo(
            _FakeGenai(
                SimpleNamespace(
                    name="op", done=True, error={"message": "quota"}, response=None
                )
            )
        ).refresh("op")
    )

    assert filtered.error == "Unsafe content"
    assert unexplained.error == FILTERED_MESSAGE
    assert failed.error == "quota"


def test_veo_client_download_uses_api_key_header() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["x-goog-api-key"] == "google-key"
        assert "key=" not in str(request.url)
        return httpx.Response(200, content=b"mp4-bytes")

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = _veo(_FakeGenai(), http_client)

    data = asyncio.run(client.download("https://example.test/files/v:download"))

    assert data == b"mp4-bytes"
    asyncio.run(client.close())
