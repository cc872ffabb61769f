"""Veo video generation through the google-genai SDK."""

from dataclasses import dataclass

import httpx
from google import genai
from google.genai import types

from image_analyzer.domain.images import StoredImage
from image_analyzer.domain.video import VideoOperation
from image_analyzer.services.video import FILTERED_MESSAGE, VideoClient


@dataclass
class VeoVideoClient(VideoClient):
    """Video client that starts and polls Veo operations."""

    client: genai.Client
    api_key: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, api_key: str) -> "VeoVideoClient":
        """Create a Veo client with a managed httpx session for downloads."""
        return cls(
            client=genai.Client(api_key=api_key),
            api_key=api_key,
            http_client=httpx.AsyncClient(),
        )

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
        """Start a generation and return its first snapshot."""
        source_image = (
            types.Image(image_bytes=image.data, mime_type=image.mime_type)
            if image is not None
            else None
        )
        operation = await self.client.aio.models.generate_videos(
            model=model,
            prompt=prompt,
            image=source_image,
            config=types.GenerateVideosConfig(
                aspect_ratio=aspect_ratio,
                resolution=resolution,
                negative_prompt=negative_prompt,
                number_of_videos=1,
            ),
        )
        return _to_video_operation(operation)

    async def refresh(self, operation_name: str) -> VideoOperation:
        """Fetch the latest state of an operation by name."""
        operation = await self.client.aio.operations.get(
            types.GenerateVideosOperation(name=operation_name)
        )
        return _to_video_operation(operation)

    async def download(self, uri: str) -> bytes:
        """Download video bytes, authenticating with the API key header."""
        response = await self.http_client.get(
            uri,
            headers={"x-goog-api-key": self.api_key},
            follow_redirects=True,
            timeout=120,
        )
        response.raise_for_status()
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _to_video_operation(operation: types.GenerateVideosOperation) -> VideoOperation:
    """Map an SDK operation onto the service's snapshot type."""
    name = operation.name or ""
    if operation.error:
        message = operation.error.get("message") or "Video generation failed"
        return VideoOperation(name=name, done=True, error=str(message))
    if not operation.done:
        return VideoOperation(name=name, done=False)
    response = operation.response
    if response is not None and response.rai_media_filtered_count:
        reasons = response.rai_media_filtered_reasons or []
        return VideoOperation(
            name=name, done=True, error=", ".join(reasons) or FILTERED_MESSAGE
        )
    videos = (response.generated_videos if response is not None else None) or []
    video = videos[0].video if videos else None
    if video is None or not video.uri:
        return VideoOperation(name=name, done=True)
    return VideoOperation(
        name=name,
        done=True,
        video_uri=video.uri,
        mime_type=video.mime_type or "video/mp4",
    )
