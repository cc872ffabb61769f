"""OpenAI Responses API client for prompt and image analysis."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from image_analyzer.domain.analysis import AnalysisResult, GeneratedImage
from image_analyzer.services.analysis import AnalysisClient


@dataclass
class OpenAIAnalysisClient(AnalysisClient):
    """Analysis client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    image_generation: bool = False

    @classmethod
    def create(
        cls, api_key: str, *, timeout: float, image_generation: bool = False
    ) -> "OpenAIAnalysisClient":
        """Create an OpenAI analysis client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, timeout=timeout),
            image_generation=image_generation,
        )

    async def analyze(
        self, *, model: str, prompt: str, image_data_urls: list[str]
    ) -> AnalysisResult:
        """Send the prompt and images and collect text, usage and images."""
        content: list[dict[str, str]] = [{"type": "input_text", "text": prompt}]
        content.extend(
            {"type": "input_image", "image_url": data_url}
            for data_url in image_data_urls
        )
        request_payload: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": content}],
        }
        if self.image_generation:
            request_payload["tools"] = [{"type": "image_generation"}]

        response = await self.client.responses.create(**request_payload)
        generated_images = [
            GeneratedImage(mime_type="image/png", data=item.result)
            for item in response.output or []
            if getattr(item, "type", None) == "image_generation_call" and item.result
        ]
        output_text = response.output_text or ""
        if not output_text and not generated_images:
            raise RuntimeError("OpenAI returned an empty response")
        usage = getattr(response, "usage", None)
        return AnalysisResult(
            content=output_text,
            format="markdown",
            tokens_used=getattr(usage, "total_tokens", None),
            generated_images=generated_images,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
