"""Generation gateway: text completions and image generation."""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx
import openai

from intellichat.config import Settings
from intellichat.errors import GenerationFailed
from intellichat.logging import get_logger


logger = get_logger(__name__)


@dataclass
class GeneratedImage:
    """Raw image produced by the provider, not yet hosted by us."""
    data: bytes
    content_type: str = "image/png"
    source_url: Optional[str] = None


class GenerationGateway(ABC):
    """Abstract base class for text and image generation."""

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        """Return the assistant reply for a prompt."""
        pass

    @abstractmethod
    async def generate_image(self, prompt: str) -> GeneratedImage:
        """Return a generated image for a prompt."""
        pass


class GeminiImageKitGateway(GenerationGateway):
    """Gemini (OpenAI-compatible API) for text, ImageKit AI transforms for images."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        imagekit_url_endpoint: str,
        image_folder: str = "intellichat",
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self.model = model
        self.imagekit_url_endpoint = imagekit_url_endpoint.rstrip("/")
        self.image_folder = image_folder
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def generate_text(self, prompt: str) -> str:
        """Process a prompt through the chat completions API."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "user", "content": prompt}
                ]
            )
        except openai.APIError as e:
            logger.warning("text_generation_failed", model=self.model, error=str(e))
            raise GenerationFailed(f"Generation failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationFailed("Generation returned no content")
        return content

    def image_url(self, prompt: str, timestamp_ms: Optional[int] = None) -> str:
        """Build the ImageKit URL that renders an image for ``prompt``."""
        timestamp_ms = timestamp_ms or int(time.time() * 1000)
        encoded_prompt = quote(prompt, safe="")
        return (
            f"{self.imagekit_url_endpoint}/ik-genimg-prompt-{encoded_prompt}"
            f"/{self.image_folder}/{timestamp_ms}.png?tr=w-800,h-800"
        )

    async def generate_image(self, prompt: str) -> GeneratedImage:
        """Fetch a freshly generated image for the prompt."""
        url = self.image_url(prompt)
        try:
            response = await self._http.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("image_generation_failed", error=str(e))
            raise GenerationFailed(f"Image generation failed: {e}") from e

        return GeneratedImage(
            data=response.content,
            content_type=response.headers.get("content-type", "image/png"),
            source_url=url,
        )


def create_generation_gateway(settings: Settings) -> GenerationGateway:
    """Factory function to create the configured generation gateway."""
    return GeminiImageKitGateway(
        api_key=settings.gemini_api_key,
        base_url=settings.generation_base_url,
        model=settings.text_model,
        imagekit_url_endpoint=settings.imagekit_url_endpoint,
        image_folder=settings.image_folder,
        timeout=settings.gateway_timeout_seconds,
    )
