"""
Vision Service Client.

This module talks to the multimodal model that reads lab report images.
Any object with an async complete(content, mime_type, prompt) method
can act as the vision service; OpenAIVisionService is the default.
"""

import base64
import os
from typing import Optional, Protocol

import openai
from openai import AsyncOpenAI

from config import get_config
from agrilab.utils.exceptions import ServiceUnavailableError
from agrilab.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

VISION_TIER = "vision"


class VisionService(Protocol):
    """Anything that can answer a prompt about one image."""

    async def complete(self, content: bytes, mime_type: str, prompt: str) -> str:
        ...


def build_data_url(content: bytes, mime_type: str) -> str:
    """
    Encode bytes as a base64 data URL.

    Example:
        >>> build_data_url(b"abc", "image/png")
        'data:image/png;base64,YWJj'
    """
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class OpenAIVisionService:
    """
    Vision service backed by the OpenAI chat completions API.

    The client is created on first use. Requests are never retried;
    a failed call is reported to the caller as ServiceUnavailableError.

    Attributes:
        model: Model name (e.g., "gpt-4o")
        max_tokens: Upper bound on the reply length
        temperature: Sampling temperature

    Example:
        >>> service = OpenAIVisionService()
        >>> reply = await service.complete(png_bytes, "image/png", prompt)
    """

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None
    ) -> None:
        """
        Initialize the service.

        Args:
            model: Model name. Defaults to vision.model.
            api_key: API key. Defaults to the environment variable named
                    by vision.api_key_env.
            base_url: Optional API base URL. Defaults to vision.base_url.
            client: Pre-built AsyncOpenAI client.
        """
        self.model = model or get_config("vision.model", "gpt-4o")
        self.api_key = api_key or os.environ.get(get_config("vision.api_key_env", "OPENAI_API_KEY"))
        self.base_url = base_url or get_config("vision.base_url")
        self.max_tokens = get_config("vision.max_tokens", 4000)
        self.temperature = get_config("vision.temperature", 0.0)
        self._client = client

        logger.debug(f"OpenAIVisionService initialized (model={self.model})")

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ServiceUnavailableError(VISION_TIER, "OpenAI API key not configured")
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0
            )
        return self._client

    async def complete(self, content: bytes, mime_type: str, prompt: str) -> str:
        """
        Send one image and a prompt, return the reply text.

        Args:
            content: Image bytes.
            mime_type: MIME type of the image.
            prompt: Instruction text.

        Returns:
            Reply text; empty when the model returned nothing.

        Raises:
            ServiceUnavailableError: On missing credentials, network,
                timeout or API errors.
        """
        client = self._get_client()
        message = [
            {"type": "text", "text": prompt},
            {
                "type": "image_url",
                "image_url": {
                    "url": build_data_url(content, mime_type),
                    "detail": "high"
                }
            },
        ]

        logger.info(f"Calling {self.model} vision ({mime_type}, {len(content)} bytes)")
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": message}],
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )
        except openai.APITimeoutError as e:
            raise ServiceUnavailableError(VISION_TIER, f"request timed out: {e}") from e
        except openai.APIConnectionError as e:
            raise ServiceUnavailableError(VISION_TIER, f"connection failed: {e}") from e
        except openai.APIError as e:
            raise ServiceUnavailableError(VISION_TIER, f"API error: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
