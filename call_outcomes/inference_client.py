"""
Client for the local inference service.

Ollama exposes an OpenAI-compatible API under /v1, so the openai SDK is used
directly; the API key is required by the SDK but ignored by Ollama.
"""

import asyncio
import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
PLACEHOLDER_API_KEY = "ollama"


class InferenceClient:
    """Single request/response chat calls against one model."""

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = DEFAULT_TIMEOUT,
        api_key: str = PLACEHOLDER_API_KEY,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        # Retries are the caller's business: a failed call falls back instead
        self.client = client or AsyncOpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )

    @classmethod
    def from_settings(cls, settings) -> "InferenceClient":
        return cls(
            base_url=settings.inference_base_url,
            model=settings.inference_model,
            timeout=settings.inference_timeout,
        )

    async def chat(self, messages: list[dict], options: Optional[dict] = None) -> str:
        """
        Send one chat request and return the assistant's text.

        Args:
            messages: OpenAI-style [{"role": ..., "content": ...}]
            options: Sampling parameters (temperature, top_p, max_tokens)

        Raises:
            asyncio.TimeoutError: If no answer arrives within the timeout
            openai.OpenAIError: Connection, HTTP or protocol failures
        """
        options = options or {}
        response = await asyncio.wait_for(
            self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                **options,
            ),
            timeout=self.timeout,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def check_health(self) -> dict:
        """
        Report whether the service is reachable and the model is pulled.

        Returns:
            {"status": "healthy" | "model_not_found" | "unhealthy", "model": str,
             "error": str (when not healthy)}
        """
        try:
            listing = await asyncio.wait_for(self.client.models.list(), timeout=self.timeout)
        except (OpenAIError, asyncio.TimeoutError) as e:
            logger.error(f"Inference service not reachable at {self.base_url}: {e!r}")
            return {"status": "unhealthy", "model": self.model, "error": repr(e)}

        available = [model.id for model in listing.data]
        if not any(name == self.model or name.startswith(f"{self.model}:") for name in available):
            return {
                "status": "model_not_found",
                "model": self.model,
                "error": f"Model '{self.model}' not found. Available: {', '.join(available) or 'none'}",
            }

        return {"status": "healthy", "model": self.model}
