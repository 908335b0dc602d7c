"""Async OpenRouter client for slide selection (OpenAI-compatible API)."""

from __future__ import annotations

import logging
import os
from typing import Any

import openai
from openai import AsyncOpenAI

from slide_pipeline.constants import DEFAULT_OPENROUTER_MODEL, OPENROUTER_BASE_URL, OPENROUTER_PROVIDER
from slide_pipeline.exceptions import RateLimitedError, TransientInferenceError
from slide_pipeline.inference.base import BaseInferenceClient, error_from_status, rate_limit_message
from slide_pipeline.retry import extract_retry_after_seconds
from slide_pipeline.types import EncodedImage

logger = logging.getLogger(__name__)


def _retry_after_header(error: openai.APIStatusError) -> float | None:
    headers = getattr(error.response, "headers", None) or {}
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class OpenRouterInferenceClient(BaseInferenceClient):
    """OpenRouter client using ``AsyncOpenAI`` with images sent as data URLs."""

    PROVIDER_NAME = OPENROUTER_PROVIDER
    PROVIDER_LABEL = "OpenRouter"
    DEFAULT_MODEL = DEFAULT_OPENROUTER_MODEL

    def __init__(self, model: str | None = None, api_key: str | None = None, base_url: str | None = None):
        self.base_url = base_url or os.environ.get("OPENROUTER_BASE_URL") or OPENROUTER_BASE_URL
        super().__init__(model=model, api_key=api_key or os.environ.get("OPENROUTER_API_KEY"))

    def _setup_client(self) -> AsyncOpenAI | None:
        if not self.api_key:
            logger.warning("OpenRouter API key not found (model=%s, base_url=%s)", self.model, self.base_url)
            return None
        client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        logger.debug("AsyncOpenAI client initialized (model=%s, base_url=%s)", self.model, self.base_url)
        return client

    def _build_messages(self, prompt: str, images: list[EncodedImage]) -> list[dict[str, Any]]:
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        content.extend({"type": "image_url", "image_url": {"url": image.to_data_url()}} for image in images)
        return [{"role": "user", "content": content}]

    async def _generate(self, prompt: str, images: list[EncodedImage]) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self._build_messages(prompt, images),
                response_format={"type": "json_object"},
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.RateLimitError as e:
            logger.error("OpenRouter rate limit exceeded: %s", e)
            retry_after = _retry_after_header(e) or extract_retry_after_seconds(str(e))
            raise RateLimitedError(rate_limit_message(self.PROVIDER_LABEL, retry_after), retry_after) from e
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            logger.error("OpenRouter connection error: %s", e)
            raise TransientInferenceError(f"OpenRouter network error: {e}") from e
        except openai.APIStatusError as e:
            logger.error("OpenRouter API error (status=%s): %s", e.status_code, e)
            raise error_from_status(self.PROVIDER_LABEL, e.status_code, str(e)) from e
        except openai.APIError as e:
            logger.error("OpenRouter API error: %s", e)
            raise error_from_status(self.PROVIDER_LABEL, None, str(e)) from e

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()
