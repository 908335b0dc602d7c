"""Async Google Gemini client for slide selection."""

from __future__ import annotations

import logging
import os
from typing import Any

from google import genai
from google.api_core import exceptions as google_exceptions
from google.genai import errors as genai_errors
from google.genai import types

from slide_pipeline.constants import DEFAULT_GEMINI_MODEL, GEMINI_PROVIDER
from slide_pipeline.exceptions import RateLimitedError, TransientInferenceError
from slide_pipeline.inference.base import BaseInferenceClient, error_from_status, rate_limit_message
from slide_pipeline.inference.prompts import RESPONSE_SCHEMA
from slide_pipeline.retry import extract_retry_after_seconds
from slide_pipeline.types import EncodedImage

logger = logging.getLogger(__name__)


class GeminiInferenceClient(BaseInferenceClient):
    """Gemini client using google-genai's async surface with a JSON response schema.

    Example:
        >>> client = GeminiInferenceClient("gemini-2.5-flash")
        >>> result = await client.analyze(images, page_offset=0, page_range=PageRange(1, 12))
    """

    PROVIDER_NAME = GEMINI_PROVIDER
    PROVIDER_LABEL = "Gemini"
    DEFAULT_MODEL = DEFAULT_GEMINI_MODEL

    def __init__(self, model: str | None = None, api_key: str | None = None):
        super().__init__(model=model, api_key=api_key or os.environ.get("GEMINI_API_KEY"))

    def _setup_client(self) -> genai.Client | None:
        if not self.api_key:
            logger.warning("GEMINI_API_KEY environment variable not set")
            return None
        try:
            client = genai.Client(api_key=self.api_key)
        except (TypeError, ValueError) as e:
            logger.error("Failed to initialize Gemini client with invalid configuration: %s", e)
            return None
        logger.debug("Gemini client initialized (model=%s)", self.model)
        return client

    def _build_contents(self, prompt: str, images: list[EncodedImage]) -> list[Any]:
        parts = [types.Part.from_text(text=prompt)]
        parts.extend(types.Part.from_bytes(data=image.data, mime_type=image.mime_type) for image in images)
        return [types.Content(role="user", parts=parts)]

    async def _generate(self, prompt: str, images: list[EncodedImage]) -> str:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=RESPONSE_SCHEMA,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=self._build_contents(prompt, images),
                config=config,
            )
        except genai_errors.APIError as e:
            logger.error("Gemini API error (code=%s): %s", e.code, e)
            raise error_from_status(self.PROVIDER_LABEL, e.code, str(e)) from e
        except google_exceptions.ResourceExhausted as e:
            # 429 RESOURCE_EXHAUSTED
            logger.error("Gemini rate limit exceeded: %s", e)
            retry_after = extract_retry_after_seconds(str(e))
            raise RateLimitedError(rate_limit_message(self.PROVIDER_LABEL, retry_after), retry_after) from e
        except google_exceptions.RetryError as e:
            logger.error("Gemini retry error: %s", e)
            raise TransientInferenceError(f"Gemini request timed out: {e}") from e
        except google_exceptions.GoogleAPIError as e:
            logger.error("Gemini API error: %s", e)
            raise error_from_status(self.PROVIDER_LABEL, getattr(e, "code", None), str(e)) from e

        return (response.text or "").strip()
