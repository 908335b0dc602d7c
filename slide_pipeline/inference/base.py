"""Base class for slide-selection inference clients.

Subclasses talk to one provider SDK and translate its exceptions into the
typed ``InferenceError`` variants. Prompt construction, response parsing and
page mapping are shared here.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import yaml

from slide_pipeline.constants import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from slide_pipeline.exceptions import (
    FatalInferenceError,
    GeoBlockedError,
    InferenceError,
    MissingConfigError,
    RateLimitedError,
    SchemaIncompatibleError,
    TransientInferenceError,
)
from slide_pipeline.inference.parsing import SCHEMA_FAILURE_MESSAGE, build_chunk_result, parse_json_payload
from slide_pipeline.inference.prompts import build_prompt
from slide_pipeline.retry import FailureKind, classify_message, extract_retry_after_seconds
from slide_pipeline.types import ChunkResult, EncodedImage, PageRange

logger = logging.getLogger(__name__)

API_CONFIG_PATH = Path("settings") / "api_config.yaml"


def rate_limit_message(provider_label: str, retry_after_seconds: float | None) -> str:
    if retry_after_seconds:
        return (
            f"{provider_label} quota/rate limit reached. "
            f"Retry in about {max(1, math.ceil(retry_after_seconds))}s."
        )
    return f"{provider_label} quota/rate limit reached. Please retry shortly."


def geo_block_message(provider_label: str) -> str:
    return (
        f"{provider_label} is temporarily blocked by provider location policy for this environment. "
        "Stop now and retry later."
    )


def error_from_status(provider_label: str, status: int | None, message: str) -> InferenceError:
    """Build a typed error from an HTTP status and the provider's message.

    The status decides wherever it is known. Geo-blocking has no status of
    its own (providers answer 400/403), so it is recognized from the text.
    """
    failure = classify_message(message)

    if failure.kind is FailureKind.GEO_BLOCKED:
        return GeoBlockedError(geo_block_message(provider_label))
    if status == 429 or (status is None and failure.kind is FailureKind.RATE_LIMITED):
        retry_after = extract_retry_after_seconds(message)
        return RateLimitedError(rate_limit_message(provider_label, retry_after), retry_after)
    if status is not None and (status >= 500 or status == 408):
        return TransientInferenceError(f"{provider_label} request failed upstream (status {status}): {message}")
    if failure.kind is FailureKind.SCHEMA_INCOMPATIBLE:
        return SchemaIncompatibleError(f"{SCHEMA_FAILURE_MESSAGE} ({message})")
    if failure.kind is FailureKind.TRANSIENT and (status is None or "unable to process input image" in message.lower()):
        return TransientInferenceError(message)
    return FatalInferenceError(f"Presentation analysis failed: {message}")


class BaseInferenceClient(ABC):
    """Abstract base class for slide-selection clients.

    Attributes:
        model: Model identifier
        provider: Provider identifier
        temperature: Sampling temperature
        max_tokens: Output token limit
        client: Underlying SDK client, or None when not configured
    """

    PROVIDER_NAME: str = "base"
    PROVIDER_LABEL: str = "AI service"
    DEFAULT_MODEL: str = "default"

    def __init__(self, model: str | None = None, api_key: str | None = None):
        self.model = model or self.DEFAULT_MODEL
        self.api_key = api_key
        self.temperature: float = DEFAULT_TEMPERATURE
        self.max_tokens: int = DEFAULT_MAX_TOKENS
        self._load_api_config()
        self.client: Any = self._setup_client()

    @property
    def provider(self) -> str:
        return self.PROVIDER_NAME

    def _load_api_config(self) -> None:
        """Load sampling settings for this provider from settings/api_config.yaml."""
        try:
            if not API_CONFIG_PATH.exists():
                logger.debug("API config file not found, using defaults")
                return
            with open(API_CONFIG_PATH, encoding="utf-8") as f:
                api_config = yaml.safe_load(f) or {}
            provider_config = api_config.get(self.PROVIDER_NAME, {}) or {}
            self.temperature = float(provider_config.get("temperature", self.temperature))
            self.max_tokens = int(provider_config.get("max_tokens", self.max_tokens))
            logger.debug("Loaded %s API config from %s", self.PROVIDER_NAME, API_CONFIG_PATH)
        except (yaml.YAMLError, OSError, AttributeError, TypeError, ValueError) as e:
            logger.warning("Failed to load %s API config: %s. Using defaults.", self.PROVIDER_NAME, e)

    @abstractmethod
    def _setup_client(self) -> Any:
        """Set up and return the SDK client, or None if it cannot be configured."""
        ...

    def is_available(self) -> bool:
        return self.client is not None

    @abstractmethod
    async def _generate(self, prompt: str, images: list[EncodedImage]) -> str:
        """Send one request and return the raw response text.

        Raises:
            InferenceError: Typed failure translated from the SDK exception
        """
        ...

    async def analyze(
        self,
        images: list[EncodedImage],
        page_offset: int,
        page_range: PageRange,
    ) -> ChunkResult:
        """Select insight slides from one chunk of page images."""
        if not images:
            raise ValueError("No presentation pages found to analyze.")
        if not self.is_available():
            raise MissingConfigError(f"{self.PROVIDER_LABEL} client is not configured (missing API key).")

        prompt = build_prompt(len(images), page_range.start_page, page_range.end_page)
        logger.debug(
            "Requesting %s slide selection (model=%s, pages=%s, images=%d)",
            self.PROVIDER_NAME,
            self.model,
            page_range,
            len(images),
        )
        text = await self._generate(prompt, images)
        payload = parse_json_payload(text)
        return build_chunk_result(payload, images, page_offset, page_range)
