"""Provider/model resolution and inference client creation.

Client modules import their SDKs at module level, so they are loaded lazily
here; configuration validation only needs the resolution helpers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from slide_pipeline.constants import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_OPENROUTER_MODEL,
    GEMINI_MODELS,
    GEMINI_PROVIDER,
    OPENROUTER_MODELS,
    OPENROUTER_PROVIDER,
)
from slide_pipeline.exceptions import InvalidConfigError

if TYPE_CHECKING:
    from slide_pipeline.inference.base import BaseInferenceClient

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS: tuple[str, ...] = (GEMINI_PROVIDER, OPENROUTER_PROVIDER)

_DEFAULT_MODELS = {GEMINI_PROVIDER: DEFAULT_GEMINI_MODEL, OPENROUTER_PROVIDER: DEFAULT_OPENROUTER_MODEL}
_ALLOWED_MODELS = {GEMINI_PROVIDER: GEMINI_MODELS, OPENROUTER_PROVIDER: OPENROUTER_MODELS}


def parse_provider(value: str | None, default: str = GEMINI_PROVIDER) -> str:
    """Normalize a provider name; returns "" for unknown providers.

    Example:
        >>> parse_provider(" OpenRouter ")
        'openrouter'
        >>> parse_provider(None)
        'gemini'
    """
    if value is None:
        return default
    normalized = value.strip().lower()
    return normalized if normalized in SUPPORTED_PROVIDERS else ""


def resolve_model(provider: str, model: str | None) -> str:
    """Return ``model`` stripped, or the provider default when empty."""
    if model and model.strip():
        return model.strip()
    return _DEFAULT_MODELS.get(provider, DEFAULT_GEMINI_MODEL)


def is_allowed_model(provider: str, model: str) -> bool:
    return model in _ALLOWED_MODELS.get(provider, frozenset())


def create_inference_client(
    provider: str | None = None,
    model: str | None = None,
    api_key: str | None = None,
) -> BaseInferenceClient:
    """Create the inference client for a provider/model pair.

    Raises:
        InvalidConfigError: Unknown provider or model outside the allow-list
    """
    resolved_provider = parse_provider(provider)
    if not resolved_provider:
        raise InvalidConfigError(f"Unknown provider: {provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}")

    resolved_model = resolve_model(resolved_provider, model)
    if not is_allowed_model(resolved_provider, resolved_model):
        allowed = ", ".join(sorted(_ALLOWED_MODELS[resolved_provider]))
        raise InvalidConfigError(f"Model '{resolved_model}' is not available for {resolved_provider}. Allowed: {allowed}")

    logger.info("Creating %s inference client (model=%s)", resolved_provider, resolved_model)
    if resolved_provider == OPENROUTER_PROVIDER:
        from slide_pipeline.inference.openrouter import OpenRouterInferenceClient

        return OpenRouterInferenceClient(model=resolved_model, api_key=api_key)

    from slide_pipeline.inference.gemini import GeminiInferenceClient

    return GeminiInferenceClient(model=resolved_model, api_key=api_key)
