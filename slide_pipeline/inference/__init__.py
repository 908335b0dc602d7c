"""Inference clients for slide selection.

Provider SDKs are imported only when a client is created.
"""

from __future__ import annotations

from .factory import (
    SUPPORTED_PROVIDERS,
    create_inference_client,
    is_allowed_model,
    parse_provider,
    resolve_model,
)

__all__ = [
    "SUPPORTED_PROVIDERS",
    "create_inference_client",
    "is_allowed_model",
    "parse_provider",
    "resolve_model",
]
