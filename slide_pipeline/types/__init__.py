"""Data types for the slide insight pipeline."""

from __future__ import annotations

from .artifact import METADATA_FIELDS, ChunkResult, DocumentArtifact, SelectedSlide
from .interfaces import InferenceClient, MessageCallback, PageRenderer
from .page_range import PageRange
from .progress import ProgressEvent, ProgressStage, clamp_percent
from .rendering import (
    EncodedImage,
    HighQualityRenderOptions,
    HighQualityRenderResult,
    RenderFailure,
    RenderProfile,
    payload_size,
)

__all__ = [
    # Pages
    "PageRange",
    # Rendering
    "RenderProfile",
    "EncodedImage",
    "HighQualityRenderOptions",
    "HighQualityRenderResult",
    "RenderFailure",
    "payload_size",
    # Results
    "METADATA_FIELDS",
    "SelectedSlide",
    "ChunkResult",
    "DocumentArtifact",
    # Progress
    "ProgressStage",
    "ProgressEvent",
    "clamp_percent",
    # Interfaces
    "InferenceClient",
    "PageRenderer",
    "MessageCallback",
]
