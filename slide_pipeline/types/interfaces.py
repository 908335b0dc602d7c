"""Interfaces for the external collaborators of the pipeline.

This module defines Protocol interfaces for:
- InferenceClient: multimodal slide-selection service
- PageRenderer: PDF page-to-image conversion
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from slide_pipeline.conversion.pdf import PdfDocument

    from .artifact import ChunkResult
    from .page_range import PageRange
    from .rendering import EncodedImage, HighQualityRenderOptions, HighQualityRenderResult, RenderProfile

MessageCallback = Callable[[str], None]
"""Receives free-text status messages from rendering and inference."""


@runtime_checkable
class InferenceClient(Protocol):
    """Slide-selection inference interface.

    Attributes:
        provider: Provider identifier ("gemini", "openrouter")
        model: Model identifier

    Example:
        >>> client = create_inference_client("gemini", "gemini-2.5-flash")
        >>> result = await client.analyze(images, page_offset=12, page_range=PageRange(13, 20))
    """

    provider: str
    model: str

    async def analyze(
        self,
        images: list[EncodedImage],
        page_offset: int,
        page_range: PageRange,
    ) -> ChunkResult:
        """Select insight slides from one chunk of page images.

        Args:
            images: Rendered pages of the chunk, in page order
            page_offset: Zero-based offset added to chunk-relative page numbers
            page_range: Absolute range the images were rendered from

        Returns:
            ChunkResult with absolute page numbers

        Raises:
            InferenceError: Typed failure (rate limit, transient, geo-block, ...)
        """
        ...


@runtime_checkable
class PageRenderer(Protocol):
    """Page rendering interface."""

    async def render_pages(
        self,
        document: PdfDocument,
        page_range: PageRange,
        profile: RenderProfile,
        on_message: MessageCallback | None = None,
    ) -> list[EncodedImage]:
        """Render every page of ``page_range`` at ``profile``."""
        ...

    async def render_pages_high_quality(
        self,
        document: PdfDocument,
        pages: list[int],
        options: HighQualityRenderOptions,
    ) -> HighQualityRenderResult:
        """Render selected pages at high fidelity, recording failures per page."""
        ...
