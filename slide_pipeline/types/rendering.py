"""Rendering data types: fidelity profiles and encoded page images."""

from __future__ import annotations

import base64
from collections.abc import Callable
from dataclasses import dataclass, field

from slide_pipeline.constants import (
    HIGH_QUALITY_JPEG_QUALITY,
    HIGH_QUALITY_PNG_MAX_BYTES,
    HIGH_QUALITY_SCALE,
)


@dataclass(frozen=True)
class RenderProfile:
    """Resolution/compression tier for converting pages to images.

    Attributes:
        scale: Zoom factor applied to the page (1.0 = 72 DPI)
        compression_quality: JPEG quality in (0, 1]
    """

    scale: float
    compression_quality: float

    @property
    def jpeg_quality(self) -> int:
        """Quality on Pillow's 1-100 scale."""
        return max(1, min(100, round(self.compression_quality * 100)))


@dataclass(frozen=True)
class EncodedImage:
    """One rendered page, encoded for transport.

    Attributes:
        page_number: Absolute 1-indexed page number in the document
        data: Encoded image bytes
        mime_type: ``image/jpeg`` or ``image/png``
    """

    page_number: int
    data: bytes
    mime_type: str = "image/jpeg"

    @property
    def encoded_size(self) -> int:
        """Length of the base64 text that goes over the wire."""
        return 4 * ((len(self.data) + 2) // 3)

    @property
    def extension(self) -> str:
        return "png" if self.mime_type == "image/png" else "jpg"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


def payload_size(images: list[EncodedImage]) -> int:
    """Summed transport size of a list of images."""
    return sum(image.encoded_size for image in images)


HighQualityProgressCallback = Callable[[int, int, int], None]
"""Called as ``(current, total, page_number)`` before each page is rendered."""


@dataclass
class HighQualityRenderOptions:
    """Options for the final high-fidelity render of selected pages."""

    scale: float = HIGH_QUALITY_SCALE
    png_max_bytes: int = HIGH_QUALITY_PNG_MAX_BYTES
    jpeg_quality: int = HIGH_QUALITY_JPEG_QUALITY
    on_progress: HighQualityProgressCallback | None = None


@dataclass(frozen=True)
class RenderFailure:
    """A page that could not be rendered in high quality."""

    page_number: int
    reason: str


@dataclass
class HighQualityRenderResult:
    """Outcome of rendering selected pages at high fidelity.

    Attributes:
        images_by_page: Successfully rendered images keyed by page number
        failed_pages: Pages that could not be rendered, with reasons
        downgraded_pages: Pages whose PNG was oversized and re-encoded as JPEG
    """

    images_by_page: dict[int, EncodedImage] = field(default_factory=dict)
    failed_pages: list[RenderFailure] = field(default_factory=list)
    downgraded_pages: list[int] = field(default_factory=list)
