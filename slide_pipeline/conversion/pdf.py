"""PDF document handling and page rendering.

Pages are rasterized with PyMuPDF and encoded with Pillow. Rasterization is
CPU-bound, so each page is rendered in a worker thread; pages are still
awaited one at a time.
"""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import fitz  # type: ignore[import-untyped]
from PIL import Image

from slide_pipeline.constants import MAX_DOCUMENT_BYTES, MAX_PAGES_PER_REQUEST
from slide_pipeline.exceptions import FileFormatError, FileLoadError, RenderingError
from slide_pipeline.types import (
    EncodedImage,
    HighQualityRenderOptions,
    HighQualityRenderResult,
    MessageCallback,
    PageRange,
    RenderFailure,
    RenderProfile,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PdfDocument:
    """Handle to a presentation PDF on disk.

    Attributes:
        path: Location of the PDF
        size_bytes: File size, used for chunk planning
        page_count: Number of pages
    """

    path: Path
    size_bytes: int
    page_count: int

    @property
    def name(self) -> str:
        return self.path.name

    def is_available(self) -> bool:
        return self.path.exists()


def is_pdf_path(path: Path) -> bool:
    return path.suffix.lower() == ".pdf"


@contextmanager
def open_pdf_document(pdf_path: str | Path) -> Iterator[Any]:
    """Context manager for a PyMuPDF document.

    Raises:
        FileNotFoundError: If the PDF does not exist
        FileLoadError: If PyMuPDF cannot open it (corrupt, password protected)
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    try:
        doc = fitz.open(str(pdf_path))
    except Exception as e:
        raise FileLoadError(f"Failed to open PDF {pdf_path.name}: {e}") from e

    try:
        if doc.needs_pass:
            raise FileLoadError("Password protected PDFs are not supported.")
        logger.debug("Opened PDF document: %s (pages: %d)", pdf_path.name, doc.page_count)
        yield doc
    finally:
        doc.close()


def open_document(path: str | Path, max_bytes: int = MAX_DOCUMENT_BYTES) -> PdfDocument:
    """Validate a presentation and read its page count.

    Raises:
        FileFormatError: If the file is not a PDF
        FileLoadError: If the file is missing, too large, unreadable or empty
    """
    path = Path(path)
    if not is_pdf_path(path):
        raise FileFormatError("Only PDF files are supported for presentations.")
    if not path.exists():
        raise FileLoadError(f"PDF file not found: {path}")

    size_bytes = path.stat().st_size
    if size_bytes > max_bytes:
        raise FileLoadError(f"Presentation PDF is too large (max {max_bytes // (1024 * 1024)}MB).")

    try:
        with open_pdf_document(path) as doc:
            page_count = doc.page_count
    except FileNotFoundError as e:
        raise FileLoadError(str(e)) from e

    if page_count < 1:
        raise FileLoadError(f"PDF has no pages: {path.name}")

    return PdfDocument(path=path, size_bytes=size_bytes, page_count=page_count)


def _rasterize(doc: Any, page_number: int, scale: float) -> Image.Image:
    page = doc.load_page(page_number - 1)  # 0-indexed in PyMuPDF
    pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
    return Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def render_page_jpeg(doc: Any, page_number: int, profile: RenderProfile) -> EncodedImage:
    """Render one page as JPEG at ``profile``."""
    image = _rasterize(doc, page_number, profile.scale)
    return EncodedImage(page_number=page_number, data=encode_jpeg(image, profile.jpeg_quality))


def render_page_high_quality(
    doc: Any,
    page_number: int,
    options: HighQualityRenderOptions,
) -> tuple[EncodedImage, bool]:
    """Render one page as PNG, falling back to JPEG when the PNG is oversized.

    Returns:
        Tuple of (image, downgraded)
    """
    image = _rasterize(doc, page_number, options.scale)
    png_bytes = encode_png(image)
    if len(png_bytes) <= options.png_max_bytes:
        return EncodedImage(page_number=page_number, data=png_bytes, mime_type="image/png"), False

    logger.debug(
        "PNG for page %d is %d bytes (max %d), re-encoding as JPEG",
        page_number,
        len(png_bytes),
        options.png_max_bytes,
    )
    jpeg_bytes = encode_jpeg(image, options.jpeg_quality)
    return EncodedImage(page_number=page_number, data=jpeg_bytes, mime_type="image/jpeg"), True


class PdfPageRenderer:
    """PageRenderer implementation backed by PyMuPDF.

    Example:
        >>> renderer = PdfPageRenderer()
        >>> images = await renderer.render_pages(document, PageRange(1, 12), profile)
    """

    def __init__(self, max_pages_per_request: int = MAX_PAGES_PER_REQUEST):
        self.max_pages_per_request = max_pages_per_request

    async def render_pages(
        self,
        document: PdfDocument,
        page_range: PageRange,
        profile: RenderProfile,
        on_message: MessageCallback | None = None,
    ) -> list[EncodedImage]:
        if page_range.end_page > document.page_count:
            raise RenderingError("Invalid page range requested for presentation conversion.")
        if page_range.page_count > self.max_pages_per_request:
            raise RenderingError(
                f"Too many pages selected ({page_range.page_count}, max {self.max_pages_per_request})."
            )

        notify = on_message or (lambda _message: None)
        total = page_range.page_count
        notify(
            f"Converting {total} pages to images "
            f"(pages {page_range.start_page}-{page_range.end_page} of {document.page_count})..."
        )

        images: list[EncodedImage] = []
        with open_pdf_document(document.path) as doc:
            for index, page_number in enumerate(page_range.pages(), start=1):
                try:
                    image = await asyncio.to_thread(render_page_jpeg, doc, page_number, profile)
                except Exception as e:
                    raise RenderingError(f"Failed to render page {page_number}: {e}") from e
                images.append(image)
                notify(f"Converted page {index} of {total}")

        return images

    async def render_pages_high_quality(
        self,
        document: PdfDocument,
        pages: list[int],
        options: HighQualityRenderOptions,
    ) -> HighQualityRenderResult:
        unique_pages = sorted({page for page in pages if isinstance(page, int) and page > 0})
        result = HighQualityRenderResult()
        if not unique_pages:
            return result

        total = len(unique_pages)
        with open_pdf_document(document.path) as doc:
            for index, page_number in enumerate(unique_pages, start=1):
                if options.on_progress is not None:
                    options.on_progress(index, total, page_number)

                if page_number > doc.page_count:
                    result.failed_pages.append(
                        RenderFailure(
                            page_number,
                            f"Page {page_number} is out of range for a {doc.page_count}-page PDF.",
                        )
                    )
                    continue

                try:
                    image, downgraded = await asyncio.to_thread(
                        render_page_high_quality, doc, page_number, options
                    )
                except Exception as e:
                    # Per-page failures are reported, not raised
                    logger.warning("High-quality render failed for page %d: %s", page_number, e)
                    result.failed_pages.append(RenderFailure(page_number, str(e) or "Unknown render failure."))
                    continue

                result.images_by_page[page_number] = image
                if downgraded:
                    result.downgraded_pages.append(page_number)

        return result
