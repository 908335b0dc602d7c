"""Pytest configuration and shared fixtures for slide pipeline tests.

This module provides:
- Fake collaborators (renderer, inference client, sleeper) with call recording
- Document fixtures (PdfDocument handles and real PDFs written with PyMuPDF)
- Test configuration and path setup
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from pathlib import Path

import fitz
import pytest

# Register anyio pytest plugin for async test support
# This enables @pytest.mark.anyio decorator and anyio_backends config option
pytest_plugins = ("anyio",)

# Ensure project root is importable when running tests via python -m pytest
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from slide_pipeline.conversion.pdf import PdfDocument  # noqa: E402
from slide_pipeline.types import (  # noqa: E402
    ChunkResult,
    EncodedImage,
    HighQualityRenderOptions,
    HighQualityRenderResult,
    PageRange,
    RenderFailure,
    RenderProfile,
    SelectedSlide,
)

# ==================== Fake Collaborators ====================


class FakeRenderer:
    """PageRenderer that produces placeholder JPEG bytes of a chosen size.

    Attributes:
        page_bytes: Raw bytes per page, or ``(page_number, profile) -> bytes``
        hq_failures: Pages whose high-quality render fails
        hq_oversized: Pages whose PNG is "oversized" and comes back as JPEG
        hq_error: Raised from ``render_pages_high_quality`` when set
    """

    def __init__(
        self,
        page_bytes: int | Callable[[int, RenderProfile], int] = 1000,
        hq_failures: Iterable[int] = (),
        hq_oversized: Iterable[int] = (),
        hq_error: Exception | None = None,
    ):
        self.page_bytes = page_bytes
        self.hq_failures = set(hq_failures)
        self.hq_oversized = set(hq_oversized)
        self.hq_error = hq_error
        self.render_calls: list[tuple[PageRange, RenderProfile]] = []
        self.high_quality_calls: list[list[int]] = []

    async def render_pages(
        self,
        document: PdfDocument,
        page_range: PageRange,
        profile: RenderProfile,
        on_message: Callable[[str], None] | None = None,
    ) -> list[EncodedImage]:
        self.render_calls.append((page_range, profile))
        notify = on_message or (lambda _message: None)
        total = page_range.page_count
        notify(f"Converting {total} pages to images (pages {page_range} of {document.page_count})...")

        images = []
        for index, page_number in enumerate(page_range.pages(), start=1):
            size = self.page_bytes(page_number, profile) if callable(self.page_bytes) else self.page_bytes
            images.append(EncodedImage(page_number=page_number, data=b"j" * size))
            notify(f"Converted page {index} of {total}")
        return images

    async def render_pages_high_quality(
        self,
        document: PdfDocument,
        pages: list[int],
        options: HighQualityRenderOptions,
    ) -> HighQualityRenderResult:
        self.high_quality_calls.append(list(pages))
        if self.hq_error is not None:
            raise self.hq_error

        result = HighQualityRenderResult()
        unique_pages = sorted(set(pages))
        for index, page_number in enumerate(unique_pages, start=1):
            if options.on_progress is not None:
                options.on_progress(index, len(unique_pages), page_number)
            if page_number in self.hq_failures:
                result.failed_pages.append(RenderFailure(page_number, "render crashed"))
                continue
            if page_number in self.hq_oversized:
                result.images_by_page[page_number] = EncodedImage(page_number, b"hq-jpeg", "image/jpeg")
                result.downgraded_pages.append(page_number)
                continue
            result.images_by_page[page_number] = EncodedImage(page_number, b"hq-png", "image/png")
        return result


def first_page_picker(page_range: PageRange) -> list[int]:
    """Default slide choice: the first page of every chunk."""
    return [page_range.start_page]


class FakeInferenceClient:
    """InferenceClient with scripted failures per page range.

    Failures queued with ``fail`` are raised once each, in order, for calls
    on that exact range. Failures registered with ``fail_always`` are raised
    for every call whose range matches the predicate.
    """

    provider = "fake"
    model = "fake-model"

    def __init__(
        self,
        pick: Callable[[PageRange], list[int]] = first_page_picker,
        company_name: str = "Acme Robotics",
        metadata: dict[str, str] | None = None,
    ):
        self.pick = pick
        self.company_name = company_name
        self.metadata = metadata or {}
        self.calls: list[PageRange] = []
        self.image_counts: list[int] = []
        self._queued: dict[PageRange, list[BaseException]] = {}
        self._persistent: list[tuple[Callable[[PageRange], bool], BaseException]] = []

    def fail(self, page_range: PageRange, *errors: BaseException) -> None:
        self._queued.setdefault(page_range, []).extend(errors)

    def fail_always(self, predicate: Callable[[PageRange], bool], error: BaseException) -> None:
        self._persistent.append((predicate, error))

    async def analyze(
        self,
        images: list[EncodedImage],
        page_offset: int,
        page_range: PageRange,
    ) -> ChunkResult:
        self.calls.append(page_range)
        self.image_counts.append(len(images))

        queued = self._queued.get(page_range)
        if queued:
            raise queued.pop(0)
        for predicate, error in self._persistent:
            if predicate(page_range):
                raise error

        slides = [
            SelectedSlide(
                selected_page_number=page,
                rationale=f"Page {page} shows margin expansion",
                revealed_content=f"Page {page} reveals segment mix",
                page_image=images[page - page_offset - 1],
            )
            for page in self.pick(page_range)
        ]
        metadata = {"company_name": self.company_name, **self.metadata}
        return ChunkResult(**metadata, slides=slides, page_range=page_range)


class RecordingSleeper:
    """Zero-delay sleeper that records requested waits in seconds."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# ==================== Fake Collaborator Fixtures ====================


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    """Renderer producing ~1KB pages."""
    return FakeRenderer()


@pytest.fixture
def fake_client() -> FakeInferenceClient:
    """Inference client picking the first page of every chunk."""
    return FakeInferenceClient()


@pytest.fixture
def sleeper() -> RecordingSleeper:
    """Backoff sleeper that returns immediately."""
    return RecordingSleeper()


@pytest.fixture
def renderer_factory() -> type[FakeRenderer]:
    return FakeRenderer


@pytest.fixture
def client_factory() -> type[FakeInferenceClient]:
    return FakeInferenceClient


# ==================== Document Fixtures ====================


@pytest.fixture
def make_document(tmp_path: Path) -> Callable[..., PdfDocument]:
    """Build PdfDocument handles with an arbitrary reported size.

    The file on disk is a placeholder; only the handle's numbers matter to
    chunk planning and the fakes.
    """

    def _make(page_count: int = 20, size_bytes: int = 2 * 1024 * 1024, name: str = "deck.pdf") -> PdfDocument:
        path = tmp_path / name
        path.write_bytes(b"%PDF-1.4 placeholder")
        return PdfDocument(path=path, size_bytes=size_bytes, page_count=page_count)

    return _make


@pytest.fixture
def write_pdf(tmp_path: Path) -> Callable[..., Path]:
    """Write a real PDF with one line of text per page."""

    def _write(page_count: int = 3, name: str = "deck.pdf", directory: Path | None = None) -> Path:
        path = (directory or tmp_path) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        doc = fitz.open()
        try:
            for page_number in range(1, page_count + 1):
                page = doc.new_page(width=320, height=180)
                page.insert_text((20, 90), f"Slide {page_number}: revenue +{page_number * 7}% YoY")
            doc.save(str(path))
        finally:
            doc.close()
        return path

    return _write


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Create an output directory for testing."""
    output = tmp_path / "output"
    output.mkdir()
    return output


# ==================== Async Configuration ====================


@pytest.fixture
def anyio_backend() -> str:
    """Force anyio to use asyncio backend only (trio not installed)."""
    return "asyncio"


# ==================== Helper Functions ====================


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: End-to-end scenarios with fake collaborators")
