"""Tests for the quality upgrade stage."""

from __future__ import annotations

import pytest

from slide_pipeline.stages import QualityStage
from slide_pipeline.types import DocumentArtifact, EncodedImage, SelectedSlide


def _artifact(*pages: int) -> DocumentArtifact:
    return DocumentArtifact(
        company_name="Acme",
        slides=[
            SelectedSlide(page, "why", "what", EncodedImage(page, b"chunk-jpeg"))
            for page in pages
        ],
    )


class TestQualityStage:
    """Tests for QualityStage."""

    @pytest.mark.anyio
    async def test_upgrades_every_selected_page(self, make_document, fake_renderer):
        """Selected pages get their high-quality PNG."""
        stage = QualityStage(fake_renderer, scale=2.0)
        progress: list[tuple[int, int, int]] = []

        outcome = await stage.process(
            _artifact(3, 9),
            document=make_document(page_count=12),
            on_progress=lambda c, t, p: progress.append((c, t, p)),
        )

        assert fake_renderer.high_quality_calls == [[3, 9]]
        assert [slide.page_image.data for slide in outcome.artifact.slides] == [b"hq-png", b"hq-png"]
        assert outcome.upgraded_pages == [3, 9]
        assert outcome.warnings == []
        assert progress == [(1, 2, 3), (2, 2, 9)]

    @pytest.mark.anyio
    async def test_failed_page_keeps_chunk_image(self, make_document, renderer_factory):
        """A page that fails to render keeps its chunk image with a warning."""
        stage = QualityStage(renderer_factory(hq_failures=[9]))

        outcome = await stage.process(_artifact(3, 9), document=make_document(page_count=12))

        images = {slide.selected_page_number: slide.page_image.data for slide in outcome.artifact.slides}
        assert images == {3: b"hq-png", 9: b"chunk-jpeg"}
        assert outcome.warnings == [
            "High-quality render failed for 1 selected slide(s); using chunk-quality fallback for those pages."
        ]

    @pytest.mark.anyio
    async def test_oversized_png_warning(self, make_document, renderer_factory):
        """JPEG fallbacks are reported as a warning but still substituted."""
        stage = QualityStage(renderer_factory(hq_oversized=[3, 9]))

        outcome = await stage.process(_artifact(3, 9), document=make_document(page_count=12))

        assert all(slide.page_image.mime_type == "image/jpeg" for slide in outcome.artifact.slides)
        assert outcome.warnings == [
            "PNG output was oversized for 2 selected slide(s); used high-quality JPEG fallback for those pages."
        ]

    @pytest.mark.anyio
    async def test_render_step_failure_never_fails_document(self, make_document, renderer_factory):
        """A crash of the whole step keeps every chunk image."""
        stage = QualityStage(renderer_factory(hq_error=RuntimeError("PDF handle closed")))
        artifact = _artifact(3, 9)

        outcome = await stage.process(artifact, document=make_document(page_count=12))

        assert outcome.artifact is artifact
        assert outcome.warnings == [
            "High-quality final render step failed (PDF handle closed); using analysis-quality slide images."
        ]

    @pytest.mark.anyio
    async def test_without_document_is_noop(self, fake_renderer):
        """Without a source document nothing is rendered."""
        artifact = _artifact(1)
        outcome = await QualityStage(fake_renderer).process(artifact)
        assert outcome.artifact is artifact
        assert fake_renderer.high_quality_calls == []

    @pytest.mark.anyio
    async def test_original_artifact_untouched(self, make_document, fake_renderer):
        """Upgrading returns a new artifact rather than mutating the input."""
        artifact = _artifact(2)
        outcome = await QualityStage(fake_renderer).process(artifact, document=make_document(page_count=4))
        assert artifact.slides[0].page_image.data == b"chunk-jpeg"
        assert outcome.artifact.slides[0].page_image.data == b"hq-png"
