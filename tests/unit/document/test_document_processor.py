"""Tests for DocumentProcessor and DocumentOutcome.

Tests cover:
- Chunk loop retries, splits, failures and aborts
- Partial results and warnings
- Progress events published per document
"""

from __future__ import annotations

import pytest

from slide_pipeline.document import ChunkFailure, DocumentOutcome, DocumentProcessor
from slide_pipeline.exceptions import (
    ChunkFailedError,
    DocumentAbortedError,
    FatalInferenceError,
    GeoBlockedError,
    RateLimitedError,
    SchemaIncompatibleError,
    TransientInferenceError,
)
from slide_pipeline.progress import ProgressReporter
from slide_pipeline.retry import FailureKind, RetryPolicy
from slide_pipeline.stages import QualityStage
from slide_pipeline.types import DocumentArtifact, PageRange, ProgressStage, SelectedSlide

FIRST = PageRange(1, 12)
SECOND = PageRange(13, 20)


@pytest.fixture
def processor_factory(fake_renderer, fake_client, sleeper):
    """Build a processor around the shared fakes, overridable per test."""

    def _build(renderer=None, client=None, **kwargs):
        renderer = renderer or fake_renderer
        return DocumentProcessor(
            renderer,
            client or fake_client,
            policy=kwargs.pop("policy", RetryPolicy(max_retries=2, base_delay_ms=1200)),
            quality_stage=kwargs.pop("quality_stage", QualityStage(renderer)),
            sleep=sleeper,
            **kwargs,
        )

    return _build


class TestDocumentProcessorSuccess:
    """Tests for documents whose chunks all succeed."""

    @pytest.mark.anyio
    async def test_two_chunks_merged(self, make_document, processor_factory, fake_client):
        """Both chunks are analyzed in order and merged."""
        outcome = await processor_factory().process(make_document(page_count=20))

        assert fake_client.calls == [FIRST, SECOND]
        assert outcome.artifact.selected_pages == [1, 13]
        assert outcome.artifact.company_name == "Acme Robotics"
        assert outcome.failed_chunks == []
        assert outcome.warning is None

    @pytest.mark.anyio
    async def test_selected_slides_upgraded(self, make_document, processor_factory):
        """Final slides carry the high-quality image."""
        outcome = await processor_factory().process(make_document(page_count=20))
        assert all(slide.page_image.mime_type == "image/png" for slide in outcome.artifact.slides)

    @pytest.mark.anyio
    async def test_progress_events(self, make_document, processor_factory):
        """Chunk events are labeled and the run ends in the finalizing band."""
        reporter = ProgressReporter()
        await processor_factory().process(make_document(page_count=20), reporter)

        messages = [event.message for event in reporter]
        assert messages[0].startswith("Chunk 1/2: Converting 12 pages")
        assert "Chunk 2/2: Analyzing slides with AI..." in messages
        finalizing = [event for event in reporter if event.stage is ProgressStage.FINALIZING]
        assert finalizing[0].percent == 91
        assert finalizing[1].percent == 93
        assert finalizing[-1].message == "Finalizing: rendering high-quality slide 2/2 (page 13)..."
        percents = [event.percent for event in reporter]
        assert percents == sorted(percents)


class TestDocumentProcessorRetries:
    """Tests for retry, split and failure handling inside one document."""

    @pytest.mark.anyio
    async def test_transient_then_success(self, make_document, processor_factory, fake_client, fake_renderer, sleeper):
        """Transient failures retry with linear backoff and a degraded profile."""
        fake_client.fail(FIRST, TransientInferenceError("503"), TransientInferenceError("503"))

        outcome = await processor_factory().process(make_document(page_count=20))

        assert fake_client.calls == [FIRST, FIRST, FIRST, SECOND]
        assert sleeper.delays == [1.2, 2.4]
        scales = [profile.scale for page_range, profile in fake_renderer.render_calls if page_range == FIRST]
        assert scales == [1.15, 1.0, 0.85]
        assert outcome.warning is None

    @pytest.mark.anyio
    async def test_exhausted_transient_splits(self, make_document, processor_factory, fake_client):
        """A multi-page range that keeps failing is bisected; halves run before later ranges."""
        fake_client.fail_always(lambda r: r == FIRST, TransientInferenceError("upstream overloaded"))

        outcome = await processor_factory().process(make_document(page_count=20))

        assert fake_client.calls == [FIRST, FIRST, FIRST, PageRange(1, 6), PageRange(7, 12), SECOND]
        assert outcome.artifact.selected_pages == [1, 7, 13]
        assert outcome.failed_chunks == []

    @pytest.mark.anyio
    async def test_exhausted_rate_limit_fails_chunk(self, make_document, processor_factory, fake_client, sleeper):
        """Rate limits are retried but never split."""
        fake_client.fail_always(lambda r: r == FIRST, RateLimitedError("quota"))

        outcome = await processor_factory().process(make_document(page_count=20))

        assert fake_client.calls == [FIRST, FIRST, FIRST, SECOND]
        assert sleeper.delays == [1.2, 2.4]
        assert outcome.artifact.selected_pages == [13]
        assert outcome.failed_chunks == [ChunkFailure("Chunk 1/2", FIRST, FailureKind.RATE_LIMITED, "quota")]
        assert outcome.warning == "Partial analysis: 1 chunk(s) failed. Chunk 1/2 pages 1-12 failed: quota"

    @pytest.mark.anyio
    async def test_schema_failure_not_retried(self, make_document, processor_factory, fake_client, sleeper):
        """Schema-incompatible output is terminal for the chunk."""
        fake_client.fail(SECOND, SchemaIncompatibleError("Model could not satisfy strict structured output requirements."))

        outcome = await processor_factory().process(make_document(page_count=20))

        assert fake_client.calls == [FIRST, SECOND]
        assert sleeper.delays == []
        assert outcome.failed_chunks[0].kind is FailureKind.SCHEMA_INCOMPATIBLE

    @pytest.mark.anyio
    async def test_untyped_renderer_error_classified_from_message(
        self, make_document, processor_factory, renderer_factory, fake_client
    ):
        """Untyped collaborator errors are classified by their message."""
        attempts = {"count": 0}

        def flaky_bytes(page_number, profile):
            if page_number == 1 and attempts["count"] == 0:
                attempts["count"] += 1
                raise RuntimeError("Request failed with status 503")
            return 100

        renderer = renderer_factory(page_bytes=flaky_bytes)
        outcome = await processor_factory(renderer=renderer).process(make_document(page_count=20))

        assert outcome.artifact.selected_pages == [1, 13]
        assert fake_client.calls == [FIRST, SECOND]

    @pytest.mark.anyio
    async def test_geo_block_aborts_document(self, make_document, processor_factory, fake_client):
        """Geo-blocking stops the document without touching later chunks."""
        fake_client.fail(FIRST, GeoBlockedError("Gemini is temporarily blocked by provider location policy."))

        with pytest.raises(DocumentAbortedError) as exc_info:
            await processor_factory().process(make_document(page_count=20))

        assert fake_client.calls == [FIRST]
        assert str(exc_info.value).endswith("(Chunk 1/2 pages 1-12)")
        assert isinstance(exc_info.value.__cause__, GeoBlockedError)

    @pytest.mark.anyio
    async def test_untyped_geo_block_message_is_actionable(self, make_document, processor_factory, fake_client):
        """A raw location error aborts with the provider-labelled stop-and-retry message."""
        fake_client.fail(FIRST, RuntimeError("User location is not supported for the API use."))

        with pytest.raises(DocumentAbortedError) as exc_info:
            await processor_factory().process(make_document(page_count=20))

        assert fake_client.calls == [FIRST]
        assert str(exc_info.value) == (
            "Gemini is temporarily blocked by provider location policy for this environment. "
            "Stop now and retry later. (Chunk 1/2 pages 1-12)"
        )

    @pytest.mark.anyio
    async def test_all_chunks_fail(self, make_document, processor_factory, fake_client):
        """A document with no successful chunk fails as a whole."""
        fake_client.fail_always(lambda r: True, FatalInferenceError("Presentation analysis failed: bad request"))

        with pytest.raises(ChunkFailedError, match="Chunk 1/2 pages 1-12 failed"):
            await processor_factory().process(make_document(page_count=20))

    @pytest.mark.anyio
    async def test_oversized_single_page(self, make_document, processor_factory, renderer_factory, fake_client):
        """An oversized single page fails without an inference call."""
        renderer = renderer_factory(page_bytes=3000)
        processor = processor_factory(renderer=renderer, max_payload_bytes=1000)

        with pytest.raises(ChunkFailedError, match=r"Chunk 1/1 \(pages 1-1\) is too large even for a single page\."):
            await processor.process(make_document(page_count=1, size_bytes=1000))

        assert fake_client.calls == []

    @pytest.mark.anyio
    async def test_retry_status_published(self, make_document, processor_factory, fake_client):
        """Retry waits are announced through the progress channel."""
        fake_client.fail(FIRST, RateLimitedError("quota", retry_after_seconds=2))
        reporter = ProgressReporter()

        await processor_factory().process(make_document(page_count=20), reporter)

        assert "Chunk 1/2: Rate limit reached. Retrying in 4s (retry 1/2)..." in [e.message for e in reporter]


class TestDocumentOutcome:
    """Tests for DocumentOutcome warnings and completion messages."""

    def _artifact(self, count: int) -> DocumentArtifact:
        return DocumentArtifact(slides=[SelectedSlide(page, "why", "what") for page in range(1, count + 1)])

    def test_clean_completion(self):
        """Three slides and no warnings is a clean completion."""
        outcome = DocumentOutcome(self._artifact(3))
        assert outcome.warning is None
        assert outcome.completion_message == "Analysis complete."

    def test_few_slides(self):
        """Fewer than three slides are called out."""
        assert DocumentOutcome(self._artifact(1)).completion_message == "Analysis complete with 1 high-signal slide."
        assert DocumentOutcome(self._artifact(2)).completion_message == "Analysis complete with 2 high-signal slides."

    def test_recoverable_warnings(self):
        """Warnings combine partial coverage and quality fallbacks."""
        failure = ChunkFailure("Chunk 2/3", PageRange(13, 24), FailureKind.FATAL, "bad request")
        outcome = DocumentOutcome(self._artifact(3), failed_chunks=[failure], quality_warnings=["HQ failed."])
        assert outcome.warning == "Partial analysis: 1 chunk(s) failed. Chunk 2/3 pages 13-24 failed: bad request HQ failed."
        assert outcome.completion_message == "Analysis complete with recoverable warnings."
