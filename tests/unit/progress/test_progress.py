"""Tests for progress mapping and the per-document progress reporter."""

from __future__ import annotations

from slide_pipeline.progress import (
    ProgressReporter,
    batch_percent,
    chunk_to_document_percent,
    finalizing_percent,
    high_quality_percent,
    map_progress_message,
)
from slide_pipeline.types import ProgressStage


class TestMapProgressMessage:
    """Tests for free-text message mapping."""

    def test_converted_page(self):
        """'Converted page X of Y' maps into the 15-70 upload band."""
        event = map_progress_message("Converted page 3 of 6")
        assert event.stage is ProgressStage.UPLOADING
        assert event.percent == round(15 + 3 / 6 * 55)
        assert (event.current, event.total) == (3, 6)

    def test_converting_pages(self):
        """'Converting N pages' starts the upload band."""
        event = map_progress_message("Converting 12 pages to images (pages 1-12 of 20)...")
        assert event.stage is ProgressStage.UPLOADING
        assert event.percent == 15
        assert event.total == 12

    def test_analyzing(self):
        """Messages mentioning analyzing map to 78%."""
        event = map_progress_message("Analyzing slides with AI...")
        assert event.stage is ProgressStage.ANALYZING
        assert event.percent == 78

    def test_other_messages(self):
        """Anything else is a preparing update."""
        event = map_progress_message("Rate limit reached. Retrying in 2s (retry 1/2)...")
        assert event.stage is ProgressStage.PREPARING
        assert event.percent == 8


class TestPercentHelpers:
    """Tests for percent scaling helpers."""

    def test_chunk_to_document_percent(self):
        """Chunk progress is scaled into the chunk's slice of the document."""
        assert chunk_to_document_percent(0, 2, 100) == 50
        assert chunk_to_document_percent(1, 2, 50) == 75
        assert chunk_to_document_percent(0, 0, 50) == 0

    def test_finalizing_is_clamped(self):
        """Finalizing percent stays within 90-99."""
        assert finalizing_percent(10) == 90
        assert finalizing_percent(150) == 99
        assert finalizing_percent(93.4) == 93

    def test_high_quality_percent(self):
        """High-quality rendering spans 93-99."""
        assert high_quality_percent(1, 3) == 95
        assert high_quality_percent(3, 3) == 99
        assert high_quality_percent(0, 0) == 99

    def test_batch_percent(self):
        """Batch percent blends finished documents with the one in flight."""
        assert batch_percent(0, 50, 2) == 25
        assert batch_percent(1, 100, 2) == 100
        assert batch_percent(2, 0, 3) == 67
        assert batch_percent(0, 50, 0) == 0


class TestProgressReporter:
    """Tests for ProgressReporter."""

    def test_records_and_forwards_events(self):
        """Every event is recorded and sent to the listener."""
        received = []
        reporter = ProgressReporter(listener=received.append)
        reporter.status(ProgressStage.PREPARING, "Preparing presentation...", 8)
        reporter.complete("Analysis complete.")

        assert [event.message for event in reporter] == ["Preparing presentation...", "Analysis complete."]
        assert received == reporter.events
        assert len(reporter) == 2
        assert reporter.latest.stage is ProgressStage.COMPLETE
        assert reporter.latest.percent == 100

    def test_chunk_callback_scales_and_labels(self):
        """Chunk messages are mapped, rescaled and prefixed with the label."""
        reporter = ProgressReporter()
        on_message = reporter.chunk_callback(chunk_index=1, chunk_count=2, label="Chunk 2/2")
        on_message("Analyzing slides with AI...")

        event = reporter.latest
        assert event.stage is ProgressStage.ANALYZING
        assert event.percent == round((1 + 0.78) / 2 * 100)
        assert event.message == "Chunk 2/2: Analyzing slides with AI..."

    def test_label_does_not_change_stage(self):
        """A label mentioning a page count does not confuse the mapping."""
        reporter = ProgressReporter()
        reporter.chunk_callback(0, 1, label="Converting 3 pages")("Retrying shortly")
        assert reporter.latest.stage is ProgressStage.PREPARING

    def test_finalizing_and_high_quality(self):
        """Finalizing events are clamped; high-quality events carry counters."""
        reporter = ProgressReporter()
        reporter.finalizing("Finalizing: merging...")
        reporter.high_quality(2, 4, 17)

        merge, render = reporter.events
        assert (merge.stage, merge.percent) == (ProgressStage.FINALIZING, 91)
        assert render.message == "Finalizing: rendering high-quality slide 2/4 (page 17)..."
        assert render.percent == 96
        assert (render.current, render.total) == (2, 4)

    def test_error(self):
        """Failures end at 100% with the error stage."""
        reporter = ProgressReporter()
        reporter.error()
        assert reporter.latest.stage is ProgressStage.ERROR
        assert reporter.latest.message == "Analysis failed."
        assert reporter.latest.percent == 100
