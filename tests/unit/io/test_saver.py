"""Tests for ArtifactSaver."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from slide_pipeline.batch import BatchItem, BatchProgress, BatchStatus
from slide_pipeline.io import ArtifactSaver
from slide_pipeline.types import DocumentArtifact, EncodedImage, ProgressEvent, ProgressStage, SelectedSlide


def _completed_item(tmp_path: Path, warning: str | None = None) -> BatchItem:
    artifact = DocumentArtifact(
        company_name="Acme Robotics",
        ticker="ACME",
        slides=[
            SelectedSlide(3, "Backlog doubled", "Demand outpaces capacity", EncodedImage(3, b"png-3", "image/png")),
            SelectedSlide(9, "Margin bridge", "Pricing drives margin", EncodedImage(9, b"jpg-9")),
            SelectedSlide(11, "Guidance", "FY25 raised"),
        ],
    )
    item = BatchItem(id="q3-deck.pdf-1-0", name="q3-deck.pdf", path=tmp_path / "q3-deck.pdf")
    item.mark_completed(artifact, warning)
    return item


@pytest.fixture
def saver(output_dir) -> ArtifactSaver:
    return ArtifactSaver(output_dir, provider="gemini", model="gemini-2.5-flash")


class TestSaveItem:
    """Tests for per-document output."""

    def test_writes_json_and_images(self, saver, output_dir, tmp_path):
        """Artifact JSON references the written slide images."""
        path = saver.save_item(_completed_item(tmp_path, warning="Partial analysis"))

        assert path == output_dir / "q3-deck.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["company_name"] == "Acme Robotics"
        assert data["provider"] == "gemini"
        assert data["model"] == "gemini-2.5-flash"
        assert data["warning"] == "Partial analysis"
        assert data["source"].endswith("q3-deck.pdf")
        assert "processed_at" in data
        assert [slide["selected_page_number"] for slide in data["slides"]] == [3, 9, 11]
        assert data["slides"][0]["image_file"] == str(Path("q3-deck") / "page_3.png")
        assert data["slides"][1]["image_file"] == str(Path("q3-deck") / "page_9.jpg")
        assert "image_file" not in data["slides"][2]
        assert (output_dir / "q3-deck" / "page_3.png").read_bytes() == b"png-3"

    def test_skips_items_without_result(self, saver, tmp_path):
        """Failed items produce no artifact file."""
        item = BatchItem(id="x", name="x.pdf", path=tmp_path / "x.pdf")
        item.mark_failed("boom")
        assert saver.save_item(item) is None


class TestSaveBatchSummary:
    """Tests for the batch summary."""

    def test_summary_counts(self, saver, tmp_path):
        """Counts cover every status and items keep upload order."""
        failed = BatchItem(id="b", name="b.pdf", path=tmp_path / "b.pdf")
        failed.mark_failed("Gemini is temporarily blocked by provider location policy.")
        items = [_completed_item(tmp_path), failed]
        progress = BatchProgress(
            total=2,
            completed=1,
            failed=1,
            progress=ProgressEvent(ProgressStage.COMPLETE, "Batch analysis complete.", 100),
        )

        paths = saver.save_all(items, progress)

        assert [p.name for p in paths] == ["q3-deck.json", "batch_summary.json"]
        summary = json.loads(paths[-1].read_text(encoding="utf-8"))
        assert summary["counts"][BatchStatus.COMPLETE.value] == 1
        assert summary["counts"]["error"] == 1
        assert summary["counts"]["ready"] == 0
        assert summary["progress"]["percent"] == 100
        assert summary["progress"]["stage"] == "complete"
        assert [entry["status"] for entry in summary["items"]] == ["complete", "error"]
        assert summary["items"][0]["selected_pages"] == [3, 9, 11]

    def test_summary_without_progress(self, saver):
        summary = json.loads(saver.save_batch_summary([], None).read_text(encoding="utf-8"))
        assert summary["progress"] is None
        assert summary["items"] == []
