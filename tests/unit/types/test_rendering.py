"""Tests for rendering data types and result types."""

from __future__ import annotations

import base64

from slide_pipeline.types import (
    DocumentArtifact,
    EncodedImage,
    ProgressEvent,
    ProgressStage,
    RenderProfile,
    SelectedSlide,
    payload_size,
)


class TestEncodedImage:
    """Tests for EncodedImage sizes and encodings."""

    def test_encoded_size_matches_base64_length(self):
        """Encoded size is the base64 text length."""
        for length in (0, 1, 2, 3, 4, 1000, 1001):
            image = EncodedImage(1, b"x" * length)
            assert image.encoded_size == len(base64.b64encode(image.data))

    def test_payload_size_sums_images(self):
        """Payload size is the sum over all images."""
        images = [EncodedImage(1, b"abc"), EncodedImage(2, b"abcdef")]
        assert payload_size(images) == 4 + 8

    def test_data_url(self):
        """Data URLs carry the mime type."""
        image = EncodedImage(1, b"png-bytes", mime_type="image/png")
        assert image.to_data_url().startswith("data:image/png;base64,")
        assert image.extension == "png"
        assert EncodedImage(1, b"").extension == "jpg"


class TestRenderProfile:
    """Tests for RenderProfile."""

    def test_jpeg_quality_scale(self):
        """Compression quality maps onto Pillow's 1-100 range."""
        assert RenderProfile(1.15, 0.75).jpeg_quality == 75
        assert RenderProfile(1.0, 0.0).jpeg_quality == 1
        assert RenderProfile(1.0, 1.5).jpeg_quality == 100


class TestProgressEvent:
    """Tests for ProgressEvent clamping."""

    def test_percent_is_clamped(self):
        """Percent always lands within 0-100."""
        assert ProgressEvent(ProgressStage.PREPARING, "x", -5).percent == 0
        assert ProgressEvent(ProgressStage.PREPARING, "x", 140).percent == 100
        assert ProgressEvent(ProgressStage.PREPARING, "x", 41.6).percent == 42

    def test_with_percent(self):
        """with_percent replaces percent and optionally message."""
        event = ProgressEvent(ProgressStage.UPLOADING, "Converted page 1 of 2", 43)
        changed = event.with_percent(12, message="Chunk 1/2: Converted page 1 of 2")
        assert changed.percent == 12
        assert changed.stage is ProgressStage.UPLOADING
        assert changed.message.startswith("Chunk 1/2")


class TestDocumentArtifact:
    """Tests for DocumentArtifact serialization."""

    def test_to_dict(self):
        """Metadata and slides are serialized; images only on request."""
        artifact = DocumentArtifact(
            company_name="Acme",
            ticker="ACME",
            slides=[SelectedSlide(4, "Why", "What", EncodedImage(4, b"img"))],
        )
        data = artifact.to_dict()
        assert data["company_name"] == "Acme"
        assert data["stock_url"] == ""
        assert data["slides"] == [{"selected_page_number": 4, "rationale": "Why", "revealed_content": "What"}]
        assert "page_image" in artifact.to_dict(include_images=True)["slides"][0]
        assert artifact.selected_pages == [4]
