"""Quality stage: re-render the final selected slides at high fidelity.

This stage never fails a document. Pages that cannot be re-rendered keep
their chunk-quality image and the shortfall is reported as a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from slide_pipeline.constants import HIGH_QUALITY_JPEG_QUALITY, HIGH_QUALITY_PNG_MAX_BYTES, HIGH_QUALITY_SCALE
from slide_pipeline.stages.base import BaseStage
from slide_pipeline.types import DocumentArtifact, HighQualityRenderOptions, PageRenderer
from slide_pipeline.types.rendering import HighQualityProgressCallback

if TYPE_CHECKING:
    from slide_pipeline.conversion.pdf import PdfDocument

logger = logging.getLogger(__name__)


@dataclass
class QualityOutcome:
    """Artifact with upgraded images plus any quality warnings."""

    artifact: DocumentArtifact
    warnings: list[str] = field(default_factory=list)
    upgraded_pages: list[int] = field(default_factory=list)


def render_failed_warning(count: int) -> str:
    return (
        f"High-quality render failed for {count} selected slide(s); "
        "using chunk-quality fallback for those pages."
    )


def png_oversized_warning(count: int) -> str:
    return (
        f"PNG output was oversized for {count} selected slide(s); "
        "used high-quality JPEG fallback for those pages."
    )


def render_step_failed_warning(message: str) -> str:
    return f"High-quality final render step failed ({message}); using analysis-quality slide images."


class QualityStage(BaseStage[DocumentArtifact, QualityOutcome]):
    """Quality upgrade stage for the merged artifact."""

    name = "quality"

    def __init__(
        self,
        renderer: PageRenderer,
        scale: float = HIGH_QUALITY_SCALE,
        png_max_bytes: int = HIGH_QUALITY_PNG_MAX_BYTES,
        jpeg_quality: int = HIGH_QUALITY_JPEG_QUALITY,
    ):
        self.renderer = renderer
        self.scale = scale
        self.png_max_bytes = png_max_bytes
        self.jpeg_quality = jpeg_quality

    async def _process_impl(
        self,
        input_data: DocumentArtifact,
        document: PdfDocument | None = None,
        on_progress: HighQualityProgressCallback | None = None,
        **context: Any,
    ) -> QualityOutcome:
        pages = input_data.selected_pages
        if document is None or not pages:
            return QualityOutcome(artifact=input_data)

        options = HighQualityRenderOptions(
            scale=self.scale,
            png_max_bytes=self.png_max_bytes,
            jpeg_quality=self.jpeg_quality,
            on_progress=on_progress,
        )
        try:
            rendered = await self.renderer.render_pages_high_quality(document, pages, options)
        except Exception as e:
            # Keep the chunk-quality images
            logger.warning("High-quality render step failed for %s: %s", document.name, e)
            return QualityOutcome(
                artifact=input_data,
                warnings=[render_step_failed_warning(str(e) or type(e).__name__)],
            )

        slides = []
        upgraded: list[int] = []
        missing: list[int] = []
        for slide in input_data.slides:
            image = rendered.images_by_page.get(slide.selected_page_number)
            if image is None:
                missing.append(slide.selected_page_number)
                slides.append(slide)
                continue
            upgraded.append(slide.selected_page_number)
            slides.append(slide.with_image(image))

        warnings: list[str] = []
        if missing:
            for failure in rendered.failed_pages:
                logger.warning("High-quality render failed for page %d: %s", failure.page_number, failure.reason)
            warnings.append(render_failed_warning(len(missing)))

        downgraded = [page for page in rendered.downgraded_pages if page in upgraded]
        if downgraded:
            warnings.append(png_oversized_warning(len(downgraded)))

        logger.debug(
            "Upgraded %d/%d slide image(s) for %s", len(upgraded), len(input_data.slides), document.name
        )
        return QualityOutcome(
            artifact=replace(input_data, slides=slides),
            warnings=warnings,
            upgraded_pages=upgraded,
        )
