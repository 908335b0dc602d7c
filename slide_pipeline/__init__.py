"""Slide insight pipeline: pick high-signal slides from investor presentations."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .batch import BatchItem, BatchOrchestrator, BatchProgress, BatchStatus
from .config import PipelineConfig
from .conversion import PdfPageRenderer
from .document import DocumentOutcome, DocumentProcessor, Sleeper
from .inference import create_inference_client
from .io import ArtifactSaver
from .misc import set_default_timezone
from .stages import QualityStage
from .types import DocumentArtifact, InferenceClient, PageRenderer

if TYPE_CHECKING:
    from .batch.processor import BatchProgressListener

logger = logging.getLogger(__name__)


class SlidePipeline:
    """Presentation analysis pipeline wired from a ``PipelineConfig``.

    Stages per document:
    1. Planning: split pages into chunks sized by bytes per page
    2. Chunks: render, guard payload size, select slides (with retry/split)
    3. Merge: deduplicate slides and resolve document metadata
    4. Quality: re-render the selected slides at high fidelity
    5. Output: save artifacts, slide images and a batch summary

    Example:
        >>> from slide_pipeline import PipelineConfig, SlidePipeline
        >>>
        >>> pipeline = SlidePipeline(PipelineConfig(provider="gemini"))
        >>> pipeline.add_inputs(Path("decks/"))
        >>> progress = await pipeline.run()
        >>> pipeline.save_results()
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        client: InferenceClient | None = None,
        renderer: PageRenderer | None = None,
        sleep: Sleeper = asyncio.sleep,
        on_progress: BatchProgressListener | None = None,
    ):
        self.config = config or PipelineConfig()
        self.config.validate()
        set_default_timezone(self.config.timezone)

        self.renderer = renderer or PdfPageRenderer(max_pages_per_request=self.config.max_pages_per_request)
        self.client = client or create_inference_client(self.config.provider, self.config.model)
        self.processor = DocumentProcessor(
            self.renderer,
            self.client,
            policy=self.config.retry_policy(),
            max_payload_bytes=self.config.max_payload_bytes,
            quality_stage=QualityStage(
                self.renderer,
                scale=self.config.high_quality_scale,
                png_max_bytes=self.config.high_quality_png_max_bytes,
                jpeg_quality=self.config.high_quality_jpeg_quality,
            ),
            sleep=sleep,
        )
        self.orchestrator = BatchOrchestrator(
            self.processor,
            max_document_bytes=self.config.max_document_bytes,
            on_progress=on_progress,
        )
        self.saver = ArtifactSaver(self.config.output_dir, self.config.provider, self.config.model or "")

    def add_inputs(self, input_path: str | Path) -> list[BatchItem]:
        """Register a file, or every PDF in a directory (sorted by name)."""
        input_path = Path(input_path)
        if input_path.is_dir():
            paths = sorted(path for path in input_path.iterdir() if path.suffix.lower() == ".pdf")
            logger.info("Found %d PDF file(s) in %s", len(paths), input_path)
        else:
            paths = [input_path]
        return [self.orchestrator.add_document(path) for path in paths]

    async def run(self) -> BatchProgress | None:
        return await self.orchestrator.run()

    def save_results(self) -> list[Path]:
        return self.saver.save_all(self.orchestrator.items, self.orchestrator.progress)


__all__ = [
    "SlidePipeline",
    "PipelineConfig",
    "BatchOrchestrator",
    "BatchItem",
    "BatchProgress",
    "BatchStatus",
    "DocumentProcessor",
    "DocumentOutcome",
    "DocumentArtifact",
    "ArtifactSaver",
]
