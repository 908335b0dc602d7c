"""Sequential batch orchestrator for presentation analysis."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from pathlib import Path

from slide_pipeline.batch.types import BatchItem, BatchProgress, BatchStatus
from slide_pipeline.constants import MAX_DOCUMENT_BYTES
from slide_pipeline.conversion.pdf import is_pdf_path, open_document
from slide_pipeline.document import DocumentProcessor
from slide_pipeline.exceptions import FileLoadError, PipelineError
from slide_pipeline.misc import timestamp_ms
from slide_pipeline.progress import PREPARING_PERCENT, ProgressReporter, batch_percent
from slide_pipeline.types import DocumentArtifact, ProgressEvent, ProgressStage

logger = logging.getLogger(__name__)

UNSUPPORTED_FILE_MESSAGE = "Only PDF files are supported for presentations."
UNAVAILABLE_MESSAGE = "Original PDF is unavailable in this session. Re-upload the file to analyze."
DEFAULT_FAILURE_MESSAGE = "Failed to analyze presentation."

BatchProgressListener = Callable[[BatchProgress], None]


class BatchOrchestrator:
    """Runs ready presentations one at a time, in upload order.

    A failed document never stops the batch. Each document gets its own
    ``ProgressReporter``; its events are folded into the item's snapshot and
    the aggregate ``BatchProgress``.

    Example:
        >>> orchestrator = BatchOrchestrator(DocumentProcessor(renderer, client))
        >>> orchestrator.add_document("decks/q3.pdf")
        >>> progress = await orchestrator.run()
        >>> progress.completed, progress.failed
        (1, 0)
    """

    def __init__(
        self,
        processor: DocumentProcessor,
        max_document_bytes: int = MAX_DOCUMENT_BYTES,
        on_progress: BatchProgressListener | None = None,
    ):
        self.processor = processor
        self.max_document_bytes = max_document_bytes
        self.on_progress = on_progress
        self.progress: BatchProgress | None = None
        self._items: dict[str, BatchItem] = {}
        self._upload_count = 0
        self._running = False

    @property
    def items(self) -> list[BatchItem]:
        return list(self._items.values())

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def ready_count(self) -> int:
        return sum(1 for item in self._items.values() if item.status is BatchStatus.READY)

    def get_item(self, item_id: str) -> BatchItem | None:
        return self._items.get(item_id)

    def add_document(self, path: str | Path) -> BatchItem:
        """Register an upload and parse it to ``ready`` (or ``error``)."""
        path = Path(path)
        item_id = f"{path.name}-{timestamp_ms()}-{self._upload_count}"
        self._upload_count += 1
        item = BatchItem(id=item_id, name=path.name, path=path)
        self._items[item_id] = item

        if not is_pdf_path(path):
            item.mark_failed(UNSUPPORTED_FILE_MESSAGE)
            logger.warning("Rejected %s: %s", path.name, UNSUPPORTED_FILE_MESSAGE)
            return item

        item.status = BatchStatus.PARSING
        try:
            document = open_document(path, max_bytes=self.max_document_bytes)
        except PipelineError as e:
            item.mark_failed(str(e))
            logger.error("Failed to load %s: %s", path.name, e)
            return item

        item.mark_ready(document)
        logger.info("Added %s (%d pages, %d bytes)", path.name, document.page_count, document.size_bytes)
        return item

    def retry_item(self, item_id: str) -> BatchItem | None:
        """Reset an item to ``ready``; no-op while a batch is running."""
        if self._running:
            logger.warning("Ignoring retry of %s while a batch is running", item_id)
            return None
        item = self._items.get(item_id)
        if item is None:
            return None
        if not item.is_available:
            item.result = None
            item.progress = None
            item.mark_failed(UNAVAILABLE_MESSAGE)
            return item
        item.reset()
        return item

    def remove_item(self, item_id: str) -> bool:
        item = self._items.get(item_id)
        if item is None or item.status is BatchStatus.ANALYZING:
            return False
        del self._items[item_id]
        return True

    def clear(self) -> None:
        """Drop every item and the batch progress.

        Items of a running batch that have not started yet are skipped.
        """
        self._items.clear()
        self.progress = None

    def completed_results(self) -> list[DocumentArtifact]:
        return [item.result for item in self._items.values() if item.result is not None]

    async def run(self) -> BatchProgress | None:
        """Analyze every ``ready`` item sequentially.

        Returns:
            Final batch progress, or None if nothing was ready or a run is
            already in progress
        """
        if self._running:
            logger.warning("Batch already running; ignoring run request")
            return None

        queue = [item for item in self._items.values() if item.status is BatchStatus.READY]
        if not queue:
            logger.info("No ready presentations to analyze")
            return None

        self._running = True
        try:
            progress = BatchProgress(
                total=len(queue),
                current_label=queue[0].name,
                progress=ProgressEvent(ProgressStage.PREPARING, "Starting presentation analysis...", 0),
            )
            self.progress = progress
            self._publish()
            logger.info("Starting batch of %d presentation(s)", len(queue))

            for queue_index, item in enumerate(queue):
                if item.id not in self._items:
                    logger.info("Skipping %s: removed before analysis", item.name)
                    continue
                await self._process_item(item, queue_index, queue, progress)
                self._advance(queue_index, queue, progress)
        finally:
            self._running = False

        logger.info(
            "Batch finished: %d completed, %d failed of %d",
            progress.completed,
            progress.failed,
            progress.total,
        )
        return progress

    def _counts(self, queue: list[BatchItem]) -> tuple[int, int]:
        completed = sum(1 for item in queue if item.status is BatchStatus.COMPLETE)
        failed = sum(1 for item in queue if item.status is BatchStatus.ERROR)
        return completed, failed

    def _publish(self) -> None:
        if self.on_progress is not None and self.progress is not None:
            self.on_progress(copy.copy(self.progress))

    async def _process_item(
        self,
        item: BatchItem,
        queue_index: int,
        queue: list[BatchItem],
        progress: BatchProgress,
    ) -> None:
        def on_event(event: ProgressEvent) -> None:
            item.progress = event
            completed, failed = self._counts(queue)
            progress.update(
                completed,
                failed,
                item.name,
                event.with_percent(batch_percent(queue_index, event.percent, len(queue))),
            )
            self._publish()

        reporter = ProgressReporter(listener=on_event)
        preparing = ProgressEvent(ProgressStage.PREPARING, "Preparing presentation...", PREPARING_PERCENT)
        item.mark_analyzing(preparing)
        on_event(preparing)

        try:
            if item.document is None or not item.is_available:
                raise FileLoadError(UNAVAILABLE_MESSAGE)
            outcome = await self.processor.process(item.document, reporter)
        except PipelineError as e:
            logger.error("Analysis failed for %s: %s", item.name, e)
            item.mark_failed(str(e) or DEFAULT_FAILURE_MESSAGE)
            reporter.error()
            return
        except Exception as e:
            # Fallback for unexpected errors; the batch continues
            logger.error("Unexpected error analyzing %s: %s", item.name, e, exc_info=True)
            item.mark_failed(str(e) or DEFAULT_FAILURE_MESSAGE)
            reporter.error()
            return

        item.mark_completed(outcome.artifact, outcome.warning)
        if outcome.warning:
            logger.warning("%s completed with warnings: %s", item.name, outcome.warning)
        reporter.complete(outcome.completion_message)

    def _advance(self, queue_index: int, queue: list[BatchItem], progress: BatchProgress) -> None:
        done = queue_index + 1
        completed, failed = self._counts(queue)
        if done < len(queue):
            event = ProgressEvent(ProgressStage.PREPARING, "Loading next presentation...", done / len(queue) * 100)
            label: str | None = queue[done].name
        else:
            event = ProgressEvent(ProgressStage.COMPLETE, "Batch analysis complete.", 100)
            label = None
        progress.update(completed, failed, label, event)
        self._publish()
