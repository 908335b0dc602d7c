"""Per-document driver: plan, run chunks with retries, merge, upgrade.

One ``DocumentProcessor.process`` call owns its ``ChunkQueue`` and result
list for the whole run. Chunks are attempted strictly one at a time in
queue order; split children run before any later range.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from slide_pipeline.constants import MAX_PAYLOAD_BYTES, TARGET_SLIDES_PER_DOCUMENT
from slide_pipeline.conversion.pdf import PdfDocument
from slide_pipeline.exceptions import ChunkFailedError, DocumentAbortedError
from slide_pipeline.inference.base import geo_block_message
from slide_pipeline.misc import pluralize
from slide_pipeline.planning import ChunkQueue, plan_chunks
from slide_pipeline.progress import HIGH_QUALITY_START_PERCENT, MERGE_PERCENT, ProgressReporter
from slide_pipeline.retry import (
    FailureKind,
    RetryAction,
    RetryPolicy,
    classify_failure,
    describe_retry,
)
from slide_pipeline.stages import ChunkRequest, ChunkStage, MergeStage, QualityStage
from slide_pipeline.types import ChunkResult, DocumentArtifact, InferenceClient, PageRange, PageRenderer

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

NO_CHUNKS_MESSAGE = "No analyzable chunks were produced for this presentation."
DEFAULT_PROVIDER_LABEL = "Gemini"


@dataclass(frozen=True)
class ChunkFailure:
    """A page range that failed permanently.

    Attributes:
        label: "Chunk i/n" at the time of failure
        page_range: Pages of the failed range
        kind: Classified failure kind
        message: Error text
    """

    label: str
    page_range: PageRange
    kind: FailureKind
    message: str

    def describe(self) -> str:
        return f"{self.label} pages {self.page_range} failed: {self.message}"


@dataclass
class DocumentOutcome:
    """Result of one document run.

    Attributes:
        artifact: Merged artifact with upgraded images where possible
        failed_chunks: Ranges that failed permanently
        quality_warnings: Warnings from the quality upgrade
    """

    artifact: DocumentArtifact
    failed_chunks: list[ChunkFailure] = field(default_factory=list)
    quality_warnings: list[str] = field(default_factory=list)

    @property
    def partial_warning(self) -> str | None:
        if not self.failed_chunks:
            return None
        count = len(self.failed_chunks)
        return f"Partial analysis: {count} chunk(s) failed. {self.failed_chunks[0].describe()}"

    @property
    def warning(self) -> str | None:
        parts = [self.partial_warning, " ".join(self.quality_warnings)]
        combined = " ".join(part for part in parts if part).strip()
        return combined or None

    @property
    def completion_message(self) -> str:
        slide_count = len(self.artifact.slides)
        if slide_count < TARGET_SLIDES_PER_DOCUMENT:
            return f"Analysis complete with {slide_count} high-signal {pluralize(slide_count, 'slide')}."
        if self.warning:
            return "Analysis complete with recoverable warnings."
        return "Analysis complete."


class DocumentProcessor:
    """Runs one presentation through chunking, merging and quality upgrade.

    Example:
        >>> processor = DocumentProcessor(PdfPageRenderer(), create_inference_client("gemini"))
        >>> outcome = await processor.process(open_document("deck.pdf"))
        >>> outcome.artifact.selected_pages
        [4, 9, 17]
    """

    def __init__(
        self,
        renderer: PageRenderer,
        client: InferenceClient,
        policy: RetryPolicy | None = None,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
        quality_stage: QualityStage | None = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self.provider_label = getattr(client, "PROVIDER_LABEL", DEFAULT_PROVIDER_LABEL)
        self.chunk_stage = ChunkStage(renderer, client, max_payload_bytes=max_payload_bytes)
        self.merge_stage = MergeStage()
        self.quality_stage = quality_stage or QualityStage(renderer)
        self.sleep = sleep

    async def process(self, document: PdfDocument, reporter: ProgressReporter | None = None) -> DocumentOutcome:
        """Process one document.

        Raises:
            DocumentAbortedError: Geo-blocked; remaining chunks were not attempted
            ChunkFailedError: Every chunk failed
            EmptyResultError: Chunks succeeded but no slides survived merging
        """
        if reporter is None:
            reporter = ProgressReporter()
        queue = ChunkQueue(plan_chunks(document.page_count, document.size_bytes))
        logger.info("Processing %s: %d pages in %d chunk(s)", document.name, document.page_count, queue.total)

        results: list[ChunkResult] = []
        failures: list[ChunkFailure] = []
        while queue:
            page_range = queue.pop()
            result = await self._run_chunk(document, queue, page_range, reporter, failures)
            if result is not None:
                results.append(result)

        if not results:
            details = failures[0].describe() if failures else NO_CHUNKS_MESSAGE
            logger.error("All chunks failed for %s: %s", document.name, details)
            raise ChunkFailedError(details)

        reporter.finalizing(
            "Finalizing: verifying slide-context fit and filtering low-signal slides...", MERGE_PERCENT
        )
        artifact = await self.merge_stage.process(results)

        reporter.finalizing("Finalizing: rendering selected slides in high quality...", HIGH_QUALITY_START_PERCENT)
        quality = await self.quality_stage.process(artifact, document=document, on_progress=reporter.high_quality)

        outcome = DocumentOutcome(
            artifact=quality.artifact,
            failed_chunks=failures,
            quality_warnings=quality.warnings,
        )
        logger.info(
            "Finished %s: %d slide(s), %d failed chunk(s)",
            document.name,
            len(outcome.artifact.slides),
            len(failures),
        )
        return outcome

    async def _run_chunk(
        self,
        document: PdfDocument,
        queue: ChunkQueue,
        page_range: PageRange,
        reporter: ProgressReporter,
        failures: list[ChunkFailure],
    ) -> ChunkResult | None:
        """Attempt one range until it succeeds, splits, fails or aborts the document."""
        attempt = 0
        while True:
            index, total = queue.position, queue.total
            label = f"Chunk {index + 1}/{total}"
            on_message = reporter.chunk_callback(index, total, label)

            try:
                result = await self.chunk_stage.process(
                    ChunkRequest(document, page_range, attempt),
                    on_message=on_message,
                )
            except Exception as e:
                error = e
                failure = classify_failure(e)
                decision = self.policy.decide(failure, attempt, page_range)
            else:
                queue.resolve_current()
                return result

            if decision.action is RetryAction.RETRY:
                retry_number = attempt + 1
                logger.warning(
                    "%s pages %s: %s failure, retry %d/%d in %dms: %s",
                    label,
                    page_range,
                    failure.kind.value,
                    retry_number,
                    self.policy.max_retries,
                    decision.delay_ms,
                    failure.message,
                )
                on_message(describe_retry(failure, decision.delay_ms, retry_number, self.policy.max_retries))
                await self.sleep(decision.delay_seconds)
                attempt = retry_number
                continue

            if decision.action is RetryAction.SPLIT:
                left, right = queue.split_current()
                reason = (
                    "payload too large" if failure.kind is FailureKind.OVERSIZED_PAYLOAD else "repeated upstream failures"
                )
                logger.warning("%s pages %s: %s, splitting into %s and %s", label, page_range, reason, left, right)
                on_message(f"Splitting range due to {reason}...")
                return None

            if decision.action is RetryAction.ABORT_DOCUMENT:
                logger.error("%s pages %s: aborting document: %s", label, page_range, failure.message)
                queue.abandon()
                message = geo_block_message(self.provider_label)
                raise DocumentAbortedError(f"{message} ({label} pages {page_range})") from error

            message = failure.message
            if failure.kind is FailureKind.OVERSIZED_PAYLOAD:
                message = f"{label} (pages {page_range}) is too large even for a single page."
            chunk_failure = ChunkFailure(label, page_range, failure.kind, message)
            logger.error("%s", chunk_failure.describe())
            failures.append(chunk_failure)
            queue.resolve_current()
            return None
