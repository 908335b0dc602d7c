"""Progress mapping and the per-document progress channel.

Rendering and inference report free-text status messages. ``map_progress_message``
turns those into typed ``ProgressEvent`` values; ``ProgressReporter`` scales
them into the containing document's percentage and hands them to a listener
(normally the batch orchestrator).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator

from slide_pipeline.types import ProgressEvent, ProgressStage, clamp_percent

logger = logging.getLogger(__name__)

_CONVERTED_PAGE_PATTERN = re.compile(r"converted page\s+(\d+)\s+of\s+(\d+)", re.IGNORECASE)
_CONVERTING_PAGES_PATTERN = re.compile(r"converting\s+(\d+)\s+pages", re.IGNORECASE)

RENDER_START_PERCENT = 15
RENDER_SPAN_PERCENT = 55
ANALYZING_PERCENT = 78
PREPARING_PERCENT = 8

FINALIZING_MIN_PERCENT = 90
FINALIZING_MAX_PERCENT = 99
MERGE_PERCENT = 91
HIGH_QUALITY_START_PERCENT = 93
HIGH_QUALITY_SPAN_PERCENT = 6

ProgressListener = Callable[[ProgressEvent], None]


def map_progress_message(message: str) -> ProgressEvent:
    """Map a free-text status message to a chunk-level progress event.

    Example:
        >>> map_progress_message("Converted page 3 of 6").percent
        42
        >>> map_progress_message("Analyzing slides with AI...").stage
        <ProgressStage.ANALYZING: 'analyzing'>
    """
    converted = _CONVERTED_PAGE_PATTERN.search(message)
    if converted:
        current = int(converted.group(1))
        total = max(1, int(converted.group(2)))
        return ProgressEvent(
            stage=ProgressStage.UPLOADING,
            message=message,
            percent=RENDER_START_PERCENT + (current / total) * RENDER_SPAN_PERCENT,
            current=current,
            total=total,
        )

    converting = _CONVERTING_PAGES_PATTERN.search(message)
    if converting:
        return ProgressEvent(
            stage=ProgressStage.UPLOADING,
            message=message,
            percent=RENDER_START_PERCENT,
            total=int(converting.group(1)),
        )

    if "analyzing" in message.lower():
        return ProgressEvent(stage=ProgressStage.ANALYZING, message=message, percent=ANALYZING_PERCENT)

    return ProgressEvent(stage=ProgressStage.PREPARING, message=message, percent=PREPARING_PERCENT)


def chunk_to_document_percent(chunk_index: int, chunk_count: int, chunk_percent: float) -> int:
    """Scale a chunk's own percentage into its document's percentage."""
    if chunk_count <= 0:
        return 0
    return clamp_percent((chunk_index + chunk_percent / 100) / chunk_count * 100)


def finalizing_percent(value: float) -> int:
    return max(FINALIZING_MIN_PERCENT, min(FINALIZING_MAX_PERCENT, round(value)))


def high_quality_percent(current: int, total: int) -> int:
    ratio = current / total if total > 0 else 1.0
    return finalizing_percent(HIGH_QUALITY_START_PERCENT + ratio * HIGH_QUALITY_SPAN_PERCENT)


def batch_percent(queue_index: int, document_percent: float, document_count: int) -> int:
    """Weighted blend of finished documents and the one in flight."""
    if document_count <= 0:
        return 0
    return clamp_percent((queue_index + document_percent / 100) / document_count * 100)


class ProgressReporter:
    """Typed progress channel for one document run.

    Every published event is recorded and forwarded to the listener. Chunk
    messages are mapped and rescaled before publication.

    Example:
        >>> reporter = ProgressReporter(listener=print)
        >>> on_message = reporter.chunk_callback(chunk_index=0, chunk_count=2, label="Chunk 1/2")
        >>> on_message("Converted page 6 of 12")
    """

    def __init__(self, listener: ProgressListener | None = None):
        self._listener = listener
        self._events: list[ProgressEvent] = []

    def __iter__(self) -> Iterator[ProgressEvent]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> list[ProgressEvent]:
        return list(self._events)

    @property
    def latest(self) -> ProgressEvent | None:
        return self._events[-1] if self._events else None

    def publish(self, event: ProgressEvent) -> None:
        self._events.append(event)
        if self._listener is not None:
            self._listener(event)

    def chunk_callback(self, chunk_index: int, chunk_count: int, label: str = "") -> Callable[[str], None]:
        """Return an ``on_message`` callback scoped to one chunk.

        Messages are mapped before ``label`` is prefixed, so the label never
        affects the detected stage.
        """

        def on_message(message: str) -> None:
            event = map_progress_message(message)
            self.publish(
                event.with_percent(
                    chunk_to_document_percent(chunk_index, chunk_count, event.percent),
                    message=f"{label}: {message}" if label else message,
                )
            )

        return on_message

    def status(self, stage: ProgressStage, message: str, percent: float) -> None:
        self.publish(ProgressEvent(stage=stage, message=message, percent=percent))

    def finalizing(self, message: str, percent: float = MERGE_PERCENT) -> None:
        self.publish(
            ProgressEvent(stage=ProgressStage.FINALIZING, message=message, percent=finalizing_percent(percent))
        )

    def high_quality(self, current: int, total: int, page_number: int) -> None:
        self.publish(
            ProgressEvent(
                stage=ProgressStage.FINALIZING,
                message=f"Finalizing: rendering high-quality slide {current}/{total} (page {page_number})...",
                percent=high_quality_percent(current, total),
                current=current,
                total=total,
            )
        )

    def complete(self, message: str) -> None:
        self.publish(ProgressEvent(stage=ProgressStage.COMPLETE, message=message, percent=100))

    def error(self, message: str = "Analysis failed.") -> None:
        self.publish(ProgressEvent(stage=ProgressStage.ERROR, message=message, percent=100))
