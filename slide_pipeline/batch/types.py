"""Data types for sequential batch processing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from slide_pipeline.conversion.pdf import PdfDocument
    from slide_pipeline.types import DocumentArtifact, ProgressEvent


class BatchStatus(str, Enum):
    """Lifecycle of a batch item.

    pending → parsing → ready → analyzing → complete | error
    """

    PENDING = "pending"
    PARSING = "parsing"
    READY = "ready"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(eq=False)
class BatchItem:
    """One presentation submitted for analysis.

    Attributes:
        id: Stable identifier (<name>-<timestamp>-<index>)
        name: Display name (file name)
        path: Source path as submitted
        document: Opened document handle (set once parsing succeeds)
        status: Lifecycle status
        result: Merged artifact once complete
        error: Failure text, or a warning when status is complete
        progress: Latest progress snapshot
    """

    id: str
    name: str
    path: Path
    document: PdfDocument | None = None
    status: BatchStatus = BatchStatus.PENDING
    result: DocumentArtifact | None = None
    error: str | None = None
    progress: ProgressEvent | None = None

    @property
    def stem(self) -> str:
        """File name without extension."""
        return self.path.stem

    @property
    def is_available(self) -> bool:
        """Whether the source document can still be analyzed."""
        return self.document is not None and self.document.is_available()

    @property
    def has_warning(self) -> bool:
        return self.status is BatchStatus.COMPLETE and bool(self.error)

    def mark_ready(self, document: PdfDocument) -> None:
        self.document = document
        self.status = BatchStatus.READY
        self.error = None

    def mark_analyzing(self, progress: ProgressEvent) -> None:
        self.status = BatchStatus.ANALYZING
        self.error = None
        self.progress = progress

    def mark_completed(self, result: DocumentArtifact, warning: str | None = None) -> None:
        """Mark item as complete; ``warning`` is kept in ``error``."""
        self.status = BatchStatus.COMPLETE
        self.result = result
        self.error = warning

    def mark_failed(self, error: str) -> None:
        """Mark item as failed with error message."""
        self.status = BatchStatus.ERROR
        self.error = error

    def reset(self) -> None:
        """Return the item to ``ready`` with no result, error or progress."""
        self.status = BatchStatus.READY
        self.result = None
        self.error = None
        self.progress = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "error": self.error,
            "selected_pages": self.result.selected_pages if self.result else [],
        }


@dataclass
class BatchProgress:
    """Aggregate progress over the items of one batch run.

    Attributes:
        total: Number of items in the run
        completed: Items that reached ``complete``
        failed: Items that reached ``error``
        current_label: Name of the item in flight (or next up)
        progress: Latest event, with the percent blended over the batch
    """

    total: int
    completed: int = 0
    failed: int = 0
    current_label: str | None = None
    progress: ProgressEvent | None = None

    @property
    def progress_pct(self) -> int:
        """Progress percentage (0-100)."""
        return self.progress.percent if self.progress is not None else 0

    @property
    def is_complete(self) -> bool:
        """Check if all items are resolved."""
        return (self.completed + self.failed) == self.total

    def update(self, completed: int, failed: int, current_label: str | None, progress: ProgressEvent) -> None:
        self.completed = completed
        self.failed = failed
        self.current_label = current_label
        self.progress = progress

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "current_label": self.current_label,
            "stage": self.progress.stage.value if self.progress else None,
            "message": self.progress.message if self.progress else None,
            "percent": self.progress_pct,
        }
