"""Progress event types."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class ProgressStage(str, Enum):
    """Coarse processing stage reported to callers."""

    PREPARING = "preparing"
    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    ERROR = "error"


def clamp_percent(value: float) -> int:
    """Round and clamp a percentage into [0, 100]."""
    return max(0, min(100, round(value)))


@dataclass(frozen=True)
class ProgressEvent:
    """Normalized progress snapshot.

    Attributes:
        stage: Current stage
        message: Human-readable status text
        percent: Completion in [0, 100]
        current: Optional item counter (e.g. page being converted)
        total: Optional item total
    """

    stage: ProgressStage
    message: str
    percent: int = 0
    current: int | None = None
    total: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "percent", clamp_percent(self.percent))

    def with_percent(self, percent: float, message: str | None = None) -> ProgressEvent:
        return replace(
            self,
            percent=clamp_percent(percent),
            message=self.message if message is None else message,
        )
