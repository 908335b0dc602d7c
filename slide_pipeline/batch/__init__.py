"""Sequential batch processing for presentation analysis."""

from __future__ import annotations

from slide_pipeline.batch.processor import BatchOrchestrator
from slide_pipeline.batch.types import BatchItem, BatchProgress, BatchStatus

__all__ = ["BatchOrchestrator", "BatchItem", "BatchProgress", "BatchStatus"]
