"""Pipeline stages for presentation processing.

Stage inheritance:
    BaseStage → ChunkStage, MergeStage, QualityStage

Usage:
    >>> from slide_pipeline.stages import ChunkRequest, ChunkStage
    >>> stage = ChunkStage(renderer, client)
    >>> result = await stage.process(ChunkRequest(document, PageRange(1, 12)))
"""

from __future__ import annotations

from slide_pipeline.stages.base import BaseStage, StageError
from slide_pipeline.stages.chunk_stage import ANALYZING_MESSAGE, ChunkRequest, ChunkStage
from slide_pipeline.stages.merge_stage import EMPTY_RESULT_MESSAGE, MergeStage, merge_chunk_results
from slide_pipeline.stages.quality_stage import QualityOutcome, QualityStage

__all__ = [
    # Base classes
    "BaseStage",
    "StageError",
    # Result types
    "ChunkRequest",
    "QualityOutcome",
    # Stages
    "ChunkStage",
    "MergeStage",
    "QualityStage",
    # Helpers
    "merge_chunk_results",
    "ANALYZING_MESSAGE",
    "EMPTY_RESULT_MESSAGE",
]
