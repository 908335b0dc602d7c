"""Merge stage: fold successful chunk results into one document artifact."""

from __future__ import annotations

import logging
from typing import Any

from slide_pipeline.exceptions import EmptyResultError
from slide_pipeline.stages.base import BaseStage
from slide_pipeline.types import METADATA_FIELDS, ChunkResult, DocumentArtifact, SelectedSlide

logger = logging.getLogger(__name__)

EMPTY_RESULT_MESSAGE = "No valid insight slides were selected across chunks."


def resolve_field(results: list[ChunkResult], name: str) -> str:
    """First non-empty value of ``name`` across results, else the first result's value."""
    values = [getattr(result, name) for result in results]
    for value in values:
        if value and value.strip():
            return value
    return values[0] if values else ""


def merge_slides(results: list[ChunkResult]) -> list[SelectedSlide]:
    """Deduplicate by page number (first seen wins) and sort ascending."""
    by_page: dict[int, SelectedSlide] = {}
    for result in results:
        for slide in result.slides:
            by_page.setdefault(slide.selected_page_number, slide)
    return [by_page[page] for page in sorted(by_page)]


def merge_chunk_results(results: list[ChunkResult]) -> DocumentArtifact:
    """Merge chunk results in processing order.

    Raises:
        EmptyResultError: If no slides survive merging
    """
    slides = merge_slides(results)
    if not slides:
        raise EmptyResultError(EMPTY_RESULT_MESSAGE)
    metadata = {name: resolve_field(results, name) for name in METADATA_FIELDS}
    return DocumentArtifact(**metadata, slides=slides)


class MergeStage(BaseStage[list[ChunkResult], DocumentArtifact]):
    """Result merger stage."""

    name = "merge"

    async def _process_impl(self, input_data: list[ChunkResult], **context: Any) -> DocumentArtifact:
        artifact = merge_chunk_results(input_data)
        logger.debug(
            "Merged %d chunk result(s) into %d slide(s): pages %s",
            len(input_data),
            len(artifact.slides),
            artifact.selected_pages,
        )
        return artifact
