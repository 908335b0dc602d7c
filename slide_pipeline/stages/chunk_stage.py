"""Chunk stage: render one page range, guard the payload, run inference."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from slide_pipeline.constants import MAX_PAYLOAD_BYTES
from slide_pipeline.conversion.profiles import DEFAULT_PROFILES, select_render_profile
from slide_pipeline.exceptions import OversizedPayloadError
from slide_pipeline.stages.base import BaseStage
from slide_pipeline.types import (
    ChunkResult,
    InferenceClient,
    MessageCallback,
    PageRange,
    PageRenderer,
    RenderProfile,
    payload_size,
)

if TYPE_CHECKING:
    from slide_pipeline.conversion.pdf import PdfDocument

logger = logging.getLogger(__name__)

ANALYZING_MESSAGE = "Analyzing slides with AI..."

_MIB = 1024 * 1024


@dataclass(frozen=True)
class ChunkRequest:
    """One attempt at one page range.

    Attributes:
        document: Source presentation
        page_range: Pages to render and analyze
        attempt: Zero-based attempt index, selects the render profile
    """

    document: PdfDocument
    page_range: PageRange
    attempt: int = 0


class ChunkStage(BaseStage[ChunkRequest, ChunkResult]):
    """Executes a single chunk attempt.

    Rendering uses the profile for the request's attempt index. When the
    summed encoded payload exceeds ``max_payload_bytes`` the inference call is
    skipped and ``OversizedPayloadError`` is raised instead.
    """

    name = "chunk"

    def __init__(
        self,
        renderer: PageRenderer,
        client: InferenceClient,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
        profiles: tuple[RenderProfile, ...] = DEFAULT_PROFILES,
    ):
        self.renderer = renderer
        self.client = client
        self.max_payload_bytes = max_payload_bytes
        self.profiles = profiles

    async def _process_impl(
        self,
        input_data: ChunkRequest,
        on_message: MessageCallback | None = None,
        **context: Any,
    ) -> ChunkResult:
        notify = on_message or (lambda _message: None)
        page_range = input_data.page_range
        profile = select_render_profile(input_data.attempt, self.profiles)

        images = await self.renderer.render_pages(input_data.document, page_range, profile, on_message=notify)

        total_bytes = payload_size(images)
        if total_bytes > self.max_payload_bytes:
            logger.warning(
                "Payload for pages %s is %d bytes (max %d) at scale %.2f",
                page_range,
                total_bytes,
                self.max_payload_bytes,
                profile.scale,
            )
            raise OversizedPayloadError(
                f"Rendered payload for pages {page_range} is {total_bytes / _MIB:.1f}MB "
                f"(max {self.max_payload_bytes / _MIB:.0f}MB).",
                payload_bytes=total_bytes,
                limit_bytes=self.max_payload_bytes,
            )

        notify(ANALYZING_MESSAGE)
        result = await self.client.analyze(images, page_range.page_offset, page_range)
        if result.page_range is None:
            result.page_range = page_range
        return result
