"""Chunk planning: partition a document's pages into inference-sized ranges.

The planner picks one chunk size per document from the estimated bytes per
page and produces the initial ranges. ``ChunkQueue`` then owns those ranges
for the duration of the document run; the chunk executor pops from it and
pushes split children back to its front.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

from slide_pipeline.constants import (
    DEFAULT_CHUNK_SIZE,
    HEAVY_CHUNK_SIZE,
    HEAVY_PAGE_BYTES,
    MEDIUM_CHUNK_SIZE,
    MEDIUM_PAGE_BYTES,
)
from slide_pipeline.types import PageRange

logger = logging.getLogger(__name__)


def choose_chunk_size(file_size_bytes: int, page_count: int) -> int:
    """Pick pages-per-chunk from the estimated bytes per page.

    Example:
        >>> choose_chunk_size(2 * 1024 * 1024, 20)  # ~100KB/page
        12
        >>> choose_chunk_size(40 * 1024 * 1024, 60)  # ~680KB/page
        6
    """
    bytes_per_page = file_size_bytes / max(1, page_count)
    if bytes_per_page > HEAVY_PAGE_BYTES:
        return HEAVY_CHUNK_SIZE
    if bytes_per_page > MEDIUM_PAGE_BYTES:
        return MEDIUM_CHUNK_SIZE
    return DEFAULT_CHUNK_SIZE


def plan_chunks(page_count: int, file_size_bytes: int) -> list[PageRange]:
    """Partition pages 1..page_count into ordered, non-overlapping ranges.

    Example:
        >>> plan_chunks(20, 2 * 1024 * 1024)
        [PageRange(start_page=1, end_page=12), PageRange(start_page=13, end_page=20)]
    """
    if page_count < 1:
        return []

    chunk_size = choose_chunk_size(file_size_bytes, page_count)
    ranges = [
        PageRange(start, min(page_count, start + chunk_size - 1))
        for start in range(1, page_count + 1, chunk_size)
    ]
    logger.debug(
        "Planned %d chunk(s) of up to %d pages for %d pages (%d bytes)",
        len(ranges),
        chunk_size,
        page_count,
        file_size_bytes,
    )
    return ranges


class ChunkQueue:
    """FIFO of page ranges still to be processed for one document.

    A range is either pending, current (popped and in flight), or resolved
    (succeeded or permanently failed). Splitting the current range puts both
    children at the front of the queue so they run before any later range.

    Example:
        >>> queue = ChunkQueue([PageRange(1, 8), PageRange(9, 12)])
        >>> current = queue.pop()
        >>> queue.split_current()
        (PageRange(start_page=1, end_page=4), PageRange(start_page=5, end_page=8))
        >>> queue.pop()
        PageRange(start_page=1, end_page=4)
    """

    def __init__(self, ranges: Iterable[PageRange]):
        self._pending: deque[PageRange] = deque(ranges)
        self._current: PageRange | None = None
        self._resolved = 0

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)

    @property
    def current(self) -> PageRange | None:
        return self._current

    @property
    def position(self) -> int:
        """Zero-based index of the current chunk among all chunks seen so far."""
        return self._resolved

    @property
    def total(self) -> int:
        """Resolved + in-flight + pending chunk count."""
        return self._resolved + len(self._pending) + (1 if self._current is not None else 0)

    def pop(self) -> PageRange:
        if self._current is not None:
            raise RuntimeError(f"Range {self._current} is still in flight")
        self._current = self._pending.popleft()
        return self._current

    def resolve_current(self) -> None:
        """Mark the current range as done (succeeded or permanently failed)."""
        if self._current is None:
            raise RuntimeError("No range in flight")
        self._current = None
        self._resolved += 1

    def split_current(self) -> tuple[PageRange, PageRange]:
        """Replace the current range with its two halves at the queue front."""
        if self._current is None:
            raise RuntimeError("No range in flight")
        left, right = self._current.split()
        self._pending.appendleft(right)
        self._pending.appendleft(left)
        self._current = None
        return left, right

    def abandon(self) -> list[PageRange]:
        """Drop the current and all pending ranges, returning them."""
        dropped = ([self._current] if self._current is not None else []) + list(self._pending)
        self._pending.clear()
        self._current = None
        return dropped

    def unresolved_pages(self) -> list[int]:
        active = ([self._current] if self._current is not None else []) + list(self._pending)
        return sorted(page for page_range in active for page in page_range.pages())
