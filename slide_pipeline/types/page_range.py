"""Page range type used for chunk planning."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class PageRange:
    """Inclusive, 1-indexed range of document pages.

    Attributes:
        start_page: First page in the range (1-indexed)
        end_page: Last page in the range (inclusive)

    Example:
        >>> PageRange(1, 12).page_count
        12
        >>> PageRange(1, 8).split()
        (PageRange(start_page=1, end_page=4), PageRange(start_page=5, end_page=8))
    """

    start_page: int
    end_page: int

    def __post_init__(self) -> None:
        if self.start_page < 1:
            raise ValueError(f"start_page must be >= 1, got {self.start_page}")
        if self.end_page < self.start_page:
            raise ValueError(f"Invalid page range {self.start_page}-{self.end_page}")

    @property
    def page_count(self) -> int:
        return self.end_page - self.start_page + 1

    @property
    def is_single_page(self) -> bool:
        return self.start_page == self.end_page

    @property
    def page_offset(self) -> int:
        """Zero-based offset of the first page, added to chunk-relative page numbers."""
        return self.start_page - 1

    def pages(self) -> list[int]:
        return list(range(self.start_page, self.end_page + 1))

    def contains(self, page_number: int) -> bool:
        return self.start_page <= page_number <= self.end_page

    def split(self) -> tuple[PageRange, PageRange]:
        """Bisect at the midpoint into two adjacent ranges.

        The left half keeps the extra page when the count is odd.

        Raises:
            ValueError: If the range holds a single page
        """
        if self.is_single_page:
            raise ValueError(f"Cannot split single-page range {self}")
        mid = (self.start_page + self.end_page) // 2
        return PageRange(self.start_page, mid), PageRange(mid + 1, self.end_page)

    def __str__(self) -> str:
        return f"{self.start_page}-{self.end_page}"
