"""Analysis result types: per-chunk results and the merged document artifact."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from .page_range import PageRange
from .rendering import EncodedImage

METADATA_FIELDS: tuple[str, ...] = (
    "company_name",
    "fiscal_period",
    "ticker",
    "market_cap_category",
    "industry",
    "company_description",
    "stock_url",
)
"""Document-level fields shared by ChunkResult and DocumentArtifact."""


@dataclass(frozen=True)
class SelectedSlide:
    """A slide chosen by the model as high-signal.

    Attributes:
        selected_page_number: Absolute 1-indexed page number in the document
        rationale: Why the slide was chosen
        revealed_content: What the slide reveals to an investor
        page_image: Rendered image of the page (chunk quality or upgraded)
    """

    selected_page_number: int
    rationale: str
    revealed_content: str
    page_image: EncodedImage | None = None

    def with_image(self, image: EncodedImage) -> SelectedSlide:
        return replace(self, page_image=image)

    def to_dict(self, include_image: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "selected_page_number": self.selected_page_number,
            "rationale": self.rationale,
            "revealed_content": self.revealed_content,
        }
        if include_image and self.page_image is not None:
            data["page_image"] = self.page_image.to_data_url()
        return data


@dataclass
class ChunkResult:
    """Structured inference output for one page range."""

    company_name: str = ""
    fiscal_period: str = ""
    ticker: str = ""
    market_cap_category: str = ""
    industry: str = ""
    company_description: str = ""
    stock_url: str = ""
    slides: list[SelectedSlide] = field(default_factory=list)
    page_range: PageRange | None = None


@dataclass
class DocumentArtifact:
    """Merged, final per-document result.

    Slides are unique by page number and sorted ascending.
    """

    company_name: str = ""
    fiscal_period: str = ""
    ticker: str = ""
    market_cap_category: str = ""
    industry: str = ""
    company_description: str = ""
    stock_url: str = ""
    slides: list[SelectedSlide] = field(default_factory=list)

    @property
    def selected_pages(self) -> list[int]:
        return [slide.selected_page_number for slide in self.slides]

    def to_dict(self, include_images: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {name: getattr(self, name) for name in METADATA_FIELDS}
        data["slides"] = [slide.to_dict(include_image=include_images) for slide in self.slides]
        return data
