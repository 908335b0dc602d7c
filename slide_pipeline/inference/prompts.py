"""Prompt text and structured-output schema for slide selection."""

from __future__ import annotations

from typing import Any

from slide_pipeline.constants import TARGET_SLIDES_PER_DOCUMENT

SLIDE_SELECTION_PROMPT = f"""
You are an equity research analyst writing a newsletter for investors.
Look at an investor presentation (provided as slide images, in page order) and pick the
top {TARGET_SLIDES_PER_DOCUMENT} most insightful slides.

Selection rules:
1. Choose slides with material signal (business, sector, profitability, risks, long-term opportunity).
2. Prefer slides with measurable change (YoY, CAGR, segment/geography contrast).
3. Prioritize archetypes: market structure, unit economics, geo/customer mix, product mix, TAM + growth.
4. Ignore values/mission-only slides, decorative covers, awards, factory photos without data, and org charts.
5. Rank by materiality, signal-to-noise, and narrative clarity.

Output:
- Return one JSON object with companyName, fiscalPeriod, ticker, marketCapCategory, industry,
  companyDescription, stockUrl and slides.
- Use an empty string for any company field that is not visible in these slides.
- slides must contain at most {TARGET_SLIDES_PER_DOCUMENT} objects.
- Each slide object includes selectedPageNumber (1-indexed position among the images you were given),
  whyThisSlide and whatThisSlideReveals.
- Do not start explanations with "In this slide" or "This slide shows".
- Return valid JSON only.
""".strip()


def build_prompt(page_count: int, start_page: int, end_page: int, document_pages: int | None = None) -> str:
    """Prompt for one chunk, noting where the chunk sits in the deck."""
    location = f"These {page_count} images are pages {start_page}-{end_page}"
    if document_pages:
        location += f" of a {document_pages}-page presentation"
    return f"{SLIDE_SELECTION_PROMPT}\n\n{location}. Number them 1-{page_count} in selectedPageNumber."


RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "companyName": {"type": "STRING"},
        "fiscalPeriod": {"type": "STRING"},
        "ticker": {"type": "STRING"},
        "marketCapCategory": {"type": "STRING"},
        "industry": {"type": "STRING"},
        "companyDescription": {"type": "STRING"},
        "stockUrl": {"type": "STRING"},
        "slides": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "selectedPageNumber": {"type": "INTEGER"},
                    "whyThisSlide": {"type": "STRING"},
                    "whatThisSlideReveals": {"type": "STRING"},
                },
                "required": ["selectedPageNumber", "whyThisSlide", "whatThisSlideReveals"],
            },
        },
    },
    "required": ["companyName", "fiscalPeriod", "slides"],
}
"""Gemini response schema (OpenAPI subset understood by google-genai)."""

RESPONSE_FIELD_MAP: dict[str, str] = {
    "companyName": "company_name",
    "fiscalPeriod": "fiscal_period",
    "ticker": "ticker",
    "marketCapCategory": "market_cap_category",
    "industry": "industry",
    "companyDescription": "company_description",
    "stockUrl": "stock_url",
}
"""Response keys mapped to ChunkResult metadata attributes."""
