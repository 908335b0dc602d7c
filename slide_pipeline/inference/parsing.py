"""Response parsing and validation for slide-selection output."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from slide_pipeline.exceptions import FatalInferenceError, SchemaIncompatibleError
from slide_pipeline.inference.prompts import RESPONSE_FIELD_MAP
from slide_pipeline.types import ChunkResult, EncodedImage, PageRange, SelectedSlide

logger = logging.getLogger(__name__)

SCHEMA_FAILURE_MESSAGE = "Model could not satisfy strict structured output requirements."

_JSON_FENCE_PATTERN = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_GENERIC_NARRATION_PATTERN = re.compile(
    r"^(in this slide|this slide shows|the slide shows)\s*[:,-]?\s*",
    re.IGNORECASE,
)


def strip_json_fence(text: str) -> str:
    return _JSON_FENCE_PATTERN.sub("", text).strip()


def parse_json_payload(text: str | None) -> dict[str, Any]:
    """Decode the model's JSON text.

    Raises:
        SchemaIncompatibleError: On an empty response, invalid JSON or a non-object root
    """
    cleaned = strip_json_fence(text or "")
    if not cleaned:
        raise SchemaIncompatibleError(f"{SCHEMA_FAILURE_MESSAGE} (empty response)")
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise SchemaIncompatibleError(f"{SCHEMA_FAILURE_MESSAGE} (invalid JSON: {e})") from e
    if not isinstance(payload, dict):
        raise SchemaIncompatibleError(f"{SCHEMA_FAILURE_MESSAGE} (response is not a JSON object)")
    return payload


def sanitize_context(value: str) -> str:
    """Drop generic narration openers and capitalize the first letter.

    Example:
        >>> sanitize_context("This slide shows: margins doubled since FY21")
        'Margins doubled since FY21'
    """
    normalized = _GENERIC_NARRATION_PATTERN.sub("", value.strip())
    if normalized and normalized[0].islower():
        normalized = normalized[0].upper() + normalized[1:]
    return normalized


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_response(payload: dict[str, Any], image_count: int) -> list[dict[str, Any]]:
    """Validate the slides list and return normalized slide dicts.

    Every page number must be an integer within ``1..image_count``.

    Raises:
        SchemaIncompatibleError: If the slides list is missing or malformed
    """
    slides = payload.get("slides")
    if not isinstance(slides, list):
        raise SchemaIncompatibleError(f"{SCHEMA_FAILURE_MESSAGE} (field 'slides' is missing)")

    normalized: list[dict[str, Any]] = []
    for index, slide in enumerate(slides, start=1):
        if not isinstance(slide, dict):
            raise SchemaIncompatibleError(f"{SCHEMA_FAILURE_MESSAGE} (slide #{index} is invalid)")

        page = slide.get("selectedPageNumber")
        if isinstance(page, bool) or not isinstance(page, int):
            raise SchemaIncompatibleError(
                f"{SCHEMA_FAILURE_MESSAGE} (slide #{index} has an invalid 'selectedPageNumber')"
            )
        if not 1 <= page <= image_count:
            raise SchemaIncompatibleError(
                f"{SCHEMA_FAILURE_MESSAGE} (slide #{index} page {page} is outside 1-{image_count})"
            )

        rationale = sanitize_context(_text(slide.get("whyThisSlide")))
        revealed = sanitize_context(_text(slide.get("whatThisSlideReveals")))
        if not rationale or not revealed:
            raise SchemaIncompatibleError(f"{SCHEMA_FAILURE_MESSAGE} (slide #{index} has empty explanations)")

        normalized.append(
            {"selectedPageNumber": page, "whyThisSlide": rationale, "whatThisSlideReveals": revealed}
        )

    logger.debug("Validated %d slide(s) for %d image(s)", len(normalized), image_count)
    return normalized


def build_chunk_result(
    payload: dict[str, Any],
    images: list[EncodedImage],
    page_offset: int,
    page_range: PageRange,
) -> ChunkResult:
    """Map chunk-relative slide numbers to absolute pages and attach images.

    Raises:
        SchemaIncompatibleError: If the slides list is malformed or a page is out of range
        FatalInferenceError: If no slides were returned or none map into the chunk
    """
    slides = validate_response(payload, len(images))
    if not slides:
        raise FatalInferenceError("AI did not return any selected slides.")

    mapped: list[SelectedSlide] = []
    for slide in slides:
        page_index = slide["selectedPageNumber"] - 1
        if page_index < 0 or page_index >= len(images):
            logger.debug(
                "Dropping out-of-range page %d for chunk %s", slide["selectedPageNumber"], page_range
            )
            continue
        mapped.append(
            SelectedSlide(
                selected_page_number=slide["selectedPageNumber"] + page_offset,
                rationale=slide["whyThisSlide"],
                revealed_content=slide["whatThisSlideReveals"],
                page_image=images[page_index],
            )
        )

    if not mapped:
        raise FatalInferenceError("AI returned invalid page numbers.")

    mapped.sort(key=lambda s: s.selected_page_number)
    metadata = {attr: _text(payload.get(key)) for key, attr in RESPONSE_FIELD_MAP.items()}
    return ChunkResult(**metadata, slides=mapped, page_range=page_range)
