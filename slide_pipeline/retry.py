"""Retry policy: failure classification, backoff and per-chunk decisions.

Failures are classified once into a ``FailureKind``. Typed errors raised by
the inference clients are trusted as-is; anything else is classified from
its message text, which is how upstream SDK errors that slipped past the
client boundary (or plain strings from other collaborators) are handled.

The chunk loop asks ``RetryPolicy.decide`` what to do with a failed attempt.
Decisions are evaluated in a fixed order:

1. Geo-block aborts the whole document.
2. Retriable failures with budget left are retried after a backoff.
3. Retriable failures with the budget spent split a multi-page range,
   unless the failure is a rate limit (smaller requests do not help).
4. Everything else marks the chunk as permanently failed.

Oversized payloads skip the retry budget and split directly, since
re-rendering at the same fidelity cannot shrink the payload.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum

from slide_pipeline.constants import (
    CHUNK_MAX_RETRIES,
    CHUNK_RETRY_BASE_DELAY_MS,
    MAX_RETRY_DELAY_MS,
    RETRY_AFTER_MARGIN_MS,
)
from slide_pipeline.exceptions import (
    FatalInferenceError,
    GeoBlockedError,
    OversizedPayloadError,
    RateLimitedError,
    SchemaIncompatibleError,
    StageError,
    TransientInferenceError,
)
from slide_pipeline.types import PageRange

logger = logging.getLogger(__name__)

# =============================================================================
# Message needles (lower-case substring matches)
# =============================================================================
GEO_BLOCK_NEEDLES = (
    "upstream_location_unsupported",
    "user location is not supported for the api use",
    "location is not supported for the api use",
    "provider location policy",
)

RATE_LIMIT_NEEDLES = (
    "429",
    "quota",
    "rate limit",
    "resource_exhausted",
    "resource exhausted",
    "too many requests",
    "generate_content_free_tier_requests",
)

TRANSIENT_NEEDLES = (
    "503",
    "502",
    "500",
    "504",
    "timeout",
    "timed out",
    "temporarily unavailable",
    "upstream connect error",
    "connection reset",
    "deadline exceeded",
    "overload",
    "high demand",
    "unable to process input image",
    "network",
)

SCHEMA_INCOMPATIBLE_NEEDLES = (
    "too many states",
    "specified schema produces a constraint",
    "invalid json",
    "empty response",
)

_HTTP_STATUS_PATTERN = re.compile(r"status\s+(\d{3})", re.IGNORECASE)
_RETRY_AFTER_PATTERN = re.compile(r"retry in\s+(?:about\s+)?([\d.]+)\s*s", re.IGNORECASE)


class FailureKind(str, Enum):
    """Classification of a failed chunk attempt."""

    GEO_BLOCKED = "geo_blocked"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    OVERSIZED_PAYLOAD = "oversized_payload"
    SCHEMA_INCOMPATIBLE = "schema_incompatible"
    FATAL = "fatal"


@dataclass(frozen=True)
class Failure:
    """A classified failure.

    Attributes:
        kind: Classification
        message: Human-readable error text
        retry_after_seconds: Upstream-suggested wait, when one was given
    """

    kind: FailureKind
    message: str
    retry_after_seconds: float | None = None

    @property
    def is_retriable(self) -> bool:
        return self.kind in (FailureKind.RATE_LIMITED, FailureKind.TRANSIENT)

    @property
    def is_rate_limited(self) -> bool:
        return self.kind is FailureKind.RATE_LIMITED


def extract_http_status(message: str) -> int | None:
    """Pull an HTTP status code out of text like ``"... status 503 ..."``."""
    match = _HTTP_STATUS_PATTERN.search(message or "")
    return int(match.group(1)) if match else None


def extract_retry_after_seconds(message: str) -> float | None:
    """Pull an upstream wait hint out of text like ``"Retry in 12.5s"``."""
    match = _RETRY_AFTER_PATTERN.search(message or "")
    if not match:
        return None
    try:
        seconds = float(match.group(1))
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def _contains_any(text: str, needles: tuple[str, ...]) -> bool:
    return any(needle in text for needle in needles)


def classify_message(message: str) -> Failure:
    """Classify a failure from its message text alone.

    Example:
        >>> classify_message("Request failed with status 503").kind
        <FailureKind.TRANSIENT: 'transient'>
        >>> classify_message("RESOURCE_EXHAUSTED. Retry in 7s").retry_after_seconds
        7.0
    """
    text = (message or "").lower()

    if _contains_any(text, GEO_BLOCK_NEEDLES):
        return Failure(FailureKind.GEO_BLOCKED, message)

    if _contains_any(text, SCHEMA_INCOMPATIBLE_NEEDLES):
        return Failure(FailureKind.SCHEMA_INCOMPATIBLE, message)

    status = extract_http_status(text)
    if status == 429 or _contains_any(text, RATE_LIMIT_NEEDLES):
        return Failure(FailureKind.RATE_LIMITED, message, extract_retry_after_seconds(text))

    if (status is not None and (status >= 500 or status == 408)) or _contains_any(text, TRANSIENT_NEEDLES):
        return Failure(FailureKind.TRANSIENT, message)

    return Failure(FailureKind.FATAL, message)


def classify_failure(error: BaseException) -> Failure:
    """Classify an exception raised by a chunk attempt.

    Typed pipeline errors map directly to a kind. Stage wrappers are unwrapped
    to their cause. Anything else falls back to ``classify_message``.
    """
    if isinstance(error, StageError) and error.cause is not None:
        return classify_failure(error.cause)

    message = str(error) or type(error).__name__

    if isinstance(error, GeoBlockedError):
        return Failure(FailureKind.GEO_BLOCKED, message)
    if isinstance(error, RateLimitedError):
        retry_after = error.retry_after_seconds
        if retry_after is None:
            retry_after = extract_retry_after_seconds(message)
        return Failure(FailureKind.RATE_LIMITED, message, retry_after)
    if isinstance(error, TransientInferenceError):
        return Failure(FailureKind.TRANSIENT, message)
    if isinstance(error, SchemaIncompatibleError):
        return Failure(FailureKind.SCHEMA_INCOMPATIBLE, message)
    if isinstance(error, FatalInferenceError):
        return Failure(FailureKind.FATAL, message)
    if isinstance(error, OversizedPayloadError):
        return Failure(FailureKind.OVERSIZED_PAYLOAD, message)
    if isinstance(error, (TimeoutError, ConnectionError)):
        return Failure(FailureKind.TRANSIENT, message)

    return classify_message(message)


def compute_backoff_delay_ms(
    retry_number: int,
    base_delay_ms: int = CHUNK_RETRY_BASE_DELAY_MS,
    retry_after_seconds: float | None = None,
    max_delay_ms: int = MAX_RETRY_DELAY_MS,
    margin_ms: int = RETRY_AFTER_MARGIN_MS,
) -> int:
    """Delay before retry number ``retry_number`` (1-based).

    An upstream hint wins over the linear schedule. Both are capped at
    ``max_delay_ms``, which itself never exceeds ``MAX_RETRY_DELAY_MS``.

    Example:
        >>> compute_backoff_delay_ms(2, base_delay_ms=1200)
        2400
        >>> compute_backoff_delay_ms(1, retry_after_seconds=12.5)
        13700
        >>> compute_backoff_delay_ms(1, retry_after_seconds=300)
        90000
    """
    if retry_after_seconds is not None:
        delay = math.ceil(retry_after_seconds * 1000) + margin_ms
    else:
        delay = base_delay_ms * max(1, retry_number)
    return max(0, min(max_delay_ms, MAX_RETRY_DELAY_MS, delay))


class RetryAction(str, Enum):
    """What the chunk loop should do after a failed attempt."""

    RETRY = "retry"
    SPLIT = "split"
    FAIL_CHUNK = "fail_chunk"
    ABORT_DOCUMENT = "abort_document"


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of ``RetryPolicy.decide``.

    Attributes:
        action: Next step for the chunk loop
        failure: The classified failure that led here
        delay_ms: Wait before the retry (RETRY only)
    """

    action: RetryAction
    failure: Failure
    delay_ms: int = 0

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000


@dataclass(frozen=True)
class RetryPolicy:
    """Per-chunk retry budget and backoff settings.

    Attributes:
        max_retries: Retries per range (attempts = max_retries + 1)
        base_delay_ms: Linear backoff step
        max_delay_ms: Ceiling for any delay
        retry_after_margin_ms: Added to upstream wait hints
    """

    max_retries: int = CHUNK_MAX_RETRIES
    base_delay_ms: int = CHUNK_RETRY_BASE_DELAY_MS
    max_delay_ms: int = MAX_RETRY_DELAY_MS
    retry_after_margin_ms: int = RETRY_AFTER_MARGIN_MS

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def decide(self, failure: Failure, attempt: int, page_range: PageRange) -> RetryDecision:
        """Decide the next step after attempt ``attempt`` (zero-based) failed."""
        if failure.kind is FailureKind.GEO_BLOCKED:
            return RetryDecision(RetryAction.ABORT_DOCUMENT, failure)

        if failure.kind is FailureKind.OVERSIZED_PAYLOAD:
            if page_range.is_single_page:
                return RetryDecision(RetryAction.FAIL_CHUNK, failure)
            return RetryDecision(RetryAction.SPLIT, failure)

        if failure.is_retriable and attempt < self.max_retries:
            delay_ms = compute_backoff_delay_ms(
                attempt + 1,
                base_delay_ms=self.base_delay_ms,
                retry_after_seconds=failure.retry_after_seconds,
                max_delay_ms=self.max_delay_ms,
                margin_ms=self.retry_after_margin_ms,
            )
            return RetryDecision(RetryAction.RETRY, failure, delay_ms)

        if failure.is_retriable and not failure.is_rate_limited and not page_range.is_single_page:
            return RetryDecision(RetryAction.SPLIT, failure)

        return RetryDecision(RetryAction.FAIL_CHUNK, failure)


def describe_retry(failure: Failure, delay_ms: int, retry_number: int, max_retries: int) -> str:
    """Status line shown while waiting for a retry."""
    reason = "Rate limit reached" if failure.is_rate_limited else "Temporary AI service error"
    seconds = max(1, math.ceil(delay_ms / 1000))
    return f"{reason}. Retrying in {seconds}s (retry {retry_number}/{max_retries})..."
