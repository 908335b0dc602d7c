"""Custom exception classes for the slide insight pipeline.

Failures raised by the inference boundary are typed so the retry policy can
act on them without re-parsing free text. Plain exceptions from elsewhere are
still classified from their message (see ``slide_pipeline.retry``).

Exception Hierarchy:
    PipelineError (base)
    ├── ConfigurationError
    │   ├── InvalidConfigError
    │   └── MissingConfigError
    ├── InferenceError
    │   ├── RateLimitedError
    │   ├── TransientInferenceError
    │   ├── GeoBlockedError
    │   ├── SchemaIncompatibleError
    │   └── FatalInferenceError
    ├── ProcessingError
    │   ├── OversizedPayloadError
    │   ├── ChunkFailedError
    │   ├── EmptyResultError
    │   ├── RenderingError
    │   ├── DocumentAbortedError
    │   └── StageError
    └── FileError
        ├── FileLoadError
        └── FileFormatError

Usage:
    try:
        result = await client.analyze(images, page_offset, page_range)
    except RateLimitedError as e:
        logger.warning("Rate limited, retry after %s s", e.retry_after_seconds)
    except InferenceError as e:
        logger.error("Inference failed: %s", e)
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(PipelineError):
    """Base exception for configuration-related errors."""


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid or malformed.

    Examples:
        - Unknown provider name
        - Model not in the provider allow-list
        - Non-positive retry budget
    """


class MissingConfigError(ConfigurationError):
    """Raised when required configuration is missing.

    Examples:
        - Missing GEMINI_API_KEY / OPENROUTER_API_KEY
    """


# ============================================================================
# Inference Errors
# ============================================================================


class InferenceError(PipelineError):
    """Base exception for failures reported by the inference service."""


class TransientInferenceError(InferenceError):
    """Temporary upstream failure worth retrying.

    Examples:
        - HTTP 5xx, gateway errors, overload
        - Timeouts and dropped connections
        - The service could not process an input image
    """


class RateLimitedError(TransientInferenceError):
    """Raised when the provider rejects a request for quota or rate reasons.

    Attributes:
        retry_after_seconds: Upstream-suggested wait, if the provider sent one
    """

    def __init__(self, message: str, retry_after_seconds: float | None = None):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message)


class GeoBlockedError(InferenceError):
    """Raised when the provider refuses the caller's region.

    Fatal for the whole document: retrying from the same environment cannot
    succeed.
    """


class SchemaIncompatibleError(InferenceError):
    """Raised when the model cannot produce output matching the response schema."""


class FatalInferenceError(InferenceError):
    """Non-retriable inference failure (bad request, invalid result, auth)."""


# ============================================================================
# Processing Errors
# ============================================================================


class ProcessingError(PipelineError):
    """Base exception for document processing errors."""


class OversizedPayloadError(ProcessingError):
    """Raised when a rendered chunk exceeds the request payload ceiling.

    Attributes:
        payload_bytes: Encoded size of the rendered images
        limit_bytes: Configured ceiling
    """

    def __init__(self, message: str, payload_bytes: int = 0, limit_bytes: int = 0):
        self.payload_bytes = payload_bytes
        self.limit_bytes = limit_bytes
        super().__init__(message)


class ChunkFailedError(ProcessingError):
    """Raised when one page range is permanently unprocessable."""


class EmptyResultError(ProcessingError):
    """Raised when no slides survive merging for a document."""


class RenderingError(ProcessingError):
    """Raised when pages cannot be rendered to images."""


class DocumentAbortedError(ProcessingError):
    """Raised when a document is abandoned before all chunks were attempted."""


# ============================================================================
# File Errors
# ============================================================================


class FileError(PipelineError):
    """Base exception for file operation errors."""


class FileLoadError(FileError):
    """Raised when a document cannot be opened or is too large."""


class FileFormatError(FileError):
    """Raised when a document is not a PDF."""


# ============================================================================
# Stage Errors
# ============================================================================


class StageError(ProcessingError):
    """Raised when a pipeline stage fails with an unexpected exception.

    Attributes:
        stage_name: Name of the failing stage
        cause: Original exception, if any
    """

    def __init__(self, stage_name: str, message: str, cause: Exception | None = None):
        self.stage_name = stage_name
        self.cause = cause
        super().__init__(f"[{stage_name}] {message}")
