"""Shared constants for the slide insight pipeline."""

# =============================================================================
# Chunk Planning
# =============================================================================
DEFAULT_CHUNK_SIZE = 12
"""Pages per chunk for text-heavy decks (at or below MEDIUM_PAGE_BYTES per page)."""

MEDIUM_CHUNK_SIZE = 8
"""Pages per chunk when the estimated bytes per page exceed MEDIUM_PAGE_BYTES."""

HEAVY_CHUNK_SIZE = 6
"""Pages per chunk when the estimated bytes per page exceed HEAVY_PAGE_BYTES."""

MEDIUM_PAGE_BYTES = 320 * 1024
"""Bytes-per-page threshold above which MEDIUM_CHUNK_SIZE is used."""

HEAVY_PAGE_BYTES = 550 * 1024
"""Bytes-per-page threshold above which HEAVY_CHUNK_SIZE is used."""

# =============================================================================
# Retry / Backoff
# =============================================================================
MAX_RETRY_DELAY_MS = 90 * 1000
"""Ceiling applied to every computed backoff delay."""

RETRY_AFTER_MARGIN_MS = 1200
"""Safety margin added to an upstream-suggested wait."""

CHUNK_MAX_RETRIES = 2
"""Retries per presentation chunk (attempts = retries + 1)."""

CHUNK_RETRY_BASE_DELAY_MS = 1200
"""Linear backoff base for presentation chunks."""

# =============================================================================
# Payload / Document Limits
# =============================================================================
MAX_PAYLOAD_BYTES = 20 * 1024 * 1024
"""Ceiling on the summed encoded image bytes of one inference request."""

MAX_DOCUMENT_BYTES = 25 * 1024 * 1024
"""Largest presentation PDF accepted for analysis."""

MAX_PAGES_PER_REQUEST = 60
"""Largest page range rendered for a single request."""

# =============================================================================
# Rendering
# =============================================================================
RENDER_PROFILE_LADDER = (
    (1.15, 0.75),
    (1.0, 0.65),
    (0.85, 0.55),
)
"""(scale, compression quality) tiers, highest fidelity first."""

HIGH_QUALITY_SCALE = 2.0
"""Zoom factor for the final high-fidelity render of selected pages."""

HIGH_QUALITY_PNG_MAX_BYTES = 4_800_000
"""PNG output above this size is re-encoded as JPEG."""

HIGH_QUALITY_JPEG_QUALITY = 92
"""JPEG quality used when a high-fidelity PNG is oversized."""

# =============================================================================
# Results
# =============================================================================
TARGET_SLIDES_PER_DOCUMENT = 3
"""Number of insight slides the model is asked to select."""

# =============================================================================
# Providers / Models
# =============================================================================
GEMINI_PROVIDER = "gemini"
OPENROUTER_PROVIDER = "openrouter"

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_OPENROUTER_MODEL = "qwen/qwen2.5-vl-32b-instruct"

GEMINI_MODELS = frozenset({"gemini-2.5-flash", "gemini-3-flash-preview", "gemini-3-pro-preview"})
OPENROUTER_MODELS = frozenset({"qwen/qwen2.5-vl-32b-instruct", "minimax/minimax-01"})

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

DEFAULT_TEMPERATURE = 0.2
"""Sampling temperature for slide selection requests."""

DEFAULT_MAX_TOKENS = 4000
"""Upper bound on response tokens for slide selection requests."""
