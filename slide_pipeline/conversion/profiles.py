"""Render profile ladder: fidelity tiers indexed by retry attempt."""

from __future__ import annotations

from slide_pipeline.constants import RENDER_PROFILE_LADDER
from slide_pipeline.types import RenderProfile

DEFAULT_PROFILES: tuple[RenderProfile, ...] = tuple(
    RenderProfile(scale=scale, compression_quality=quality) for scale, quality in RENDER_PROFILE_LADDER
)


def select_render_profile(
    attempt: int,
    ladder: tuple[RenderProfile, ...] = DEFAULT_PROFILES,
) -> RenderProfile:
    """Return the profile for a zero-based attempt index.

    Attempts past the end of the ladder keep the lowest-fidelity profile.

    Example:
        >>> select_render_profile(0)
        RenderProfile(scale=1.15, compression_quality=0.75)
        >>> select_render_profile(7)
        RenderProfile(scale=0.85, compression_quality=0.55)
    """
    if not ladder:
        raise ValueError("Render profile ladder is empty")
    return ladder[min(max(0, attempt), len(ladder) - 1)]
