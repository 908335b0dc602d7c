"""Input/output helpers for analyzed presentations."""

from __future__ import annotations

from slide_pipeline.io.saver import ArtifactSaver

__all__ = ["ArtifactSaver"]
