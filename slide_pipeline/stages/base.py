"""Base stage class for pipeline stages.

This module defines the abstract base class for all pipeline stages,
providing a consistent interface and common functionality.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from slide_pipeline.exceptions import PipelineError, StageError

logger = logging.getLogger(__name__)

__all__ = ["BaseStage", "StageError"]

# Type variables for generic stage input/output
InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseStage(ABC, Generic[InputT, OutputT]):
    """Abstract base class for all pipeline stages.

    All stage implementations should inherit from this class and implement
    the async `_process_impl` method. This base class provides:

    - Consistent interface (process)
    - Timing and logging
    - Error handling with stage context

    Pipeline errors are already typed and propagate unchanged so the retry
    policy can act on them. Any other exception is wrapped in ``StageError``.

    Attributes:
        name: Stage name for logging and identification

    Example:
        >>> class MyStage(BaseStage[list[ChunkResult], DocumentArtifact]):
        ...     name = "my-stage"
        ...
        ...     async def _process_impl(self, input_data, **context):
        ...         return result
    """

    # Subclasses should override this
    name: str = "base-stage"

    @abstractmethod
    async def _process_impl(self, input_data: InputT, **context: Any) -> OutputT:
        """Internal processing implementation.

        Args:
            input_data: Input from previous stage
            **context: Additional context (document, callbacks, ...)

        Returns:
            Processed output for next stage
        """

    async def process(self, input_data: InputT, **context: Any) -> OutputT:
        """Process input and produce output.

        Raises:
            PipelineError: Typed failures raised by the stage
            StageError: If processing fails with any other exception
        """
        start_time = time.perf_counter()

        try:
            result = await self._process_impl(input_data, **context)
        except PipelineError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.debug("%s raised %s after %.2fms", self.name, type(e).__name__, elapsed_ms)
            raise
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error("%s failed after %.2fms: %s", self.name, elapsed_ms, e)
            raise StageError(self.name, str(e), cause=e) from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("%s completed in %.2fms", self.name, elapsed_ms)
        return result

    def __repr__(self) -> str:
        """String representation."""
        return f"{self.__class__.__name__}(name={self.name!r})"
