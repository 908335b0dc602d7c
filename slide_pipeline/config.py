"""Pipeline configuration module.

This module provides:
- PipelineConfig: Dataclass for all pipeline configuration options
- YAML configuration file loading
- Validation of provider/model selection and retry/payload budgets
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from slide_pipeline.constants import (
    CHUNK_MAX_RETRIES,
    CHUNK_RETRY_BASE_DELAY_MS,
    GEMINI_PROVIDER,
    HIGH_QUALITY_JPEG_QUALITY,
    HIGH_QUALITY_PNG_MAX_BYTES,
    HIGH_QUALITY_SCALE,
    MAX_DOCUMENT_BYTES,
    MAX_PAGES_PER_REQUEST,
    MAX_PAYLOAD_BYTES,
    MAX_RETRY_DELAY_MS,
    RETRY_AFTER_MARGIN_MS,
)
from slide_pipeline.exceptions import InvalidConfigError
from slide_pipeline.inference.factory import SUPPORTED_PROVIDERS, is_allowed_model, parse_provider, resolve_model
from slide_pipeline.retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("settings") / "config.yaml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration file with error handling.

    Args:
        config_path: Path to YAML config file

    Returns:
        Configuration dict, or empty dict if file not found or invalid
    """
    try:
        if config_path.exists():
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                logger.warning("Config file %s does not contain a mapping", config_path)
                return {}
            return data
        logger.debug("Config file not found: %s", config_path)
        return {}
    except yaml.YAMLError as e:
        logger.warning("Failed to parse config file %s: %s", config_path, e)
        return {}
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read config file %s: %s", config_path, e)
        return {}


@dataclass
class PipelineConfig:
    """Pipeline configuration with validation.

    Configuration Sources (in order of precedence):
    1. Constructor arguments (highest priority)
    2. CLI arguments via from_cli()
    3. YAML configuration files via from_yaml()
    4. Default values (lowest priority)

    Example:
        >>> config = PipelineConfig(provider="openrouter")
        >>> config.validate()
        >>> config.model
        'qwen/qwen2.5-vl-32b-instruct'

        >>> config = PipelineConfig.from_yaml(Path("settings/config.yaml"), chunk_max_retries=3)
    """

    # ==================== Inference ====================
    provider: str = GEMINI_PROVIDER
    model: str | None = None  # None = provider default

    # ==================== Retry / Backoff ====================
    chunk_max_retries: int = CHUNK_MAX_RETRIES
    retry_base_delay_ms: int = CHUNK_RETRY_BASE_DELAY_MS
    max_retry_delay_ms: int = MAX_RETRY_DELAY_MS
    retry_after_margin_ms: int = RETRY_AFTER_MARGIN_MS

    # ==================== Payload / Document Limits ====================
    max_payload_bytes: int = MAX_PAYLOAD_BYTES
    max_document_bytes: int = MAX_DOCUMENT_BYTES
    max_pages_per_request: int = MAX_PAGES_PER_REQUEST

    # ==================== High-Quality Render ====================
    high_quality_scale: float = HIGH_QUALITY_SCALE
    high_quality_png_max_bytes: int = HIGH_QUALITY_PNG_MAX_BYTES
    high_quality_jpeg_quality: int = HIGH_QUALITY_JPEG_QUALITY

    # ==================== Output / Logging ====================
    output_dir: Path = field(default_factory=lambda: Path("output"))
    log_level: str = "INFO"
    timezone: str = "UTC"  # for processed_at timestamps

    def __post_init__(self) -> None:
        """Convert path strings to Path objects."""
        if isinstance(self.output_dir, str):
            self.output_dir = Path(self.output_dir)

    @classmethod
    def from_yaml(cls, config_path: Path = DEFAULT_CONFIG_PATH, **overrides: Any) -> PipelineConfig:
        """Load configuration from YAML file.

        Unknown keys are ignored.

        Example:
            >>> config = PipelineConfig.from_yaml(Path("settings/config.yaml"), provider="openrouter")
        """
        yaml_config = _load_yaml_config(Path(config_path))
        known = {f.name for f in fields(cls)}

        kwargs: dict[str, Any] = {}
        for key, value in yaml_config.items():
            if key in known:
                kwargs[key] = value
            else:
                logger.debug("Ignoring unknown config key: %s", key)

        kwargs.update(overrides)
        return cls(**kwargs)

    @staticmethod
    def _get_arg(args: argparse.Namespace, name: str, default: Any = None) -> Any:
        """Safely get argument value from namespace."""
        return getattr(args, name, default)

    @classmethod
    def _extract_cli_kwargs(cls, args: argparse.Namespace) -> dict[str, Any]:
        """Extract configuration kwargs from CLI arguments."""
        # Format: (cli_name, config_name, transform_func)
        mappings: list[tuple[str, str, Any]] = [
            ("provider", "provider", None),
            ("model", "model", None),
            ("max_retries", "chunk_max_retries", None),
            ("output", "output_dir", Path),
            ("log_level", "log_level", None),
        ]

        kwargs: dict[str, Any] = {}
        for cli_name, config_name, transform in mappings:
            value = cls._get_arg(args, cli_name)
            if value is not None:
                kwargs[config_name] = transform(value) if transform else value
        return kwargs

    @classmethod
    def from_cli(cls, args: argparse.Namespace) -> PipelineConfig:
        """Create configuration from CLI arguments layered over the YAML file.

        Example:
            >>> args = parser.parse_args()
            >>> config = PipelineConfig.from_cli(args)
        """
        config_path = cls._get_arg(args, "config") or DEFAULT_CONFIG_PATH
        return cls.from_yaml(Path(config_path), **cls._extract_cli_kwargs(args))

    def validate(self) -> None:
        """Validate configuration and resolve the provider default model.

        Raises:
            InvalidConfigError: If configuration is invalid
        """
        provider = parse_provider(self.provider)
        if not provider:
            raise InvalidConfigError(
                f"Unknown provider: {self.provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
            )
        self.provider = provider
        self.model = resolve_model(provider, self.model)
        if not is_allowed_model(provider, self.model):
            raise InvalidConfigError(f"Model '{self.model}' is not available for {provider}.")

        if self.chunk_max_retries < 0:
            raise InvalidConfigError(f"chunk_max_retries must be >= 0, got {self.chunk_max_retries}")
        for name in (
            "retry_base_delay_ms",
            "max_retry_delay_ms",
            "max_payload_bytes",
            "max_document_bytes",
            "max_pages_per_request",
            "high_quality_png_max_bytes",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise InvalidConfigError(f"{name} must be a positive integer, got {value!r}")
        if self.max_retry_delay_ms > MAX_RETRY_DELAY_MS:
            raise InvalidConfigError(
                f"max_retry_delay_ms must be <= {MAX_RETRY_DELAY_MS}, got {self.max_retry_delay_ms}"
            )
        if self.retry_after_margin_ms < 0:
            raise InvalidConfigError(f"retry_after_margin_ms must be >= 0, got {self.retry_after_margin_ms}")
        if self.retry_base_delay_ms > self.max_retry_delay_ms:
            raise InvalidConfigError(
                f"retry_base_delay_ms ({self.retry_base_delay_ms}) exceeds max_retry_delay_ms "
                f"({self.max_retry_delay_ms})"
            )
        if self.high_quality_scale <= 0:
            raise InvalidConfigError(f"high_quality_scale must be positive, got {self.high_quality_scale}")
        if not 1 <= self.high_quality_jpeg_quality <= 100:
            raise InvalidConfigError(
                f"high_quality_jpeg_quality must be within 1-100, got {self.high_quality_jpeg_quality}"
            )

        self.log_level = str(self.log_level).upper()
        if self.log_level not in _LOG_LEVELS:
            raise InvalidConfigError(f"Unknown log level: {self.log_level}")

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise InvalidConfigError(f"Unknown timezone: {self.timezone}") from e

        logger.info(
            "Configuration validated: provider=%s, model=%s, retries=%d, payload limit=%d bytes",
            self.provider,
            self.model,
            self.chunk_max_retries,
            self.max_payload_bytes,
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.chunk_max_retries,
            base_delay_ms=self.retry_base_delay_ms,
            max_delay_ms=self.max_retry_delay_ms,
            retry_after_margin_ms=self.retry_after_margin_ms,
        )
