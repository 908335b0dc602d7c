#!/usr/bin/env python3
"""
Main entry point for the Slide Insight Pipeline
Provides command-line interface for selecting high-signal slides from investor presentation PDFs
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import textwrap
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Note: Pipeline and related imports are moved to function-level
# to improve CLI startup time (--help, argument validation, etc.)
# Type hints use TYPE_CHECKING to avoid runtime import cost
if TYPE_CHECKING:
    from slide_pipeline import BatchProgress, SlidePipeline


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration with timestamped log files."""
    from slide_pipeline.misc import tz_now  # noqa: PLC0415 - lazy import for startup performance

    logs_dir = Path(".logs")
    logs_dir.mkdir(exist_ok=True)

    timestamp = tz_now().strftime("%Y-%m-%d_%H-%M-%S")
    log_filename = logs_dir / f"{timestamp}_slide_pipeline.log"

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout), logging.FileHandler(log_filename, encoding="utf-8")],
    )


def main() -> int:
    """CLI entry point."""
    parser = _build_argument_parser()
    args = parser.parse_args()

    setup_logging(args.log_level or "INFO")
    logger = logging.getLogger(__name__)

    return _execute_command(args, parser, logger)


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Slide Insight Pipeline - Pick the most insightful slides from investor presentations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(
            """
            Examples:
              # Basic usage (default: gemini provider, gemini-2.5-flash)
              python main.py --input deck.pdf

              # Whole directory of presentations, analyzed one after another
              python main.py --input /path/to/decks/ --output /custom/output/

              # OpenRouter models
              python main.py --input deck.pdf --provider openrouter
              python main.py --input deck.pdf --provider openrouter --model minimax/minimax-01

              # Retry budget and settings file
              python main.py --input deck.pdf --max-retries 3
              python main.py --input deck.pdf --config settings/config.yaml
            """
        ),
    )

    parser.add_argument(
        "--input",
        "-i",
        type=str,
        help="Input PDF or directory containing PDFs",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Output directory path (default: ./output)",
    )
    parser.add_argument(
        "--provider",
        type=str,
        choices=["gemini", "openrouter"],
        default=None,
        help="Inference provider (default: gemini)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model name (default: provider default model)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML settings file (default: settings/config.yaml)",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Retries per chunk before splitting or giving up (default: 2)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (default: INFO)",
    )

    return parser


def _execute_command(args: argparse.Namespace, parser: argparse.ArgumentParser, logger: logging.Logger) -> int:
    if not args.input:
        parser.error("the following arguments are required: --input/-i")
        return 1  # pragma: no cover - parser.error raises SystemExit

    try:
        # Lazy import: only load the pipeline when actually processing input
        from slide_pipeline import PipelineConfig, SlidePipeline  # noqa: PLC0415
        from slide_pipeline.exceptions import PipelineError  # noqa: PLC0415

        config = PipelineConfig.from_cli(args)
        try:
            pipeline = SlidePipeline(config, on_progress=_log_progress)
        except PipelineError as exc:
            logger.error("Configuration error: %s", exc)
            return 1

        return _run_pipeline(pipeline, args, logger)
    except KeyboardInterrupt:
        logger.info("Process interrupted by user")
        return 1
    except Exception as exc:  # noqa: BLE001 - retain broad logging for CLI
        logger.error("Unexpected error: %s", exc, exc_info=True)
        return 1


def _log_progress(progress: BatchProgress) -> None:
    event = progress.progress
    if event is None:
        return
    logging.getLogger(__name__).debug(
        "[%d%%] %s: %s", progress.progress_pct, progress.current_label or "batch", event.message
    )


def _run_pipeline(pipeline: SlidePipeline, args: argparse.Namespace, logger: logging.Logger) -> int:
    config = pipeline.config
    logger.info("Starting Slide Insight Pipeline")
    logger.info("Input: %s", args.input)
    logger.info("Output: %s", config.output_dir)
    logger.info("Provider: %s (model: %s)", config.provider, config.model)

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error("Input path does not exist: %s", input_path)
        return 1

    items = pipeline.add_inputs(input_path)
    if not items:
        logger.error("No PDF files found in: %s", input_path)
        return 1

    progress = asyncio.run(pipeline.run())
    saved = pipeline.save_results()

    if progress is None or progress.completed == 0:
        logger.error("No presentation was analyzed successfully")
        for item in items:
            if item.error:
                logger.error("  %s: %s", item.name, item.error)
        return 1

    logger.info(
        "Analyzed %d of %d presentation(s) (%d failed)", progress.completed, progress.total, progress.failed
    )
    logger.info("Results saved to: %s (%d file(s))", config.output_dir, len(saved))
    logger.info("Slide Insight Pipeline completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
