"""Output saving for analyzed presentations.

Layout under the output directory::

    <stem>.json              artifact metadata and slides
    <stem>/page_<n>.<ext>    slide images
    batch_summary.json       per-item status and aggregate counts
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from slide_pipeline.batch.types import BatchItem, BatchProgress, BatchStatus
from slide_pipeline.misc import tz_now

logger = logging.getLogger(__name__)

BATCH_SUMMARY_FILENAME = "batch_summary.json"


class ArtifactSaver:
    """Writes completed artifacts and the batch summary to disk.

    Attributes:
        output_dir: Root output directory
        provider: Inference provider recorded in each file
        model: Inference model recorded in each file
    """

    def __init__(self, output_dir: str | Path, provider: str, model: str):
        self.output_dir = Path(output_dir)
        self.provider = provider
        self.model = model

    def save_item(self, item: BatchItem) -> Path | None:
        """Save one completed item. Items without a result are skipped.

        Returns:
            Path to the artifact JSON, or None if nothing was saved
        """
        if item.result is None:
            return None

        image_dir = self.output_dir / item.stem
        slides: list[dict[str, Any]] = []
        for slide in item.result.slides:
            data = slide.to_dict()
            if slide.page_image is not None:
                image_dir.mkdir(parents=True, exist_ok=True)
                image_path = image_dir / f"page_{slide.selected_page_number}.{slide.page_image.extension}"
                image_path.write_bytes(slide.page_image.data)
                data["image_file"] = str(image_path.relative_to(self.output_dir))
            slides.append(data)

        payload = item.result.to_dict()
        payload["slides"] = slides
        payload.update(
            {
                "source": str(item.path),
                "provider": self.provider,
                "model": self.model,
                "warning": item.error,
                "processed_at": tz_now().isoformat(),
            }
        )

        output_path = self.output_dir / f"{item.stem}.json"
        self._write_json(payload, output_path)
        logger.info("Saved results to: %s", output_path)
        return output_path

    def save_batch_summary(self, items: list[BatchItem], progress: BatchProgress | None) -> Path:
        summary = {
            "provider": self.provider,
            "model": self.model,
            "processed_at": tz_now().isoformat(),
            "progress": progress.to_dict() if progress is not None else None,
            "counts": {status.value: sum(1 for item in items if item.status is status) for status in BatchStatus},
            "items": [item.to_dict() for item in items],
        }
        output_path = self.output_dir / BATCH_SUMMARY_FILENAME
        self._write_json(summary, output_path)
        logger.info("Saved batch summary to: %s", output_path)
        return output_path

    def save_all(self, items: list[BatchItem], progress: BatchProgress | None) -> list[Path]:
        saved = [path for path in (self.save_item(item) for item in items) if path is not None]
        saved.append(self.save_batch_summary(items, progress))
        return saved

    def _write_json(self, data: dict[str, Any], output_path: Path) -> None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
