"""Metrics exporter for observability."""
import json
import time
from pathlib import Path

import aiofiles


class MetricsExporter:
    """Appends one JSON line per pipeline run."""

    def __init__(self, run_id: str, metrics_file: Path):
        self.run_id = run_id
        self.metrics_file = Path(metrics_file)

    async def export_metrics(self, channel: str, pages: int, summary: dict) -> None:
        """Export run metrics to JSONL file."""
        metrics = {
            "ts": time.time(),
            "run_id": self.run_id,
            "channel": channel,
            "pages": pages,
            "posts": summary.get("total", 0),
            "processed": summary.get("processed", 0),
            "extracted": summary.get("extracted", 0),
            "failed": summary.get("failed", 0),
            "saved": summary.get("saved", 0),
            "skipped": summary.get("skipped", 0),
            "elapsed_seconds": round(summary.get("elapsed_seconds", 0.0), 2),
        }

        self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(metrics) + "\n"
        async with aiofiles.open(self.metrics_file, "a") as f:
            await f.write(line)
