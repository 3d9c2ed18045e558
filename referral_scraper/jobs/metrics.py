"""Metrics tracking for pipeline progress."""
import time
import logging
from collections import defaultdict
from typing import Dict

logger = logging.getLogger(__name__)


class Metrics:
    """Track pipeline counters and calculate ETA."""

    def __init__(self, total: int = 0):
        self.total = total
        self.start_time = time.time()
        self.counters: Dict[str, int] = defaultdict(int)

    def increment(self, key: str, amount: int = 1) -> None:
        """Increment a counter."""
        self.counters[key] = self.counters.get(key, 0) + amount

    def get(self, key: str) -> int:
        return self.counters.get(key, 0)

    def get_rate(self) -> float:
        """Get current processing rate (posts/minute)."""
        elapsed = time.time() - self.start_time
        processed = self.get("processed")
        if elapsed > 0:
            return processed * 60 / elapsed
        return 0.0

    def get_eta(self) -> float:
        """Get estimated time remaining in seconds."""
        rate = self.get_rate()
        if rate <= 0:
            return 0.0
        remaining = self.total - self.get("processed")
        return max(remaining, 0) * 60 / rate

    def format_eta(self) -> str:
        """Format ETA as human-readable string."""
        eta_seconds = self.get_eta()
        if eta_seconds < 60:
            return f"{eta_seconds:.0f}s"
        elif eta_seconds < 3600:
            return f"{eta_seconds / 60:.1f}m"
        else:
            return f"{eta_seconds / 3600:.1f}h"

    def report(self) -> None:
        """Log current progress."""
        processed = self.get("processed")
        logger.info(
            f"Progress: {processed}/{self.total} posts processed, "
            f"{self.get('saved')} referrals saved | "
            f"Extracted: {self.get('extracted')} | "
            f"Failed: {self.get('failed')} | "
            f"Skipped: {self.get('skipped')} | "
            f"ETA: {self.format_eta()}"
        )

    def get_summary(self) -> Dict:
        """Get summary statistics."""
        return {
            "total": self.total,
            "processed": self.get("processed"),
            "extracted": self.get("extracted"),
            "failed": self.get("failed"),
            "saved": self.get("saved"),
            "skipped": self.get("skipped"),
            "batches": self.get("batches"),
            "rate_per_minute": self.get_rate(),
            "elapsed_seconds": time.time() - self.start_time,
        }
