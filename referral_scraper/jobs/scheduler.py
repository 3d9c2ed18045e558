"""Batch scheduler: sequential, rate-limited extraction over fixed-size batches."""
import asyncio
import logging
from typing import Awaitable, Callable, Iterator, Optional

from referral_scraper.config import Config
from referral_scraper.extract.client import ExtractionClient
from referral_scraper.fetch.rate_limit import RateLimiter
from referral_scraper.jobs.metrics import Metrics
from referral_scraper.models import ExtractedRecord, RawPost
from referral_scraper.store.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class BatchScheduler:
    """Runs the extraction client over posts, one at a time, batch by batch."""

    def __init__(
        self,
        extractor: ExtractionClient,
        limiter: RateLimiter,
        config: Config,
        metrics: Optional[Metrics] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.extractor = extractor
        self.limiter = limiter
        self.config = config
        self.metrics = metrics or Metrics()
        self._sleep = sleep

    def batches(self, posts: list[RawPost]) -> Iterator[list[RawPost]]:
        size = self.config.GEMINI_BATCH_SIZE
        for i in range(0, len(posts), size):
            yield posts[i : i + size]

    async def process_batch(self, batch: list[RawPost]) -> list[ExtractedRecord]:
        """Extract every post in the batch sequentially."""
        results = []
        logger.info(f"Processing batch of {len(batch)} posts with Gemini...")

        for index, post in enumerate(batch, start=1):
            logger.info(f"Processing post {index}/{len(batch)}: {post.title[:50]}...")
            await self.limiter.acquire()
            record = await self.extractor.extract(post)
            self.metrics.increment("processed")

            if record:
                results.append(record)
                self.metrics.increment("extracted")
                logger.info(f"Successfully extracted data for {record.brand or 'unknown brand'}")
            else:
                self.metrics.increment("failed")
                logger.info("Failed to extract referral data from this post")

        return results

    async def _run_batches(
        self,
        posts: list[RawPost],
        on_batch: Callable[[list[ExtractedRecord]], Awaitable[None]],
    ) -> None:
        self.metrics.total = len(posts)
        batches = list(self.batches(posts))

        for number, batch in enumerate(batches, start=1):
            logger.info(f"Processing batch {number} of {len(batches)}")
            records = await self.process_batch(batch)
            await on_batch(records)
            self.metrics.increment("batches")
            self.metrics.report()

            if number < len(batches):
                logger.info(f"Waiting {self.config.BATCH_PAUSE:g} seconds before processing next batch...")
                await self._sleep(self.config.BATCH_PAUSE)

    async def run(self, posts: list[RawPost]) -> list[ExtractedRecord]:
        """Extract all posts and return the successful records."""
        extracted: list[ExtractedRecord] = []

        async def collect(records: list[ExtractedRecord]) -> None:
            extracted.extend(records)

        await self._run_batches(posts, collect)
        return extracted

    async def run_and_save(self, posts: list[RawPost], gateway: PersistenceGateway) -> int:
        """Extract all posts, saving each batch as it completes. Returns the saved count."""
        total_saved = 0

        async def persist(records: list[ExtractedRecord]) -> None:
            nonlocal total_saved
            for record in records:
                if await gateway.save(record):
                    total_saved += 1
                    self.metrics.increment("saved")
                else:
                    self.metrics.increment("skipped")

        await self._run_batches(posts, persist)
        return total_saved
