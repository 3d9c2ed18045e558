"""Main job runner orchestrating the referral pipeline."""
import logging
import uuid
from typing import Optional

from referral_scraper.config import Config
from referral_scraper.extract.client import ExtractionClient
from referral_scraper.extract.gemini import GeminiGenerator, TextGenerator
from referral_scraper.fetch.listing import ListingFetcher
from referral_scraper.fetch.rate_limit import RateLimiter
from referral_scraper.jobs.metrics import Metrics
from referral_scraper.jobs.metrics_exporter import MetricsExporter
from referral_scraper.jobs.scheduler import BatchScheduler
from referral_scraper.store.gateway import PersistenceGateway
from referral_scraper.store.referrals import ReferralStore

logger = logging.getLogger(__name__)


class ReferralRunner:
    """Fetch posts, extract referrals in rate-limited batches, and persist them."""

    def __init__(
        self,
        config: Config,
        channel: str,
        fetcher: ListingFetcher,
        scheduler: BatchScheduler,
        gateway: PersistenceGateway,
        store: ReferralStore,
        metrics: Metrics,
        exporter: Optional[MetricsExporter] = None,
        max_pages: Optional[int] = None,
    ):
        self.config = config
        self.channel = channel
        self.fetcher = fetcher
        self.scheduler = scheduler
        self.gateway = gateway
        self.store = store
        self.metrics = metrics
        self.exporter = exporter
        self.max_pages = max_pages or config.MAX_PAGES

        self.run_id = str(uuid.uuid4())
        logger.info(f"Run ID: {self.run_id}")

    async def run(self) -> int:
        """Run the pipeline. Returns the number of referrals saved."""
        try:
            await self.store.initialize()
            posts = await self.fetcher.fetch_all(self.max_pages)
        finally:
            await self.fetcher.aclose()

        if not posts:
            logger.info("No posts found. Exiting.")
            return 0

        total_saved = await self.scheduler.run_and_save(posts, self.gateway)
        await self._final_report(len(posts), total_saved)
        return total_saved

    async def _final_report(self, total_posts: int, total_saved: int) -> None:
        """Log the final report and export run metrics."""
        summary = self.metrics.get_summary()

        logger.info("=" * 60)
        logger.info("Scraping and processing complete.")
        logger.info(f"Run ID: {self.run_id}")
        logger.info(f"Subreddit: r/{self.channel}")
        logger.info(f"Total posts processed: {total_posts}")
        logger.info(f"Extracted: {summary['extracted']}")
        logger.info(f"Extraction failures: {summary['failed']}")
        logger.info(f"Duplicates skipped: {self.gateway.duplicates}")
        logger.info(f"Rejected: {self.gateway.rejected}")
        logger.info(f"Total referrals saved: {total_saved}")
        logger.info("=" * 60)

        if self.exporter:
            try:
                await self.exporter.export_metrics(self.channel, self.fetcher.pages_fetched, summary)
            except OSError as e:
                logger.warning(f"Failed to export metrics: {e}")


def build_runner(
    config: Config,
    channel: str,
    generator: Optional[TextGenerator] = None,
    max_pages: Optional[int] = None,
) -> ReferralRunner:
    """Wire the runner with real HTTP, Gemini and SQLite dependencies."""
    metrics = Metrics()
    store = ReferralStore(config.REFERRALS_DB)
    generator = generator or GeminiGenerator(config.GEMINI_API_KEY, config.GEMINI_MODEL)
    extractor = ExtractionClient(generator, config, channel)
    scheduler = BatchScheduler(
        extractor,
        RateLimiter(config.GEMINI_RATE_LIMIT),
        config,
        metrics=metrics,
    )
    runner = ReferralRunner(
        config=config,
        channel=channel,
        fetcher=ListingFetcher(config, channel),
        scheduler=scheduler,
        gateway=PersistenceGateway(store),
        store=store,
        metrics=metrics,
        max_pages=max_pages,
    )
    runner.exporter = MetricsExporter(runner.run_id, config.METRICS_FILE)
    return runner
