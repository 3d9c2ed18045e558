"""Main entry point with CLI."""
import argparse
import asyncio
import logging
import sys
import time
from typing import Optional, Sequence

from referral_scraper.config import config
from referral_scraper.fetch.endpoints import parse_channel_url
from referral_scraper.jobs.runner import build_runner
from referral_scraper.logging_conf import setup_logging

logger = logging.getLogger(__name__)

USAGE_EXAMPLE = "Usage: referral-scrape https://www.reddit.com/r/referralcodes/"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Reddit referral code scraper")
    parser.add_argument(
        "subreddit_url",
        nargs="?",
        default=None,
        help="Subreddit URL, e.g. https://www.reddit.com/r/referralcodes/",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help=f"Maximum listing pages to fetch (default: {config.MAX_PAGES})",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help=f"Posts per listing page (default: {config.POSTS_PER_PAGE})",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help=f"Posts per Gemini batch (default: {config.GEMINI_BATCH_SIZE})",
    )
    parser.add_argument(
        "--rate-limit",
        type=int,
        default=None,
        help=f"Gemini requests per minute (default: {config.GEMINI_RATE_LIMIT})",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Verbose (DEBUG) logging",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(dev=args.dev)

    if not args.subreddit_url:
        logger.error("Subreddit URL is required")
        print(USAGE_EXAMPLE, file=sys.stderr)
        sys.exit(1)

    try:
        channel = parse_channel_url(args.subreddit_url)
    except ValueError as e:
        logger.error(f"Error parsing subreddit URL: {e}")
        print(USAGE_EXAMPLE, file=sys.stderr)
        sys.exit(1)

    # Override config from args
    if args.page_size is not None:
        config.POSTS_PER_PAGE = args.page_size
    if args.batch_size is not None:
        config.GEMINI_BATCH_SIZE = args.batch_size
    if args.rate_limit is not None:
        config.GEMINI_RATE_LIMIT = args.rate_limit
    if args.max_pages is not None:
        config.MAX_PAGES = args.max_pages

    try:
        config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    config.ensure_dirs()

    logger.info("=" * 60)
    logger.info(f"Targeting subreddit: r/{channel}")
    logger.info(f"Max pages: {config.MAX_PAGES}")
    logger.info(f"Posts per page: {config.POSTS_PER_PAGE}")
    logger.info(f"Batch size: {config.GEMINI_BATCH_SIZE}")
    logger.info(f"Rate limit: {config.GEMINI_RATE_LIMIT} RPM")
    logger.info(f"Database: {config.REFERRALS_DB}")
    logger.info("=" * 60)

    runner = build_runner(config, channel)
    try:
        asyncio.run(runner.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        # Let pending log output and connections settle before exiting
        time.sleep(config.EXIT_GRACE)
        sys.exit(1)

    logger.info("Script completed")


if __name__ == "__main__":
    main()
