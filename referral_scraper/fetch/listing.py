"""Listing fetcher for the subreddit JSON feed."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from referral_scraper.config import Config
from referral_scraper.fetch.endpoints import get_listing_url
from referral_scraper.models import ListingPage, RawPost

logger = logging.getLogger(__name__)


class ListingFetcher:
    """Paginates a subreddit listing. Failures become an empty final page, never exceptions."""

    def __init__(
        self,
        config: Config,
        channel: str,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.channel = channel
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            http2=True,
            timeout=config.TIMEOUT,
            follow_redirects=True,
        )
        self._sleep = sleep
        self.pages_fetched = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def fetch(self, after: Optional[str] = None, limit: Optional[int] = None) -> ListingPage:
        """Fetch one page of posts and the continuation token."""
        url = get_listing_url(
            self.config.REDDIT_BASE_URL,
            self.channel,
            limit or self.config.POSTS_PER_PAGE,
            after,
        )
        try:
            response = await self.client.get(url, headers={"User-Agent": self.config.USER_AGENT})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Error fetching subreddit posts: HTTP {e.response.status_code} for {url}")
            return ListingPage()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching subreddit posts: {e}")
            return ListingPage()
        except ValueError as e:
            logger.error(f"Listing response was not JSON: {e}")
            return ListingPage()

        return self._parse_listing(payload)

    def _parse_listing(self, payload: object) -> ListingPage:
        data = payload.get("data") if isinstance(payload, dict) else None
        children = data.get("children") if isinstance(data, dict) else None
        if not isinstance(children, list):
            logger.error(f"Unexpected response structure: {str(payload)[:200]}")
            return ListingPage()

        try:
            posts = [RawPost.model_validate(child["data"]) for child in children]
        except (KeyError, TypeError, ValidationError) as e:
            logger.error(f"Unexpected listing item structure: {e}")
            return ListingPage()

        next_token = data.get("after")
        if not isinstance(next_token, str) or not next_token:
            next_token = None
        return ListingPage(posts=posts, next_token=next_token)

    async def fetch_all(self, max_pages: Optional[int] = None) -> list[RawPost]:
        """Fetch pages until the page limit, an empty page, or no continuation token."""
        max_pages = max_pages or self.config.MAX_PAGES
        after: Optional[str] = None
        page_count = 0
        all_posts: list[RawPost] = []

        logger.info(f"Starting to scrape r/{self.channel}...")

        while page_count < max_pages:
            page_count += 1
            logger.info(f"Scraping page {page_count}...")

            page = await self.fetch(after)
            self.pages_fetched += 1
            if not page.posts:
                logger.info("No more posts to process")
                break

            logger.info(f"Found {len(page.posts)} posts on page {page_count}")
            all_posts.extend(page.posts)

            after = page.next_token
            if not after:
                logger.info("No more pages available")
                break

            if page_count < max_pages:
                await self._sleep(self.config.PAGE_DELAY)

        logger.info(f"Scraping complete. Total posts collected: {len(all_posts)}")
        return all_posts
