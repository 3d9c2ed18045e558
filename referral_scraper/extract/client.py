"""Extraction client: one post in, one structured referral record out."""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

from referral_scraper.config import Config
from referral_scraper.errors import ExtractionError, MalformedResponse
from referral_scraper.extract.gemini import TextGenerator
from referral_scraper.extract.prompts import build_prompt
from referral_scraper.extract.reply import parse_reply
from referral_scraper.models import ExtractedRecord, RawPost, utcnow

logger = logging.getLogger(__name__)


def parse_expiration(value: Any) -> Optional[date]:
    """Read a model-supplied expiration as a calendar date, or None if unreadable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ExtractionClient:
    """Builds the prompt, calls the text generator and normalizes the reply."""

    def __init__(
        self,
        generator: TextGenerator,
        config: Config,
        channel: str,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.generator = generator
        self.config = config
        self.channel = channel
        self._clock = clock

    def default_expiration(self) -> date:
        return self._clock().date() + timedelta(days=self.config.DEFAULT_EXPIRY_DAYS)

    def build_record(self, data: dict[str, Any], post: RawPost) -> ExtractedRecord:
        """Turn a decoded reply into an ExtractedRecord for the given post."""
        raw_expiration = data.get("expirationDate")
        if _is_absent(raw_expiration):
            expiration = self.default_expiration()
        else:
            expiration = parse_expiration(raw_expiration)
            if expiration is None:
                logger.warning(f"Unreadable expirationDate {raw_expiration!r} for post {post.id}")

        try:
            return ExtractedRecord(
                brand=data.get("brand"),
                code=data.get("code"),
                link=data.get("link"),
                tags=data.get("tags"),
                expiration_date=expiration,
                post_date=post.post_date,
                source_id=post.id,
                source_permalink=post.permalink or None,
            )
        except ValueError as e:
            raise MalformedResponse(f"Reply fields have unexpected types: {e}") from e

    async def extract_result(self, post: RawPost) -> ExtractedRecord:
        """Extract a record, raising ExtractionError on transport or parse failure."""
        prompt = build_prompt(post, self.channel)
        reply = await self.generator.generate(prompt)
        try:
            data = parse_reply(reply)
        except MalformedResponse:
            logger.debug(f"Raw response: {reply}")
            raise
        return self.build_record(data, post)

    async def extract(self, post: RawPost) -> Optional[ExtractedRecord]:
        """Extract a record, returning None on any failure."""
        try:
            return await self.extract_result(post)
        except ExtractionError as e:
            logger.error(f"Error extracting post {post.id}: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error extracting post {post.id}: {e}", exc_info=True)
            return None
