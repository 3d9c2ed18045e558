"""Shared fixtures for the referral pipeline tests."""
import asyncio
import json
from datetime import datetime, timezone

import pytest

from referral_scraper.config import Config
from referral_scraper.models import RawPost
from referral_scraper.store.referrals import ReferralStore

FIXED_NOW = datetime(2026, 1, 10, 15, 30, tzinfo=timezone.utc)


class FakeGenerator:
    """TextGenerator that replays canned replies (or raises canned exceptions) in order."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError("FakeGenerator received more calls than expected")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class SleepRecorder:
    """Async sleep replacement that records durations and advances a fake clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.calls = []

    def clock(self) -> float:
        return self.now

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.now += seconds


async def no_sleep(_seconds: float) -> None:
    return None


def reply_for(brand: str, code: str = None, link: str = None, **extra) -> str:
    payload = {"brand": brand, "code": code, "link": link, "tags": ["finance"], **extra}
    return "```json\n" + json.dumps(payload) + "\n```"


def make_post(index: int, **overrides) -> RawPost:
    data = {
        "id": f"p{index}",
        "title": f"Post {index} referral",
        "selftext": f"Use my code CODE{index}",
        "url": f"https://www.reddit.com/r/referralcodes/comments/p{index}/",
        "created_utc": 1767225600.0 + index,
        "permalink": f"/r/referralcodes/comments/p{index}/",
    }
    data.update(overrides)
    return RawPost.model_validate(data)


@pytest.fixture
def config(tmp_path):
    return Config(
        REDDIT_BASE_URL="https://www.reddit.com",
        USER_AGENT="test-agent",
        MAX_PAGES=5,
        POSTS_PER_PAGE=25,
        PAGE_DELAY=1.0,
        GEMINI_API_KEY="test-key",
        GEMINI_BATCH_SIZE=10,
        GEMINI_RATE_LIMIT=15,
        BATCH_PAUSE=5.0,
        DEFAULT_EXPIRY_DAYS=30,
        REFERRALS_DB=tmp_path / "referrals.db",
        METRICS_FILE=tmp_path / "metrics.jsonl",
        SWEEP_INTERVAL=3600.0,
    )


@pytest.fixture
def store(config):
    store = ReferralStore(config.REFERRALS_DB)
    asyncio.run(store.initialize())
    return store
