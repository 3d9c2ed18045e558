"""Tests for the extraction client."""
import asyncio
from datetime import date

from conftest import FIXED_NOW, FakeGenerator, make_post, reply_for
from referral_scraper.errors import TransportFailure
from referral_scraper.extract.client import ExtractionClient, parse_expiration
from referral_scraper.extract.prompts import build_prompt


def _client(config, replies):
    generator = FakeGenerator(replies)
    return ExtractionClient(generator, config, "referralcodes", clock=lambda: FIXED_NOW), generator


def test_prompt_embeds_post_and_channel():
    """Test title, body, URL and channel are in the prompt."""
    post = make_post(3)
    prompt = build_prompt(post, "referralcodes")
    assert "r/referralcodes" in prompt
    assert "Title: Post 3 referral" in prompt
    assert "Content: Use my code CODE3" in prompt
    assert f"URL: {post.url}" in prompt
    assert "Only return valid JSON" in prompt


def test_extract_valid_reply(config):
    """Test a well-formed reply becomes an ExtractedRecord."""
    client, generator = _client(
        config, [reply_for("Acme", code=" ACME10 ", link="", expirationDate="2026-03-01")]
    )
    post = make_post(1)
    record = asyncio.run(client.extract(post))

    assert record is not None
    assert record.brand == "Acme"
    assert record.code == "ACME10"
    assert record.link is None
    assert record.tags == ["finance"]
    assert record.expiration_date == date(2026, 3, 1)
    assert record.post_date == post.post_date
    assert record.source_id == "p1"
    assert record.source_permalink == "/r/referralcodes/comments/p1/"
    assert len(generator.prompts) == 1


def test_missing_expiration_defaults_to_thirty_days(config):
    """Test expirationDate absent or null becomes extraction date + 30 days."""
    client, _ = _client(
        config,
        [reply_for("Acme", code="A"), reply_for("Acme", code="B", expirationDate=None)],
    )
    first = asyncio.run(client.extract(make_post(1)))
    second = asyncio.run(client.extract(make_post(2)))
    assert first.expiration_date == date(2026, 2, 9)
    assert second.expiration_date == date(2026, 2, 9)


def test_past_expiration_is_kept(config):
    """Test an already-past date from the model is not replaced."""
    client, _ = _client(config, [reply_for("Acme", code="A", expirationDate="2020-01-01")])
    record = asyncio.run(client.extract(make_post(1)))
    assert record.expiration_date == date(2020, 1, 1)


def test_unreadable_expiration_is_left_empty(config):
    """Test a garbage date is not silently defaulted."""
    client, _ = _client(config, [reply_for("Acme", code="A", expirationDate="end of month")])
    record = asyncio.run(client.extract(make_post(1)))
    assert record is not None
    assert record.expiration_date is None


def test_truncated_reply_returns_none(config):
    """Test malformed JSON yields None instead of raising."""
    client, _ = _client(config, ['Sure! {"brand": "Acme"'])
    assert asyncio.run(client.extract(make_post(1))) is None


def test_transport_failure_returns_none(config):
    """Test backend errors are absorbed."""
    client, _ = _client(config, [TransportFailure("quota exceeded")])
    assert asyncio.run(client.extract(make_post(1))) is None


def test_unexpected_error_returns_none(config):
    """Test any other exception from the backend is absorbed too."""
    client, _ = _client(config, [RuntimeError("boom")])
    assert asyncio.run(client.extract(make_post(1))) is None


def test_tags_are_normalized(config):
    """Test tags are trimmed and deduplicated in order."""
    client, _ = _client(
        config,
        ['{"brand": "Acme", "code": "A", "tags": [" food ", "food", "", "delivery"]}'],
    )
    record = asyncio.run(client.extract(make_post(1)))
    assert record.tags == ["food", "delivery"]


def test_parse_expiration_formats():
    """Test accepted expiration formats."""
    assert parse_expiration("2026-05-01") == date(2026, 5, 1)
    assert parse_expiration("2026-05-01T12:00:00Z") == date(2026, 5, 1)
    assert parse_expiration(20260501) is None
    assert parse_expiration("soon") is None
