"""Tests for listing URL building and subreddit URL parsing."""
import pytest
from referral_scraper.fetch.endpoints import get_listing_url, parse_channel_url


def test_listing_url_first_page():
    """Test URL without continuation token."""
    url = get_listing_url("https://www.reddit.com/", "referralcodes", 25)
    assert url == "https://www.reddit.com/r/referralcodes.json?limit=25"


def test_listing_url_with_after():
    """Test URL with continuation token."""
    url = get_listing_url("https://www.reddit.com", "referralcodes", 10, "t3_abc")
    assert url == "https://www.reddit.com/r/referralcodes.json?limit=10&after=t3_abc"


def test_parse_channel_url():
    """Test channel extraction from a subreddit URL."""
    assert parse_channel_url("https://www.reddit.com/r/referralcodes/") == "referralcodes"
    assert parse_channel_url("https://old.reddit.com/r/beermoney/new/") == "beermoney"


@pytest.mark.parametrize(
    "url",
    [
        "",
        "not a url",
        "https://www.reddit.com/",
        "https://www.reddit.com/r/",
        "https://www.reddit.com/user/someone/",
    ],
)
def test_parse_channel_url_invalid(url):
    """Test rejection of URLs that are not /r/<channel>/..."""
    with pytest.raises(ValueError):
        parse_channel_url(url)
