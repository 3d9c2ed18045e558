"""URL builders for the Reddit listing endpoints."""
from typing import Optional
from urllib.parse import urlencode, urlparse


def get_listing_url(base_url: str, channel: str, limit: int, after: Optional[str] = None) -> str:
    """Get the JSON listing URL for a subreddit page."""
    params = {"limit": limit}
    if after:
        params["after"] = after
    return f"{base_url.rstrip('/')}/r/{channel}.json?{urlencode(params)}"


def parse_channel_url(url: str) -> str:
    """Extract the subreddit name from a URL shaped like /r/<channel>/..."""
    parsed = urlparse(url or "")
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid subreddit URL: {url!r}")
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2 or parts[0] != "r":
        raise ValueError(f"Invalid subreddit URL: {url!r}")
    return parts[1]
