"""Prompt for extracting referral data from a post."""
from referral_scraper.models import RawPost

EXTRACTION_PROMPT = """\
Extract referral code information from this Reddit post from r/{channel}.
Return a JSON object with these fields (leave empty if not found):
- brand: The company/service name the referral is for
- code: Any referral or promo code (just the code, not the full phrase "use code XYZ")
- link: Any referral link in the post
- tags: Array of relevant tags (e.g., "food delivery", "cryptocurrency", "finance")
- expirationDate: Expiration date if mentioned (in YYYY-MM-DD format, or null if not specified)

Post data:
Title: {title}
Content: {body}
URL: {url}

Only return valid JSON with no other text.
"""


def build_prompt(post: RawPost, channel: str) -> str:
    return EXTRACTION_PROMPT.format(
        channel=channel,
        title=post.title,
        body=post.selftext or "",
        url=post.url or "",
    )
