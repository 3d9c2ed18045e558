"""Locate and decode the JSON object inside a free-form model reply."""
from typing import Any

import orjson

from referral_scraper.errors import MalformedResponse


def find_json_object(text: str) -> str:
    """Return the first balanced {...} region of text.

    Braces inside JSON string literals are ignored. Raises MalformedResponse
    when the reply has no opening brace or the object is never closed.
    """
    if not text:
        raise MalformedResponse("Empty reply")

    start = text.find("{")
    if start == -1:
        raise MalformedResponse("No JSON object found in reply")

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    raise MalformedResponse("Unbalanced JSON object in reply")


def parse_reply(text: str) -> dict[str, Any]:
    """Decode the first JSON object in the reply into a dict."""
    candidate = find_json_object(text)
    try:
        data = orjson.loads(candidate)
    except orjson.JSONDecodeError as e:
        raise MalformedResponse(f"Invalid JSON in reply: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponse("Reply JSON is not an object")
    return data
