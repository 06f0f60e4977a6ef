"""Output text cleanup."""

import html
from typing import Any


def decode_entities(value: Any) -> Any:
    """
    Decode HTML entities in a string, or in every string of a JSON document.

    Card text from some sources arrives escaped (``&amp;``, ``&#039;``).
    Non-string leaves are returned unchanged.
    """
    if isinstance(value, str):
        return html.unescape(value)
    if isinstance(value, list):
        return [decode_entities(item) for item in value]
    if isinstance(value, dict):
        return {key: decode_entities(item) for key, item in value.items()}
    return value


def excerpt(text: str, length: int = 200) -> str:
    """First ``length`` characters, with "..." appended when truncated."""
    if len(text) <= length:
        return text
    return text[:length] + "..."
