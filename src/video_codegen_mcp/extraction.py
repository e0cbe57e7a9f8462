"""Recover the code payload from a raw model response."""

from __future__ import annotations

import re

_FENCE_LANG = r"[\w+-]*"

# The whole (trimmed) response is a single fence.
_FULL_FENCE = re.compile(rf"^```{_FENCE_LANG}[ \t]*\r?\n([\s\S]*?)\r?\n?```$")
# First fenced block anywhere in the text.
_ANY_FENCE = re.compile(rf"```{_FENCE_LANG}[ \t]*\r?\n([\s\S]*?)```")


def extract_code(response: str) -> str:
    """Extract composition code from an LLM response.

    Prefers a fence that wraps the entire response, so code that contains
    backticks of its own (template literals, nested fences in comments)
    is not cut at the first inner fence. Falls back to the first
    fenced block anywhere, then to the trimmed response itself.

    Args:
        response: Raw text returned by the generation model.

    Returns:
        The extracted code, trimmed. Never ``None``; an empty response
        yields an empty string, which the validators reject.
    """
    text = response.strip()

    match = _FULL_FENCE.match(text)
    if match:
        return match.group(1).strip()

    match = _ANY_FENCE.search(text)
    if match:
        return match.group(1).strip()

    return text
