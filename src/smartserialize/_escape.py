"""String escaping for double-quoted output tokens."""

from __future__ import annotations

import re
from typing import Final

# ASCII control characters 0-31, double quote and backslash
ESCAPE_PATTERN: Final = re.compile(r'[\x00-\x1f"\\]')

_NAMED_ESCAPES: Final = {
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
    '"': '\\"',
    "\\": "\\\\",
}


def _replace(match: re.Match[str]) -> str:
    char = match.group(0)
    named = _NAMED_ESCAPES.get(char)
    if named is not None:
        return named
    return f"\\u{ord(char):04x}"


def escape(text: str) -> str:
    """Escapes characters that would break a double-quoted string.

    Named control characters get their short escape, the remaining control
    characters become ``\\u00XX``. Single quotes and non-ASCII characters
    pass through unchanged.

    Args:
        text: The raw string content

    Returns:
        The escaped content, without surrounding quotes
    """
    if ESCAPE_PATTERN.search(text) is None:
        return text
    return ESCAPE_PATTERN.sub(_replace, text)


def quote(text: str) -> str:
    """Wraps escaped text in double quotes."""
    return f'"{escape(text)}"'
