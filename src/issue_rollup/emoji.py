"""Emoji detection and the emoji-first comparator used for sorting and grouping."""

from __future__ import annotations

import re

# Status emoji, most urgent first
STATUS_ORDER = (
    "\U0001F534",  # red circle
    "❌",  # cross mark
    "\U0001F7E0",  # orange circle
    "⚠",  # warning
    "\U0001F7E1",  # yellow circle
    "\U0001F7E2",  # green circle
    "✅",  # check mark
    "\U0001F535",  # blue circle
    "\U0001F7E3",  # purple circle
    "\U0001F7E4",  # brown circle
    "⚫",  # black circle
    "⚪",  # white circle
)

_EMOJI_RE = re.compile(
    "[\U0001F300-\U0001FAFF\u2300-\u23FF\u2600-\u27BF\u2B00-\u2BFF]\uFE0F?"
)


def find_emoji(text: str) -> str | None:
    m = _EMOJI_RE.search(text)
    return m.group(0) if m else None


def _status_rank(text: str) -> int | None:
    positions = [
        (text.find(emoji), rank) for rank, emoji in enumerate(STATUS_ORDER) if emoji in text
    ]
    if not positions:
        return None
    return min(positions)[1]


def emoji_compare(a: str, b: str) -> int:
    """Order by the first status emoji in each string.

    Strings carrying a status emoji sort before strings without one; 0 means no
    emoji-based preference and callers fall back to lexical order.
    """
    rank_a, rank_b = _status_rank(a), _status_rank(b)
    if rank_a is None and rank_b is None:
        return 0
    if rank_a is None:
        return 1
    if rank_b is None:
        return -1
    return (rank_a > rank_b) - (rank_a < rank_b)


def lexical_compare(a: str, b: str) -> int:
    ka, kb = (a.casefold(), a), (b.casefold(), b)
    return (ka > kb) - (ka < kb)


def status_compare(a: str, b: str) -> int:
    return emoji_compare(a, b) or lexical_compare(a, b)
