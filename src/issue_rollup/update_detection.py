"""Timeframes and the strategies used to recognize status updates in comments."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone

from .exceptions import ConfigurationError
from .text import bolded_text, headers

TIMEFRAME_DAYS: dict[str, int | None] = {
    "all-time": None,
    "today": 1,
    "last-week": 7,
    "last-month": 31,
    "last-year": 365,
}

_MARKER_RE = re.compile(r"<!--\s*update\s*-->", re.IGNORECASE)
_KEYWORD_RE = re.compile(r"^\W*update\b", re.IGNORECASE)


def _is_marked(body: str) -> bool:
    return bool(_MARKER_RE.search(body))


def _has_update_header(body: str) -> bool:
    return any("update" in h.lower() for h in headers(body))


def _has_update_bold(body: str) -> bool:
    return any("update" in b.lower() for b in bolded_text(body))


def _starts_with_keyword(body: str) -> bool:
    return bool(_KEYWORD_RE.match(body.strip()))


STRATEGIES: dict[str, Callable[[str], bool]] = {
    "marker": _is_marked,
    "header": _has_update_header,
    "bold": _has_update_bold,
    "keyword": _starts_with_keyword,
    "any": lambda body: True,
}

DEFAULT_STRATEGIES = ("marker", "header", "bold", "keyword")


def validate_timeframe(timeframe: str) -> str:
    if timeframe not in TIMEFRAME_DAYS:
        msg = (
            f'Invalid Timeframe: "{timeframe}". '
            f"Use one of: {', '.join(TIMEFRAME_DAYS)}."
        )
        raise ConfigurationError(msg)
    return timeframe


def within_days(moment: datetime, days: float, now: datetime | None = None) -> bool:
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return now - moment < timedelta(days=days)


def within_timeframe(moment: datetime, timeframe: str) -> bool:
    days = TIMEFRAME_DAYS.get(validate_timeframe(timeframe))
    if days is None:
        return True
    return within_days(moment, days)


def parse_strategies(blob: str | Iterable[str] | None) -> list[str]:
    """Turn a comma-separated string or list of strategy names into a validated list."""
    if blob is None:
        return list(DEFAULT_STRATEGIES)
    names = blob.split(",") if isinstance(blob, str) else list(blob)
    strategies = [name.strip().lower() for name in names if name.strip()]
    unknown = [name for name in strategies if name not in STRATEGIES]
    if unknown:
        msg = (
            f"Unknown update strategies: {', '.join(unknown)}. "
            f"Use any of: {', '.join(STRATEGIES)}."
        )
        raise ConfigurationError(msg)
    return strategies


def is_update(body: str, strategies: Iterable[str]) -> bool:
    return any(STRATEGIES[name](body) for name in strategies)
