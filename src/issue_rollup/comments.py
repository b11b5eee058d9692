"""Comments on an issue, and which of them count as status updates."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime

from .emoji import find_emoji
from .models import CommentRecord
from .text import split_markdown_by_bolded_text, split_markdown_by_headers, to_snake_case
from .update_detection import DEFAULT_STRATEGIES, is_update, parse_strategies, within_timeframe


class CommentWrapper:
    def __init__(self, record: CommentRecord) -> None:
        self._record = record

    @property
    def author(self) -> str:
        return self._record.author

    @property
    def body(self) -> str:
        return self._record.body.strip()

    @property
    def url(self) -> str:
        return self._record.url

    @property
    def created_at(self) -> datetime:
        return self._record.created_at

    @property
    def updated_at(self) -> datetime:
        return self._record.updated_at or self._record.created_at

    @property
    def header(self) -> str:
        return f"[Update]({self.url})"

    def is_update(self, strategies: Iterable[str]) -> bool:
        return is_update(self.body, strategies)

    def was_posted_within(self, timeframe: str) -> bool:
        return within_timeframe(self.created_at, timeframe)

    def emoji_status(self, sections: list[str] | None = None) -> str | None:
        """First emoji in the update, or in the first named section that has one."""
        if not sections:
            return find_emoji(self.body)

        split = {
            **split_markdown_by_bolded_text(self.body),
            **split_markdown_by_headers(self.body),
        }
        for section in sections:
            content = split.get(to_snake_case(section))
            if content:
                emoji = find_emoji(content)
                if emoji:
                    return emoji
        return None


class CommentList:
    """Comments of one issue, newest first."""

    def __init__(
        self,
        comments: Iterable[CommentRecord],
        *,
        timeframe: str = "all-time",
        strategies: Iterable[str] = DEFAULT_STRATEGIES,
    ) -> None:
        self.timeframe = timeframe
        self.strategies = list(strategies)
        self._comments = sorted(
            (CommentWrapper(c) for c in comments), key=lambda c: c.created_at, reverse=True
        )

    def __iter__(self) -> Iterator[CommentWrapper]:
        return iter(self._comments)

    def __len__(self) -> int:
        return len(self._comments)

    def latest_updates(
        self, n: int = 1, strategies: str | Iterable[str] | None = None
    ) -> list[CommentWrapper]:
        """The n most recent comments in the timeframe that a strategy recognizes as updates."""
        active = self.strategies if strategies is None else parse_strategies(strategies)
        updates = [
            c for c in self._comments if c.was_posted_within(self.timeframe) and c.is_update(active)
        ]
        return updates[:n]

    @property
    def latest_update(self) -> CommentWrapper | None:
        updates = self.latest_updates(1)
        return updates[0] if updates else None

    @property
    def has_update(self) -> bool:
        return self.latest_update is not None
