"""In-process content memory: rendered fragments keyed by the sources they came from."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class MemoryItem:
    content: str
    sources: list[str] = field(default_factory=list)


class Memory:
    """Collects rendered content so a summary step can later be keyed on its sources."""

    def __init__(self) -> None:
        self.bank: list[MemoryItem] = []

    def remember(self, content: str, sources: list[str]) -> None:
        logger.debug("Remembering %d characters from %d sources", len(content), len(sources))
        self.bank.append(MemoryItem(content=content, sources=list(sources)))

    @property
    def sources(self) -> list[str]:
        # Not deduplicated: repeated sources are part of the cache key
        return [source for item in self.bank for source in item.sources]

    @property
    def content(self) -> str:
        return "\n\n".join(item.content for item in self.bank)

    def forget(self) -> None:
        self.bank.clear()

    def __len__(self) -> int:
        return len(self.bank)
