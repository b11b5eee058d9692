"""Collaborators and settings shared by every issue and collection of a rollup."""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import RollupConfig
from .memory import Memory
from .notify import SlackClient
from .tracker import IssueTracker


@dataclass
class RollupContext:
    tracker: IssueTracker
    config: RollupConfig = field(default_factory=RollupConfig)
    memory: Memory = field(default_factory=Memory)
    slack: SlackClient | None = None

    @property
    def timeframe(self) -> str:
        return self.config.update_timeframe

    @property
    def strategies(self) -> list[str]:
        return self.config.update_strategies
