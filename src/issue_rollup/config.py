"""Issue rollup configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .exceptions import ConfigurationError
from .update_detection import DEFAULT_STRATEGIES, parse_strategies, validate_timeframe

TRUTHY = ("true", "1", "yes", "on")


def is_truthy(value: object) -> bool:
    """Interpret option values the way environment variables are written."""
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY
    return bool(value)


@dataclass
class RollupConfig:
    """Configuration for issue rollups, loaded from environment variables."""

    api_url: str = "https://api.github.com"
    token: str = ""
    timeout: int = 30
    update_timeframe: str = "all-time"
    update_strategies: list[str] = field(default_factory=lambda: list(DEFAULT_STRATEGIES))
    emoji_override: str = ""
    slack_token: str = ""
    slack_default_channel: str = ""
    slack_mute: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> RollupConfig:
        api_url = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/")
        token = os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN", "")
        timeout = int(os.getenv("GITHUB_TIMEOUT", "30"))
        strategies = os.getenv("UPDATE_STRATEGIES", "")

        return cls(
            api_url=api_url,
            token=token,
            timeout=timeout,
            update_timeframe=os.getenv("UPDATE_TIMEFRAME", "all-time").strip().lower(),
            update_strategies=(
                parse_strategies(strategies) if strategies else list(DEFAULT_STRATEGIES)
            ),
            emoji_override=os.getenv("EMOJI_OVERRIDE", "").strip(),
            slack_token=os.getenv("SLACK_TOKEN", ""),
            slack_default_channel=os.getenv("SLACK_DEFAULT_CHANNEL", ""),
            slack_mute=is_truthy(os.getenv("SLACK_MUTE", "false")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def emoji_sections(self) -> list[str] | None:
        """Sections searched for a status emoji, [] for the whole update, None when disabled."""
        if not self.emoji_override or self.emoji_override.lower() in ("false", "0", "no", "off"):
            return None
        if is_truthy(self.emoji_override):
            return []
        return [s.strip() for s in self.emoji_override.split(",") if s.strip()]

    def validate(self) -> None:
        if not self.token:
            msg = "GitHub token is required. Set one of: GITHUB_TOKEN or GH_TOKEN"
            raise ConfigurationError(msg)
        validate_timeframe(self.update_timeframe)
        parse_strategies(self.update_strategies)
