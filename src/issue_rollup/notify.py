"""Slack direct messages about issues."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .exceptions import RollupError

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"
SLACK_FOOTER = "Sent by issue-rollup"


def slack_link(url: str, text: str) -> str:
    return f"<{url}|{text}>"


class SlackError(RollupError):
    """Raised when Slack rejects a message."""


class SlackClient:
    """Async Slack Web API client that only knows how to send direct messages."""

    def __init__(
        self,
        token: str,
        *,
        default_channel: str = "",
        mute: bool = False,
        timeout: int = 30,
    ) -> None:
        self.default_channel = default_channel
        self.mute = mute
        self._client = httpx.AsyncClient(
            base_url=SLACK_API_URL,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def send_dm(self, recipient: str | None, text: str) -> None:
        """Message a user by handle, or the default channel when there is no recipient."""
        channel = f"@{recipient}" if recipient else self.default_channel
        if not channel:
            logger.warning("No Slack recipient or default channel, dropping message")
            return
        if self.mute:
            logger.info("[SLACK_MUTE=true] Skipping Slack message to %s", channel)
            return

        logger.info("Sending Slack message to %s", channel)
        resp = await self._client.post("/chat.postMessage", json={"channel": channel, "text": text})
        data: dict[str, Any] = resp.json() if resp.content else {}
        if not resp.is_success or not data.get("ok", False):
            raise SlackError(f"Slack rejected message to {channel}: {data.get('error', resp.text)}")
