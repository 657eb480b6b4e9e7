"""Minimal async Slack Web API client (chat.postMessage, conversations.open)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from bella.lib.exceptions import UpstreamError

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"


class SlackClient:
    """
    Posts messages as one Slack bot.

    Args:
        bot_token: `xoxb-` token of the app
        http_client: Optional shared client (tests pass a mock transport)
    """

    def __init__(self, bot_token: str, http_client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        self._bot_token = bot_token
        self._http = http_client
        self._timeout = timeout

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._bot_token}",
            "Content-Type": "application/json; charset=utf-8",
        }
        try:
            if self._http is not None:
                response = await self._http.post(f"{SLACK_API_URL}/{method}", json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(f"{SLACK_API_URL}/{method}", json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Slack {method} request failed: {exc}") from exc

        if not data.get("ok"):
            raise UpstreamError(f"Slack {method} returned error: {data.get('error', 'unknown')}")
        return data

    async def post_message(self, channel: str, text: str, blocks: list[dict[str, Any]] | None = None) -> str | None:
        """Post to a channel; returns the message ts."""
        payload: dict[str, Any] = {"channel": channel, "text": text}
        if blocks:
            payload["blocks"] = blocks
        data = await self._call("chat.postMessage", payload)
        return data.get("ts")

    async def open_dm(self, user_id: str) -> str:
        """Open (or reuse) a direct-message channel with a user."""
        data = await self._call("conversations.open", {"users": user_id})
        channel = (data.get("channel") or {}).get("id")
        if not channel:
            raise UpstreamError("Slack conversations.open returned no channel id")
        return channel


__all__ = ["SlackClient", "SLACK_API_URL"]
