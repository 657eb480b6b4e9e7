"""Tests for the Slack Web API client (httpx mock transport)."""

import json

import httpx
import pytest

from bella.bot.slack_client import SlackClient
from bella.lib.exceptions import UpstreamError


def _client(handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SlackClient("xoxb-test", http_client=http)


@pytest.mark.asyncio
async def test_post_message():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True, "ts": "1700000000.0001"})

    ts = await _client(handler).post_message("D1", "hello", [{"type": "divider"}])

    assert ts == "1700000000.0001"
    assert seen["url"] == "https://slack.com/api/chat.postMessage"
    assert seen["auth"] == "Bearer xoxb-test"
    assert seen["body"] == {"channel": "D1", "text": "hello", "blocks": [{"type": "divider"}]}


@pytest.mark.asyncio
async def test_open_dm():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"users": "U1"}
        return httpx.Response(200, json={"ok": True, "channel": {"id": "D42"}})

    assert await _client(handler).open_dm("U1") == "D42"


@pytest.mark.asyncio
async def test_slack_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "error": "channel_not_found"})

    with pytest.raises(UpstreamError, match="channel_not_found"):
        await _client(handler).post_message("D1", "hello")


@pytest.mark.asyncio
async def test_http_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    with pytest.raises(UpstreamError):
        await _client(handler).post_message("D1", "hello")
