"""
Slack Event Handlers for Bella Planner.

Two Slack apps post events here: Bella (weekly planning) and Dave (daily
assistant). Both follow the same flow:

    1. url_verification handshake (answered before signature checks)
    2. Signature validation (see slack_signature.py)
    3. Event filter: DMs only, human-authored, with text, not the bot itself
    4. Deduplication on `{channel}-{ts}` (Slack retries slow deliveries)
    5. Processing, then Block Kit replies via chat.postMessage

Steps 1-4 run inside the HTTP request; step 5 is scheduled after the
acknowledgement is sent.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session as DbSession
from sqlalchemy.orm import sessionmaker

from bella.bot.slack_client import SlackClient
from bella.bot.slack_formatter import (
    format_bella_response,
    format_daily_response,
    format_error_message,
    format_weekly_plan,
)
from bella.config.settings import Settings, SlackAppConfig
from bella.lib.exceptions import UpstreamError
from bella.modules.daily_assistant import DailyAssistant
from bella.modules.planning import PlanningController
from bella.services.event_dedup import EventDeduplicator
from bella.services.llm_client import PROCESSING_MESSAGE, LLMClient

logger = logging.getLogger(__name__)


def skip_reasons(event: dict[str, Any], bot_user_id: str | None) -> list[str]:
    """Why an event should be ignored; empty when it should be processed."""
    reasons = []
    if event.get("type") != "message":
        reasons.append(f"type={event.get('type')}")
    if event.get("channel_type") != "im":
        reasons.append(f"channel_type={event.get('channel_type')}")
    if event.get("bot_id"):
        reasons.append("bot message")
    if event.get("subtype"):
        reasons.append(f"subtype={event.get('subtype')}")
    if not event.get("text"):
        reasons.append("no text")
    if not event.get("channel"):
        reasons.append("no channel")
    if not event.get("ts"):
        reasons.append("no ts")
    if bot_user_id and event.get("user") == bot_user_id:
        reasons.append("own message")
    return reasons


class SlackEventHandler:
    """
    Shared filter + dedup logic for one Slack app.

    Subclasses implement `process(event)`.
    """

    name = "slack"

    def __init__(
        self,
        app: SlackAppConfig,
        settings: Settings,
        session_factory: sessionmaker[DbSession],
        llm: LLMClient,
        deduplicator: EventDeduplicator,
        slack_client: SlackClient | None = None,
    ):
        self._app = app
        self._settings = settings
        self._session_factory = session_factory
        self._llm = llm
        self._dedup = deduplicator
        self._slack = slack_client or SlackClient(app.bot_token or "")

    @property
    def app(self) -> SlackAppConfig:
        return self._app

    async def accept(self, event: dict[str, Any]) -> bool:
        """Filter and claim an event; True means it should be processed once."""
        reasons = skip_reasons(event, self._app.bot_user_id)
        if reasons:
            logger.debug("%s: skipping event (%s)", self.name, ", ".join(reasons))
            return False

        key = EventDeduplicator.event_key(event["channel"], event["ts"])
        if not await self._dedup.claim(key):
            logger.info("%s: skipping duplicate event %s", self.name, key)
            return False
        return True

    async def process(self, event: dict[str, Any]) -> None:
        raise NotImplementedError

    async def _post(self, channel: str, text: str, blocks: list[dict[str, Any]]) -> None:
        try:
            await self._slack.post_message(channel, text, blocks)
        except UpstreamError:
            logger.exception("%s: failed to post message to %s", self.name, channel)


class BellaSlackHandler(SlackEventHandler):
    """Runs Slack DMs through the weekly planning conversation."""

    name = "bella"

    async def process(self, event: dict[str, Any]) -> None:
        channel = event["channel"]
        with self._session_factory() as db:
            controller = PlanningController(db, self._llm, self._settings)
            try:
                session = controller.sessions.find_for_channel(channel)
                if session is None:
                    session = controller.start_session(self._settings.user_id, slack_channel_id=channel)
                result = await controller.handle_user_message(session.session_id, event["text"])
            except Exception:
                logger.exception("bella: error processing message in %s", channel)
                await self._post(channel, "Sorry, I encountered an issue. Please try again.", format_error_message())
                return
            plan = result.plan.to_dict() if result.plan is not None else None

        for message in result.assistant_messages:
            if message and message != PROCESSING_MESSAGE:
                await self._post(channel, message, format_bella_response(message))
        if plan is not None:
            await self._post(channel, "Your weekly plan is ready!", format_weekly_plan(plan, self._settings.app_url))


class DaveSlackHandler(SlackEventHandler):
    """Answers Slack DMs with the daily assistant."""

    name = "dave"

    async def process(self, event: dict[str, Any]) -> None:
        channel = event["channel"]
        with self._session_factory() as db:
            assistant = DailyAssistant(db, self._llm, self._settings.user_id)
            try:
                reply = await assistant.respond(event["text"])
            except Exception:
                logger.exception("dave: error processing message in %s", channel)
                await self._post(channel, "Sorry, I encountered an issue. Please try again.", format_error_message())
                return
        await self._post(channel, reply.message, format_daily_response(reply.message, reply.tools_used))


__all__ = ["skip_reasons", "SlackEventHandler", "BellaSlackHandler", "DaveSlackHandler"]
