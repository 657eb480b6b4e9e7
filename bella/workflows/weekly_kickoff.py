"""
Weekly kickoff for Bella Planner.

Starts the Sunday planning conversation: a fresh session seeded with
Bella's opening message and, when the Bella Slack app is configured, a DM
to the configured user bound to that session.

Run manually or from cron:
    python main.py kickoff
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session as DbSession

from bella.bot.slack_client import SlackClient
from bella.bot.slack_formatter import format_initial_message
from bella.config.settings import Settings, get_settings
from bella.lib.exceptions import UpstreamError
from bella.lib.logging import bind_session_context
from bella.lib.prompts import INITIAL_MESSAGE
from bella.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class KickoffResult:
    session_id: str
    slack_channel_id: str | None = None
    slack_message_ts: str | None = None


async def run_weekly_kickoff(
    db: DbSession,
    settings: Settings | None = None,
    slack_client: SlackClient | None = None,
) -> KickoffResult:
    """
    Create this week's planning session and announce it on Slack.

    A Slack failure is logged and leaves the session usable over the API.
    """
    settings = settings or get_settings()
    store = SessionStore(db)
    session = store.create(settings.user_id, opening_message=INITIAL_MESSAGE.template)
    bind_session_context(session.session_id, settings.user_id)
    result = KickoffResult(session_id=session.session_id)

    if not settings.bella_slack.enabled or not settings.slack_user_id:
        logger.info("Slack not configured; weekly session %s is available over the API only", session.session_id)
        return result

    client = slack_client or SlackClient(settings.bella_slack.bot_token or "")
    try:
        channel = await client.open_dm(settings.slack_user_id)
        ts = await client.post_message(channel, INITIAL_MESSAGE.template, format_initial_message())
    except UpstreamError:
        logger.exception("Failed to post weekly kickoff to Slack for session %s", session.session_id)
        return result

    store.bind_channel(session.session_id, channel, ts)
    result.slack_channel_id = channel
    result.slack_message_ts = ts
    logger.info("Weekly kickoff posted to Slack channel %s", channel)
    return result


__all__ = ["KickoffResult", "run_weekly_kickoff"]
