"""
Bot package for Bella Planner.

This package contains the Slack integration:
- webhook.py: Event handlers for the Bella and Dave apps
- slack_signature.py: Request signature verification
- slack_client.py: Outbound Web API calls
- slack_formatter.py: Block Kit layouts

Usage:
    from bella.bot import BellaSlackHandler, validate_slack_request
"""

from bella.bot.slack_client import SlackClient
from bella.bot.slack_signature import validate_slack_request, verify_slack_signature
from bella.bot.webhook import BellaSlackHandler, DaveSlackHandler, SlackEventHandler, skip_reasons

__all__ = [
    "SlackClient",
    "validate_slack_request",
    "verify_slack_signature",
    "SlackEventHandler",
    "BellaSlackHandler",
    "DaveSlackHandler",
    "skip_reasons",
]
