"""
Block Kit layouts for Bella and Dave messages.

Each function returns the `blocks` list for chat.postMessage; callers also
pass a plain-text fallback.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from bella.models.weekly_plan import WEEKDAYS

Block = dict[str, Any]

VISIBLE_TASKS_PER_DAY = 3

_DAY_EMOJIS = {
    "monday": ":round_pushpin:",
    "tuesday": ":fire:",
    "wednesday": ":zap:",
    "thursday": ":rocket:",
    "friday": ":tada:",
}


def _section(text: str) -> Block:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _context(text: str) -> Block:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def _short_date(value: str | date | None) -> str:
    if not value:
        return ""
    parsed = value if isinstance(value, date) else date.fromisoformat(str(value)[:10])
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def format_initial_message(user_name: str | None = None) -> list[Block]:
    greeting = f"Hi {user_name}!" if user_name else "Hi there!"
    return [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "It's time to plan your week", "emoji": True},
        },
        _section(
            f"{greeting} Let's create an amazing week together! :sparkles:\n\n"
            "Tell me about your upcoming week - what goals do you want to achieve, "
            "any important deadlines, or commitments you need to plan around?"
        ),
    ]


def format_bella_response(message: str) -> list[Block]:
    return [_section(message), _context(":robot_face: _AI Assistant Response_")]


def format_weekly_plan(plan: dict[str, Any], app_url: str) -> list[Block]:
    """Weekly plan summary: targets, first three tasks per day, buttons."""
    blocks: list[Block] = [
        {"type": "header", "text": {"type": "plain_text", "text": ":date: Your Weekly Plan", "emoji": True}},
        _section(f"*Week of {_short_date(plan.get('weekStart'))} - {_short_date(plan.get('weekEnd'))}*"),
    ]

    targets = plan.get("weeklyTargets") or []
    if targets:
        blocks.append(_section("*:dart: Weekly Targets:*\n" + "\n".join(f"• {t}" for t in targets)))

    blocks.append({"type": "divider"})

    days = plan.get("days") or {}
    for day in WEEKDAYS:
        day_plan = days.get(day)
        if not day_plan:
            continue
        tasks = day_plan.get("tasks", [])
        lines = [f"{t.get('time')}: {t.get('task')}" for t in tasks[:VISIBLE_TASKS_PER_DAY]]
        text = f"*{_DAY_EMOJIS[day]} {day.capitalize()}* ({_short_date(day_plan.get('date'))})\n" + "\n".join(lines)
        remaining = len(tasks) - VISIBLE_TASKS_PER_DAY
        if remaining > 0:
            text += f"\n_+{remaining} more tasks_"
        blocks.append(_section(text))

    blocks += [
        {"type": "divider"},
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": ":book: View Full Plan"},
                    "url": f"{app_url.rstrip('/')}/bella",
                    "action_id": "view_full_plan",
                },
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": ":arrows_counterclockwise: Request Changes"},
                    "action_id": "request_changes",
                    "style": "primary",
                },
            ],
        },
    ]
    return blocks


def format_error_message() -> list[Block]:
    return [
        _section(":wrench: I encountered a technical issue. Let me try that again in a moment..."),
        _context(":robot_face: _If this persists, try saying 'restart' to begin a new conversation_"),
    ]


def format_daily_response(message: str, tools_used: list[str] | None = None) -> list[Block]:
    blocks = [_section(message)]
    if tools_used:
        blocks.append(_context(f":wrench: _Used: {', '.join(tools_used)}_"))
    blocks.append(_context(":iphone: _Daily Assistant_"))
    return blocks


__all__ = [
    "format_initial_message",
    "format_bella_response",
    "format_weekly_plan",
    "format_error_message",
    "format_daily_response",
]
