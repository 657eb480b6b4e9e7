"""Tests for Block Kit layouts."""

from bella.bot.slack_formatter import (
    format_bella_response,
    format_daily_response,
    format_error_message,
    format_initial_message,
    format_weekly_plan,
)


def _texts(blocks):
    out = []
    for block in blocks:
        if "text" in block:
            out.append(block["text"]["text"])
        for element in block.get("elements", []):
            text = element.get("text")
            out.append(text["text"] if isinstance(text, dict) else text)
    return out


def _plan(tasks_per_day=2):
    days = {
        day: {
            "date": f"2026-10-{26 + i}",
            "tasks": [{"time": f"{9 + n}:00 AM", "task": f"{day} {n}"} for n in range(tasks_per_day)],
        }
        for i, day in enumerate(["monday", "tuesday", "wednesday", "thursday", "friday"])
    }
    return {
        "weekStart": "2026-10-26",
        "weekEnd": "2026-10-30",
        "weeklyTargets": ["Ship feature X"],
        "days": days,
    }


def test_initial_message_greets_by_name():
    blocks = format_initial_message("Sam")
    assert blocks[0]["type"] == "header"
    assert "Hi Sam!" in blocks[1]["text"]["text"]
    assert "Hi there!" in format_initial_message()[1]["text"]["text"]


def test_bella_response_has_context_footer():
    blocks = format_bella_response("Hello")
    assert blocks[0]["text"]["text"] == "Hello"
    assert blocks[1]["type"] == "context"


def test_weekly_plan_layout():
    blocks = format_weekly_plan(_plan(), "https://app.example.com/")
    texts = _texts(blocks)

    assert "*Week of 10/26/2026 - 10/30/2026*" in texts
    assert any("• Ship feature X" in t for t in texts)
    monday = next(t for t in texts if "Monday" in t)
    assert "(10/26/2026)" in monday
    assert "9:00 AM: monday 0" in monday
    assert "more tasks" not in monday

    actions = blocks[-1]
    assert actions["type"] == "actions"
    assert actions["elements"][0]["url"] == "https://app.example.com/bella"


def test_weekly_plan_truncates_long_days():
    texts = _texts(format_weekly_plan(_plan(tasks_per_day=5), "http://x"))
    friday = next(t for t in texts if "Friday" in t)

    assert friday.count(" AM: ") == 3
    assert "_+2 more tasks_" in friday


def test_weekly_plan_without_targets():
    plan = _plan()
    plan["weeklyTargets"] = []
    texts = _texts(format_weekly_plan(plan, "http://x"))
    assert not any("Weekly Targets" in t for t in texts)


def test_error_message():
    assert len(format_error_message()) == 2


def test_daily_response_lists_tools():
    blocks = format_daily_response("Done", ["get_today_plan", "reschedule_task"])
    texts = _texts(blocks)
    assert texts[0] == "Done"
    assert ":wrench: _Used: get_today_plan, reschedule_task_" in texts
    assert len(format_daily_response("Done")) == 2
