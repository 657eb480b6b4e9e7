"""
Tools available to Dave, the daily assistant.

Each tool reads or edits the user's active weekly plan and returns a JSON
string for the model. Failures are reported back to the model as
`{"success": false, "error": ...}` rather than raised.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from bella.lib.exceptions import BellaException
from bella.models.weekly_plan import WEEKDAYS
from bella.services.plan_store import PlanStore

logger = logging.getLogger(__name__)

_TASK_PROPERTIES = {
    "time": {"type": "string", "description": "Time in HH:MM AM/PM format"},
    "task": {"type": "string", "description": "Task description"},
    "duration": {"type": "number", "description": "Duration in minutes"},
    "type": {"type": "string", "enum": ["routine", "work", "break", "personal", "travel"]},
}

DAILY_TOOLS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "get_today_plan",
            "description": "Retrieve today's schedule from the active weekly plan",
            "parameters": {
                "type": "object",
                "properties": {
                    "weekday": {
                        "type": "string",
                        "enum": list(WEEKDAYS),
                        "description": "Current weekday to get plan for",
                    }
                },
                "required": ["weekday"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "update_weekly_plan",
            "description": "Update specific day's tasks in the weekly plan",
            "parameters": {
                "type": "object",
                "properties": {
                    "weekday": {"type": "string", "enum": list(WEEKDAYS)},
                    "updatedTasks": {
                        "type": "array",
                        "items": {"type": "object", "properties": _TASK_PROPERTIES, "required": ["time", "task"]},
                    },
                },
                "required": ["weekday", "updatedTasks"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "reschedule_task",
            "description": "Find new time slot for incomplete task in remaining week",
            "parameters": {
                "type": "object",
                "properties": {
                    "originalTask": {"type": "object", "properties": _TASK_PROPERTIES, "required": ["time", "task"]},
                    "originalDay": {"type": "string", "enum": list(WEEKDAYS)},
                    "reason": {"type": "string", "description": "Reason for rescheduling"},
                    "preferredDays": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Preferred days for rescheduling (defaults to remaining week)",
                    },
                },
                "required": ["originalTask", "originalDay", "reason"],
            },
        },
    },
]


def current_weekday(today: date | None = None) -> str:
    """Today's weekday name; weekends map to monday."""
    index = (today or date.today()).weekday()
    return WEEKDAYS[index] if index < len(WEEKDAYS) else "monday"


class DailyTools:
    """Tool implementations bound to one user's active plan."""

    def __init__(self, plans: PlanStore, user_id: str):
        self._plans = plans
        self._user_id = user_id
        self._handlers: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
            "get_today_plan": self.get_today_plan,
            "update_weekly_plan": self.update_weekly_plan,
            "reschedule_task": self.reschedule_task,
        }

    @property
    def names(self) -> list[str]:
        return list(self._handlers)

    def execute(self, name: str, arguments: str | dict[str, Any] | None) -> str:
        """Run a tool by name and return its JSON result."""
        handler = self._handlers.get(name)
        if handler is None:
            return json.dumps({"success": False, "error": f"Unknown tool: {name}"})
        try:
            args = json.loads(arguments) if isinstance(arguments, str) else (arguments or {})
            return json.dumps(handler(args))
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            logger.warning("Bad arguments for tool %s: %s", name, exc)
            return json.dumps({"success": False, "error": f"Invalid arguments: {exc}"})
        except BellaException as exc:
            logger.info("Tool %s failed: %s", name, exc)
            return json.dumps({"success": False, "error": str(exc)})

    def get_today_plan(self, args: dict[str, Any]) -> dict[str, Any]:
        weekday = str(args["weekday"]).lower()
        plan = self._plans.require_active_plan(self._user_id)
        day_plan = (plan.days or {}).get(weekday)
        if not day_plan:
            return {"success": False, "message": f"No plan found for {weekday}", "tasks": []}
        tasks = day_plan.get("tasks", [])
        return {
            "success": True,
            "weekday": weekday,
            "date": day_plan.get("date"),
            "tasks": tasks,
            "tasksCount": len(tasks),
        }

    def update_weekly_plan(self, args: dict[str, Any]) -> dict[str, Any]:
        weekday = str(args["weekday"]).lower()
        tasks = args["updatedTasks"]
        self._plans.update_day_tasks(self._user_id, weekday, tasks)
        return {
            "success": True,
            "weekday": weekday,
            "tasksCount": len(tasks),
            "message": f"Successfully updated {weekday}'s schedule with {len(tasks)} tasks",
        }

    def reschedule_task(self, args: dict[str, Any]) -> dict[str, Any]:
        day, new_time = self._plans.reschedule_task(
            self._user_id,
            args["originalTask"],
            args["originalDay"],
            args.get("preferredDays"),
        )
        return {
            "success": True,
            "rescheduledTo": day,
            "reason": args.get("reason", ""),
            "newTimeSlot": new_time,
        }


__all__ = ["DAILY_TOOLS", "DailyTools", "current_weekday"]
