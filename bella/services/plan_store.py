"""
Plan Persister for Bella Planner.

Saving a plan archives every active plan of the user and inserts the new
one in the same transaction, so a user never has two active plans. The
daily assistant edits per-day task lists through this module as well.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update
from sqlalchemy.orm import Session as DbSession

from bella.lib.exceptions import NotFoundError, ValidationError
from bella.models.base import utcnow
from bella.models.weekly_plan import WEEKDAYS, PlanStatus, WeeklyPlan
from bella.modules.planning_state import SaveWeeklyPlan, TaskItem

logger = logging.getLogger(__name__)

WORKING_HOURS: tuple[str, ...] = (
    "9:00 AM",
    "10:00 AM",
    "11:00 AM",
    "1:00 PM",
    "2:00 PM",
    "3:00 PM",
    "4:00 PM",
    "5:00 PM",
)
FALLBACK_TIME = "6:00 PM"
DEFAULT_RESCHEDULE_DAYS: tuple[str, ...] = ("tuesday", "wednesday", "thursday", "friday")


def get_week_dates(today: date | None = None) -> tuple[date, date]:
    """
    Monday and Friday of the week being planned.

    The next Monday strictly after today: tomorrow on a Sunday, a full
    week ahead on a Monday.
    """
    today = today or date.today()
    days_until_monday = 1 if today.weekday() == 6 else 7 - today.weekday()
    monday = today + timedelta(days=days_until_monday)
    return monday, monday + timedelta(days=4)


def find_available_slot(days: dict[str, Any], candidate_days: list[str] | tuple[str, ...]) -> tuple[str, str]:
    """First free working-hour slot across candidate days, else 6 PM on the first one."""
    for day in candidate_days:
        day_plan = days.get(day)
        if day_plan is None:
            continue
        taken = {task.get("time") for task in day_plan.get("tasks", [])}
        for slot in WORKING_HOURS:
            if slot not in taken:
                return day, slot
    return candidate_days[0], FALLBACK_TIME


def _validate_weekday(weekday: str) -> str:
    day = weekday.lower()
    if day not in WEEKDAYS:
        raise ValidationError(f"Invalid weekday: {weekday}")
    return day


def _validate_tasks(tasks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    try:
        return [TaskItem.model_validate(t).model_dump(mode="json", exclude_none=True) for t in tasks]
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid task list: {exc.error_count()} errors") from exc


class PlanStore:
    """Persistence for weekly plans."""

    def __init__(self, db: DbSession):
        self._db = db

    def save_weekly_plan(
        self,
        user_id: str,
        session_id: str,
        plan: SaveWeeklyPlan,
        today: date | None = None,
        commit: bool = True,
    ) -> WeeklyPlan:
        """
        Archive the user's active plans and insert `plan` as the active one.

        With `commit=False` the caller owns the transaction (the planning
        controller completes the session in the same commit).
        """
        week_start, week_end = get_week_dates(today)

        archived = self._db.execute(
            update(WeeklyPlan)
            .where(WeeklyPlan.user_id == user_id, WeeklyPlan.status == PlanStatus.ACTIVE.value)
            .values(status=PlanStatus.ARCHIVED.value, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        record = WeeklyPlan(
            user_id=user_id,
            session_id=session_id,
            week_start=week_start,
            week_end=week_end,
            weekly_targets=list(plan.weekly_targets),
            days=plan.days_document(),
            status=PlanStatus.ACTIVE.value,
        )
        self._db.add(record)
        self._db.flush()

        if commit:
            self._db.commit()
        logger.info(
            "Saved weekly plan %s for user %s (archived %s previous)",
            record.id,
            user_id,
            archived.rowcount,
        )
        return record

    def get_plan(self, plan_id: str) -> WeeklyPlan:
        plan = self._db.get(WeeklyPlan, plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        return plan

    def get_active_plan(self, user_id: str) -> WeeklyPlan | None:
        stmt = (
            select(WeeklyPlan)
            .where(WeeklyPlan.user_id == user_id, WeeklyPlan.status == PlanStatus.ACTIVE.value)
            .order_by(WeeklyPlan.created_at.desc())
            .limit(1)
        )
        return self._db.scalars(stmt).first()

    def require_active_plan(self, user_id: str) -> WeeklyPlan:
        plan = self.get_active_plan(user_id)
        if plan is None:
            raise NotFoundError("No active weekly plan found")
        return plan

    def list_plans(self, user_id: str, limit: int = 10) -> list[WeeklyPlan]:
        """Most recent plans first, any status."""
        stmt = (
            select(WeeklyPlan)
            .where(WeeklyPlan.user_id == user_id)
            .order_by(WeeklyPlan.created_at.desc())
            .limit(limit)
        )
        return list(self._db.scalars(stmt))

    def update_day_tasks(self, user_id: str, weekday: str, tasks: list[dict[str, Any]]) -> WeeklyPlan:
        """Replace one day's task list on the active plan."""
        day = _validate_weekday(weekday)
        cleaned = _validate_tasks(tasks)
        plan = self.require_active_plan(user_id)

        days = dict(plan.days or {})
        day_plan = dict(days.get(day) or {"date": "", "tasks": []})
        day_plan["tasks"] = cleaned
        days[day] = day_plan
        plan.days = days
        self._db.commit()
        return plan

    def reschedule_task(
        self,
        user_id: str,
        original_task: dict[str, Any],
        original_day: str,
        preferred_days: list[str] | None = None,
    ) -> tuple[str, str]:
        """
        Move a task to the first free slot of the remaining week.

        Returns:
            (target weekday, new time)
        """
        source_day = _validate_weekday(original_day)
        candidates = [_validate_weekday(d) for d in preferred_days] if preferred_days else list(DEFAULT_RESCHEDULE_DAYS)
        task = _validate_tasks([original_task])[0]
        plan = self.require_active_plan(user_id)

        days = {name: dict(value) for name, value in (plan.days or {}).items()}
        target_day, new_time = find_available_slot(days, candidates)

        source = days.get(source_day) or {"date": "", "tasks": []}
        source["tasks"] = [
            t for t in source.get("tasks", [])
            if t.get("time") != task["time"] or t.get("task") != task["task"]
        ]
        days[source_day] = source

        target = days.get(target_day) or {"date": "", "tasks": []}
        target["tasks"] = [*target.get("tasks", []), {**task, "time": new_time}]
        days[target_day] = target

        plan.days = days
        self._db.commit()
        logger.info("Rescheduled %r from %s to %s %s", task["task"], source_day, target_day, new_time)
        return target_day, new_time


__all__ = [
    "PlanStore",
    "get_week_dates",
    "find_available_slot",
    "WORKING_HOURS",
    "FALLBACK_TIME",
    "DEFAULT_RESCHEDULE_DAYS",
]
