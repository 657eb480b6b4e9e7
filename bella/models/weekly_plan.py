"""
WeeklyPlan Model for Bella Planner.

A plan is written once per successful planning session and only its
`status` changes afterwards (when a newer plan supersedes it). The per-day
task lists can be edited by the daily assistant.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Column, Date, DateTime, Index, String

from bella.models.base import Base, generate_id, utcnow

WEEKDAYS: tuple[str, ...] = ("monday", "tuesday", "wednesday", "thursday", "friday")


class PlanStatus(StrEnum):
    """Plan lifecycle. At most one ACTIVE plan per user."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class WeeklyPlan(Base):
    """
    A Monday-Friday plan produced by a planning conversation.

    Attributes:
        id: Generated plan id (`plan_<ms>_<random>`)
        user_id: Owning user
        week_start: Monday of the planned week
        week_end: Friday of the planned week
        session_id: Conversation that produced the plan
        weekly_targets: Free-text goals for the week
        days: {weekday: {"date": iso-date, "tasks": [task dicts]}}
        status: PlanStatus value
    """

    __tablename__ = "weekly_plans"

    id = Column(String(80), primary_key=True, default=lambda: generate_id("plan"))
    user_id = Column(String(64), nullable=False, index=True)
    week_start = Column(Date, nullable=False)
    week_end = Column(Date, nullable=False)
    session_id = Column(String(80), nullable=False, index=True)
    weekly_targets = Column(JSON, nullable=False, default=list)
    days = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=PlanStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_weekly_plan_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<WeeklyPlan(id={self.id}, user_id={self.user_id}, status={self.status})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "weekStart": self.week_start.isoformat(),
            "weekEnd": self.week_end.isoformat(),
            "sessionId": self.session_id,
            "weeklyTargets": list(self.weekly_targets or []),
            "days": dict(self.days or {}),
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def to_summary(self) -> dict[str, Any]:
        """History listing shape (no per-day detail)."""
        return {
            "id": self.id,
            "weekStart": self.week_start.isoformat(),
            "weekEnd": self.week_end.isoformat(),
            "weeklyTargets": list(self.weekly_targets or []),
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


__all__ = ["WeeklyPlan", "PlanStatus", "WEEKDAYS"]
