"""
Conversation Session Model for Bella Planner.

One row per weekly planning conversation. The row is only ever mutated by
the planning controller through `bella.services.session_store`, one
transaction per logical update.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String

from bella.models.base import Base, generate_id, utcnow


class SessionStatus(StrEnum):
    """Lifecycle states of a planning conversation."""

    ACTIVE = "active"
    AWAITING_USER = "awaiting_user"
    PLANNING = "planning"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ERROR)


LIVE_STATUSES: tuple[SessionStatus, ...] = (
    SessionStatus.ACTIVE,
    SessionStatus.AWAITING_USER,
    SessionStatus.PLANNING,
)


class ConversationSession(Base):
    """
    A weekly planning conversation.

    Attributes:
        session_id: Opaque primary key (`session_<ms>_<random>`)
        user_id: Owning user
        messages: Ordered list of {id, timestamp, role, content} dicts
        status: SessionStatus value
        iteration: Number of assistant turns so far
        continuation_flag: Whether the model still wants more information
        extracted_targets: Weekly targets once a plan is saved
        weekly_plan_id: Produced plan, set only when completed
        planning_attempts: Failed final-planning calls
        slack_channel_id: DM channel when the conversation runs over Slack
        slack_thread_ts: Timestamp of the opening Slack message
    """

    __tablename__ = "chat_sessions"

    session_id = Column(String(80), primary_key=True, default=lambda: generate_id("session"))
    user_id = Column(String(64), nullable=False, index=True)

    messages = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default=SessionStatus.ACTIVE.value)
    iteration = Column(Integer, nullable=False, default=0)
    continuation_flag = Column(Boolean, nullable=False, default=True)
    extracted_targets = Column(JSON, nullable=False, default=list)
    weekly_plan_id = Column(String(80), nullable=True)
    planning_attempts = Column(Integer, nullable=False, default=0)

    slack_channel_id = Column(String(32), nullable=True, index=True)
    slack_thread_ts = Column(String(32), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_chat_session_user_status", "user_id", "status"),
        Index("idx_chat_session_channel_created", "slack_channel_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ConversationSession(session_id={self.session_id}, status={self.status}, "
            f"iteration={self.iteration})>"
        )

    @property
    def session_status(self) -> SessionStatus:
        return SessionStatus(self.status)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "messages": list(self.messages or []),
            "status": self.status,
            "iteration": self.iteration,
            "continuationFlag": self.continuation_flag,
            "extractedTargets": list(self.extracted_targets or []),
            "weeklyPlanId": self.weekly_plan_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


__all__ = ["ConversationSession", "SessionStatus", "LIVE_STATUSES"]
