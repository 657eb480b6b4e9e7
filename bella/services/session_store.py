"""
Session Store for Bella Planner.

Reads and writes `ConversationSession` rows. Each public write is one
transaction on one row; the planning controller batches the field changes
of a turn step into a single `apply` call.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from bella.lib.exceptions import NotFoundError
from bella.models.base import utcnow
from bella.models.session import LIVE_STATUSES, ConversationSession, SessionStatus

logger = logging.getLogger(__name__)


def new_message(role: str, content: str) -> dict[str, Any]:
    """Build a stored message dict."""
    return {
        "id": uuid.uuid4().hex,
        "timestamp": utcnow().isoformat(),
        "role": role,
        "content": content,
    }


@dataclass
class SessionChanges:
    """Field changes accumulated for one write."""

    messages: list[dict[str, Any]] = field(default_factory=list)
    iteration_delta: int = 0
    planning_attempts_delta: int = 0
    status: SessionStatus | None = None
    continuation_flag: bool | None = None
    weekly_plan_id: str | None = None
    extracted_targets: list[str] | None = None

    def is_empty(self) -> bool:
        return (
            not self.messages
            and self.iteration_delta == 0
            and self.planning_attempts_delta == 0
            and self.status is None
            and self.continuation_flag is None
            and self.weekly_plan_id is None
            and self.extracted_targets is None
        )


class SessionStore:
    """Persistence for planning conversations."""

    def __init__(self, db: DbSession):
        self._db = db

    @property
    def db(self) -> DbSession:
        return self._db

    def create(
        self,
        user_id: str,
        *,
        session_id: str | None = None,
        opening_message: str | None = None,
        slack_channel_id: str | None = None,
        slack_thread_ts: str | None = None,
    ) -> ConversationSession:
        """Insert a new active session, optionally seeded with Bella's opening message."""
        session = ConversationSession(
            user_id=user_id,
            messages=[new_message("assistant", opening_message)] if opening_message else [],
            status=SessionStatus.ACTIVE.value,
            iteration=0,
            continuation_flag=True,
            extracted_targets=[],
            planning_attempts=0,
            slack_channel_id=slack_channel_id,
            slack_thread_ts=slack_thread_ts,
        )
        if session_id:
            session.session_id = session_id
        self._db.add(session)
        self._db.commit()
        logger.info("Created planning session %s for user %s", session.session_id, user_id)
        return session

    def get(self, session_id: str) -> ConversationSession:
        """
        Load a session.

        Raises:
            NotFoundError: no session with this id
        """
        session = self._db.get(ConversationSession, session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    def find_live(self, user_id: str) -> ConversationSession | None:
        """Most recent non-terminal session for a user."""
        stmt = (
            select(ConversationSession)
            .where(
                ConversationSession.user_id == user_id,
                ConversationSession.status.in_([s.value for s in LIVE_STATUSES]),
            )
            .order_by(ConversationSession.created_at.desc())
            .limit(1)
        )
        return self._db.scalars(stmt).first()

    def find_for_channel(self, channel_id: str) -> ConversationSession | None:
        """
        Live session bound to a Slack channel.

        Completed and errored sessions are never reopened; the caller starts
        a fresh session when this returns None.
        """
        return self._db.scalars(
            select(ConversationSession)
            .where(
                ConversationSession.slack_channel_id == channel_id,
                ConversationSession.status.in_([s.value for s in LIVE_STATUSES]),
            )
            .order_by(ConversationSession.created_at.desc())
            .limit(1)
        ).first()

    def bind_channel(self, session_id: str, channel_id: str, thread_ts: str | None = None) -> None:
        session = self.get(session_id)
        session.slack_channel_id = channel_id
        session.slack_thread_ts = thread_ts
        self._db.commit()

    def stage(self, session_id: str, changes: SessionChanges) -> ConversationSession:
        """Apply changes to the row without committing."""
        session = self.get(session_id)
        if changes.messages:
            # reassign so the JSON column is flagged dirty
            session.messages = [*(session.messages or []), *changes.messages]
        if changes.iteration_delta:
            session.iteration = (session.iteration or 0) + changes.iteration_delta
        if changes.planning_attempts_delta:
            session.planning_attempts = (session.planning_attempts or 0) + changes.planning_attempts_delta
        if changes.continuation_flag is not None:
            session.continuation_flag = changes.continuation_flag
        if changes.extracted_targets is not None:
            session.extracted_targets = list(changes.extracted_targets)
        if changes.weekly_plan_id is not None:
            session.weekly_plan_id = changes.weekly_plan_id
        if changes.status is not None:
            session.status = changes.status.value
            if changes.status.is_terminal:
                session.completed_at = utcnow()
        return session

    def apply(self, session_id: str, changes: SessionChanges) -> ConversationSession:
        """Apply changes to one session in a single transaction."""
        try:
            session = self.stage(session_id, changes)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        return session

    def append_message(self, session_id: str, role: str, content: str) -> dict[str, Any]:
        message = new_message(role, content)
        self.apply(session_id, SessionChanges(messages=[message]))
        return message


__all__ = ["SessionStore", "SessionChanges", "new_message"]
