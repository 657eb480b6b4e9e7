"""
Weekly Planning Controller for Bella Planner.

Drives one inbound user message through the conversation state machine:

1. Guard terminal sessions and the iteration ceiling
2. Append the user message
3. Ask the model for the next turn (history + rendered profile)
4. Act on at most one function call:
   - set_continuation_flag(true)  -> awaiting_user
   - set_continuation_flag(false) -> planning, then one planning-focused call
   - save_weekly_plan             -> persist the plan and complete

The decisions live in `planning_state.transition`; this module performs the
effects. All field changes of a step are written in one commit, and plan
persistence shares that commit with the session update.

Reference: planning_state.py
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session as DbSession

from bella.config.settings import Settings, get_settings
from bella.lib.exceptions import InvariantViolation, SessionClosedError, ValidationError
from bella.lib.logging import bind_session_context
from bella.lib.prompts import FINAL_PLANNING_PROMPT, INITIAL_MESSAGE, fill_prompt_template
from bella.models.session import ConversationSession, SessionStatus
from bella.models.weekly_plan import WeeklyPlan
from bella.modules.planning_state import (
    AppendMessage,
    CallModel,
    Event,
    IncrementIteration,
    Limits,
    ModelReply,
    PersistPlan,
    PlanningReply,
    RecordPlanningFailure,
    ReportUpstreamFailure,
    RequestFinalPlan,
    SaveWeeklyPlan,
    SessionSnapshot,
    SetStatus,
    UserMessage,
    transition,
)
from bella.services.llm_client import ResponseGenerator, format_chat_history
from bella.services.plan_store import PlanStore
from bella.services.profile_formatter import format_user_profile
from bella.services.session_store import SessionChanges, SessionStore, new_message

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """Outcome of one inbound message."""

    session_id: str
    success: bool = True
    status: SessionStatus = SessionStatus.ACTIVE
    assistant_messages: list[str] = field(default_factory=list)
    function_call: str | None = None
    plan: WeeklyPlan | None = None
    error: str | None = None

    @property
    def assistant_message(self) -> str:
        """Last assistant text of the turn (or the canned failure text)."""
        return self.assistant_messages[-1] if self.assistant_messages else ""


def snapshot_of(session: ConversationSession) -> SessionSnapshot:
    return SessionSnapshot(
        status=session.session_status,
        iteration=session.iteration or 0,
        planning_attempts=session.planning_attempts or 0,
    )


class PlanningController:
    """
    Conversation lifecycle controller.

    One instance per request; it shares the request's database session.
    """

    def __init__(
        self,
        db: DbSession,
        generator: ResponseGenerator,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        settings = settings or get_settings()
        self._db = db
        self._generator = generator
        self._sessions = SessionStore(db)
        self._plans = PlanStore(db)
        self._limits = Limits(
            max_iterations=settings.max_iterations,
            max_planning_attempts=settings.max_planning_attempts,
        )
        self._clock = clock

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    def start_session(
        self,
        user_id: str,
        *,
        session_id: str | None = None,
        slack_channel_id: str | None = None,
        slack_thread_ts: str | None = None,
    ) -> ConversationSession:
        """Create a session seeded with Bella's opening message."""
        return self._sessions.create(
            user_id,
            session_id=session_id,
            opening_message=INITIAL_MESSAGE.template,
            slack_channel_id=slack_channel_id,
            slack_thread_ts=slack_thread_ts,
        )

    async def handle_user_message(self, session_id: str, text: str) -> TurnResult:
        """
        Process one user message to completion of the turn.

        Raises:
            ValidationError: empty message
            NotFoundError: unknown session
            SessionClosedError: session is completed or errored
        """
        if not text or not text.strip():
            raise ValidationError("userMessage must not be empty")

        session = self._sessions.get(session_id)
        bind_session_context(session_id, session.user_id)
        result = TurnResult(session_id=session_id, status=session.session_status)

        event: Event | None = UserMessage(text)
        try:
            while event is not None:
                session = self._sessions.get(session_id)
                step = transition(snapshot_of(session), event, self._limits)
                event = await self._perform(session, step.effects, result)
        except SessionClosedError:
            logger.info("Rejected message for closed session %s", session_id)
            raise
        except Exception:
            self._db.rollback()
            logger.exception("Planning turn failed for session %s", session_id)
            raise

        result.status = self._sessions.get(session_id).session_status
        logger.info(
            "Turn finished for session %s: status=%s function_call=%s",
            session_id,
            result.status,
            result.function_call,
        )
        return result

    async def _perform(self, session: ConversationSession, effects: list, result: TurnResult) -> Event | None:
        """Perform one step's effects; return the follow-up event, if any."""
        changes = SessionChanges()
        plan: SaveWeeklyPlan | None = None
        model_call: CallModel | RequestFinalPlan | None = None

        for effect in effects:
            if isinstance(effect, AppendMessage):
                changes.messages.append(new_message(effect.role, effect.content))
                if effect.role == "assistant":
                    result.assistant_messages.append(effect.content)
            elif isinstance(effect, IncrementIteration):
                changes.iteration_delta += 1
            elif isinstance(effect, SetStatus):
                changes.status = effect.status
                if effect.continuation_flag is not None:
                    changes.continuation_flag = effect.continuation_flag
            elif isinstance(effect, PersistPlan):
                plan = effect.plan
            elif isinstance(effect, RecordPlanningFailure):
                changes.planning_attempts_delta += 1
                logger.warning(
                    "Planning call produced no plan for session %s (attempt %s of %s)",
                    session.session_id,
                    (session.planning_attempts or 0) + 1,
                    self._limits.max_planning_attempts,
                    exc_info=InvariantViolation(effect.reason),
                )
            elif isinstance(effect, ReportUpstreamFailure):
                result.success = False
                result.error = effect.error
                result.assistant_messages.append(effect.message)
            elif isinstance(effect, (CallModel, RequestFinalPlan)):
                model_call = effect

        if plan is not None:
            result.plan = self._complete_with_plan(session, plan, changes)
        elif not changes.is_empty():
            self._sessions.apply(session.session_id, changes)

        if model_call is None:
            return None

        history = format_chat_history(list(session.messages or []))
        profile = format_user_profile(self._db, session.user_id, self._clock())

        if isinstance(model_call, RequestFinalPlan):
            prompt = fill_prompt_template(FINAL_PLANNING_PROMPT.template, {"chatHistory": history})
            reply = await self._generator.generate_response(prompt, profile)
            if reply.function_call is not None:
                result.function_call = reply.function_call.name
            return PlanningReply(reply)

        reply = await self._generator.generate_response(history, profile)
        if reply.function_call is not None:
            result.function_call = reply.function_call.name
        return ModelReply(reply)

    def _complete_with_plan(
        self, session: ConversationSession, plan: SaveWeeklyPlan, changes: SessionChanges
    ) -> WeeklyPlan:
        """Archive, insert, and complete the session in one transaction."""
        try:
            record = self._plans.save_weekly_plan(
                session.user_id,
                session.session_id,
                plan,
                today=self._clock().date(),
                commit=False,
            )
            changes.weekly_plan_id = record.id
            changes.extracted_targets = list(plan.weekly_targets)
            changes.status = SessionStatus.COMPLETED
            changes.continuation_flag = False
            self._sessions.stage(session.session_id, changes)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        return record


__all__ = ["PlanningController", "TurnResult", "snapshot_of"]
