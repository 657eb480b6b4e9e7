"""
Weekly Planning State Machine and Data Structures.

Defines the function-call variants the model can return, the events that
drive a conversation, the effects the controller must perform, and the
pure `transition` function mapping (state, event) to (state, effects).

Reference: planning.py (driver that performs the effects)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from bella.lib.exceptions import SessionClosedError
from bella.lib.prompts import (
    DEFAULT_PLAN_SUMMARY,
    MAX_ITERATIONS_MESSAGE,
    PLAN_COMPLETION_MESSAGE,
    fill_prompt_template,
)
from bella.models.session import SessionStatus

# =============================================================================
# Function-call payloads (decoded once at the LLM boundary)
# =============================================================================


class TaskItem(BaseModel):
    """A scheduled task within a day."""

    model_config = ConfigDict(extra="ignore")

    time: str
    task: str
    duration: int | float | None = None
    type: Literal["routine", "work", "break", "personal", "travel"] | None = None


class DayPlan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str
    tasks: list[TaskItem] = Field(default_factory=list)


class WeekDays(BaseModel):
    model_config = ConfigDict(extra="ignore")

    monday: DayPlan
    tuesday: DayPlan
    wednesday: DayPlan
    thursday: DayPlan
    friday: DayPlan


class SetContinuationFlag(BaseModel):
    """`set_continuation_flag`: does the model need more information?"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Literal["set_continuation_flag"] = "set_continuation_flag"
    continue_conversation: bool = Field(alias="continueConversation")
    reason: str = ""
    missing_info: list[str] = Field(default_factory=list, alias="missingInfo")


class SaveWeeklyPlan(BaseModel):
    """`save_weekly_plan`: the finished plan."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Literal["save_weekly_plan"] = "save_weekly_plan"
    weekly_targets: list[str] = Field(alias="weeklyTargets")
    days: WeekDays

    def days_document(self) -> dict[str, dict]:
        """Days as stored on the plan row."""
        return self.days.model_dump(mode="json", exclude_none=True)


FunctionCall = Union[SetContinuationFlag, SaveWeeklyPlan]

FUNCTION_CALL_TYPES: dict[str, type[BaseModel]] = {
    "set_continuation_flag": SetContinuationFlag,
    "save_weekly_plan": SaveWeeklyPlan,
}


@dataclass
class BellaResponse:
    """One model turn: text plus at most one decoded function call."""

    message: str
    function_call: FunctionCall | None = None
    error: str | None = None


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class UserMessage:
    content: str


@dataclass(frozen=True)
class ModelReply:
    """Reply to a normal conversational turn."""

    reply: BellaResponse


@dataclass(frozen=True)
class PlanningReply:
    """Reply to the planning-focused call made after entering PLANNING."""

    reply: BellaResponse


Event = Union[UserMessage, ModelReply, PlanningReply]

# =============================================================================
# Effects
# =============================================================================


@dataclass(frozen=True)
class AppendMessage:
    role: Literal["user", "assistant"]
    content: str


@dataclass(frozen=True)
class IncrementIteration:
    pass


@dataclass(frozen=True)
class SetStatus:
    status: SessionStatus
    continuation_flag: bool | None = None


@dataclass(frozen=True)
class PersistPlan:
    """Archive prior active plans, insert this one, complete the session."""

    plan: SaveWeeklyPlan


@dataclass(frozen=True)
class RecordPlanningFailure:
    reason: str


@dataclass(frozen=True)
class ReportUpstreamFailure:
    """The model call failed; the caller gets the canned message."""

    message: str
    error: str


@dataclass(frozen=True)
class CallModel:
    """Ask the model for the next conversational reply."""


@dataclass(frozen=True)
class RequestFinalPlan:
    """Ask the model for the final plan with the planning prompt."""


Effect = Union[
    AppendMessage,
    IncrementIteration,
    SetStatus,
    PersistPlan,
    RecordPlanningFailure,
    ReportUpstreamFailure,
    CallModel,
    RequestFinalPlan,
]

# =============================================================================
# Transition function
# =============================================================================


@dataclass(frozen=True)
class SessionSnapshot:
    """The parts of a session the state machine reads."""

    status: SessionStatus
    iteration: int
    planning_attempts: int = 0


@dataclass(frozen=True)
class Limits:
    max_iterations: int = 20
    max_planning_attempts: int = 3


@dataclass(frozen=True)
class Transition:
    status: SessionStatus
    effects: list[Effect] = field(default_factory=list)


def completion_message(summary: str = DEFAULT_PLAN_SUMMARY) -> str:
    return fill_prompt_template(PLAN_COMPLETION_MESSAGE.template, {"planSummary": summary})


def transition(snapshot: SessionSnapshot, event: Event, limits: Limits = Limits()) -> Transition:
    """
    Map (state, event) to (next state, effects).

    Model-call effects (CallModel, RequestFinalPlan) are always last so the
    driver can flush writes before waiting on the model.

    Raises:
        SessionClosedError: a message arrived for a completed/errored session
    """
    status = snapshot.status
    if status.is_terminal:
        raise SessionClosedError(f"Session is {status.value}; no further messages are processed")

    if isinstance(event, UserMessage):
        if snapshot.iteration > limits.max_iterations:
            # circuit breaker against runaway conversations
            return Transition(
                SessionStatus.COMPLETED,
                [
                    AppendMessage("user", event.content),
                    AppendMessage("assistant", MAX_ITERATIONS_MESSAGE.template),
                    SetStatus(SessionStatus.COMPLETED, continuation_flag=False),
                ],
            )
        return Transition(
            SessionStatus.ACTIVE,
            [
                AppendMessage("user", event.content),
                SetStatus(SessionStatus.ACTIVE),
                CallModel(),
            ],
        )

    if isinstance(event, ModelReply):
        reply = event.reply
        if reply.error is not None:
            return Transition(status, [ReportUpstreamFailure(reply.message, reply.error)])

        effects: list[Effect] = [AppendMessage("assistant", reply.message), IncrementIteration()]
        call = reply.function_call
        if call is None:
            return Transition(status, effects)
        if isinstance(call, SetContinuationFlag):
            if call.continue_conversation:
                effects.append(SetStatus(SessionStatus.AWAITING_USER, continuation_flag=True))
                return Transition(SessionStatus.AWAITING_USER, effects)
            effects += [SetStatus(SessionStatus.PLANNING, continuation_flag=False), RequestFinalPlan()]
            return Transition(SessionStatus.PLANNING, effects)
        effects.append(PersistPlan(call))
        return Transition(SessionStatus.COMPLETED, effects)

    # PlanningReply
    reply = event.reply
    call = reply.function_call
    if isinstance(call, SaveWeeklyPlan):
        return Transition(
            SessionStatus.COMPLETED,
            [PersistPlan(call), AppendMessage("assistant", completion_message())],
        )

    reason = reply.error or "planning reply did not contain save_weekly_plan"
    effects = [RecordPlanningFailure(reason)]
    if reply.error is not None:
        effects.append(ReportUpstreamFailure(reply.message, reply.error))
    if snapshot.planning_attempts + 1 >= limits.max_planning_attempts:
        effects.append(SetStatus(SessionStatus.ERROR))
        return Transition(SessionStatus.ERROR, effects)
    return Transition(SessionStatus.PLANNING, effects)


__all__ = [
    "TaskItem",
    "DayPlan",
    "WeekDays",
    "SetContinuationFlag",
    "SaveWeeklyPlan",
    "FunctionCall",
    "FUNCTION_CALL_TYPES",
    "BellaResponse",
    "UserMessage",
    "ModelReply",
    "PlanningReply",
    "Event",
    "AppendMessage",
    "IncrementIteration",
    "SetStatus",
    "PersistPlan",
    "RecordPlanningFailure",
    "ReportUpstreamFailure",
    "CallModel",
    "RequestFinalPlan",
    "Effect",
    "SessionSnapshot",
    "Limits",
    "Transition",
    "completion_message",
    "transition",
]
