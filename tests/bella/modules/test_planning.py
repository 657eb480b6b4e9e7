"""
Tests for the PlanningController (conversation lifecycle driver).

Covers:
- Happy path: continue -> planning -> saved plan
- Upstream failure leaves the session untouched apart from the user message
- Iteration ceiling forces completion
- Malformed function calls fall back to plain text
- Bounded planning retries
- Closed sessions reject messages
- weeklyPlanId / active-plan invariants
"""

from datetime import datetime

import pytest
from sqlalchemy import select

from bella.lib.exceptions import NotFoundError, SessionClosedError, ValidationError
from bella.lib.prompts import INITIAL_MESSAGE, MAX_ITERATIONS_MESSAGE
from bella.models.session import ConversationSession, SessionStatus
from bella.models.weekly_plan import PlanStatus, WeeklyPlan
from bella.modules.planning import PlanningController
from bella.modules.planning_state import BellaResponse
from bella.services.llm_client import ERROR_MESSAGE

FIXED_NOW = datetime(2026, 10, 25, 19, 30)  # a Sunday evening


@pytest.fixture
def make_controller(db_session, settings):
    def _make(llm):
        return PlanningController(db_session, llm, settings, clock=lambda: FIXED_NOW)

    return _make


def _plans(db_session, user_id="user-1"):
    return list(db_session.scalars(select(WeeklyPlan).where(WeeklyPlan.user_id == user_id)))


# =============================================================================
# Session creation
# =============================================================================


def test_start_session_seeds_opening_message(make_controller, fake_llm):
    session = make_controller(fake_llm).start_session("user-1")

    assert session.status == SessionStatus.ACTIVE
    assert session.iteration == 0
    assert session.continuation_flag is True
    assert len(session.messages) == 1
    assert session.messages[0]["role"] == "assistant"
    assert session.messages[0]["content"] == INITIAL_MESSAGE.template


# =============================================================================
# Scenario A: happy path
# =============================================================================


@pytest.mark.asyncio
async def test_full_conversation_saves_plan(make_controller, llm_factory, build_flag, build_plan, db_session):
    llm = llm_factory(
        [
            BellaResponse("What deadlines do you have?", build_flag(True)),
            BellaResponse("Great, I have what I need.", build_flag(False)),
            BellaResponse("Here is your plan", build_plan()),
        ]
    )
    controller = make_controller(llm)
    session = controller.start_session("user-1")

    first = await controller.handle_user_message(session.session_id, "Busy week ahead")
    assert first.success
    assert first.status == SessionStatus.AWAITING_USER
    assert first.assistant_message == "What deadlines do you have?"

    second = await controller.handle_user_message(session.session_id, "Report due Wednesday")
    assert second.status == SessionStatus.COMPLETED
    assert second.plan is not None
    assert second.function_call == "save_weekly_plan"

    stored = controller.sessions.get(session.session_id)
    assert stored.weekly_plan_id == second.plan.id
    assert stored.extracted_targets == ["Ship feature X", "Gym 3x"]
    assert stored.continuation_flag is False
    assert stored.completed_at is not None
    # opening + 2 user + 2 assistant replies + completion message
    assert [m["role"] for m in stored.messages] == [
        "assistant", "user", "assistant", "user", "assistant", "assistant",
    ]
    assert "weekly plan" in stored.messages[-1]["content"]

    plans = _plans(db_session)
    assert len(plans) == 1
    assert plans[0].status == PlanStatus.ACTIVE
    assert plans[0].session_id == session.session_id


@pytest.mark.asyncio
async def test_planning_call_uses_final_planning_prompt(make_controller, llm_factory, build_flag, build_plan):
    llm = llm_factory([BellaResponse("Ok", build_flag(False)), BellaResponse("", build_plan())])
    controller = make_controller(llm)
    session = controller.start_session("user-1")

    await controller.handle_user_message(session.session_id, "That's everything")

    assert len(llm.calls) == 2
    assert "save_weekly_plan" in llm.calls[1][0]
    assert "Previous conversation:" in llm.calls[1][0]


@pytest.mark.asyncio
async def test_plan_in_normal_turn_completes_without_planning_call(make_controller, llm_factory, build_plan):
    llm = llm_factory([BellaResponse("Done!", build_plan())])
    controller = make_controller(llm)
    session = controller.start_session("user-1")

    result = await controller.handle_user_message(session.session_id, "Plan it")

    assert result.status == SessionStatus.COMPLETED
    assert len(llm.calls) == 1
    assert controller.sessions.get(session.session_id).weekly_plan_id == result.plan.id


@pytest.mark.asyncio
async def test_profile_is_rendered_into_model_call(make_controller, llm_factory):
    llm = llm_factory([BellaResponse("Hi")])
    controller = make_controller(llm)
    session = controller.start_session("user-1")

    await controller.handle_user_message(session.session_id, "hello")

    history, profile = llm.calls[0]
    assert profile.startswith("Today is Sunday, October 25, 2026. The current time is 19:30.")
    assert "Human: hello" in history
    assert "Bella: " + INITIAL_MESSAGE.template in history


# =============================================================================
# Scenario B: upstream failure
# =============================================================================


@pytest.mark.asyncio
async def test_upstream_failure_keeps_user_message_only(make_controller, llm_factory):
    llm = llm_factory([BellaResponse(ERROR_MESSAGE, error="timeout")])
    controller = make_controller(llm)
    session = controller.start_session("user-1")

    result = await controller.handle_user_message(session.session_id, "hello")

    assert result.success is False
    assert result.assistant_message == ERROR_MESSAGE
    stored = controller.sessions.get(session.session_id)
    assert stored.messages[-1]["role"] == "user"
    assert stored.iteration == 0
    assert stored.status == SessionStatus.ACTIVE


# =============================================================================
# Scenario C: iteration ceiling
# =============================================================================


@pytest.mark.asyncio
async def test_iteration_ceiling_forces_completion(make_controller, llm_factory, db_session):
    llm = llm_factory([])
    controller = make_controller(llm)
    session = controller.start_session("user-1")
    session.iteration = 21
    db_session.commit()

    result = await controller.handle_user_message(session.session_id, "still here")

    assert llm.calls == []
    assert result.status == SessionStatus.COMPLETED
    assert result.assistant_message == MAX_ITERATIONS_MESSAGE.template
    stored = controller.sessions.get(session.session_id)
    assert stored.continuation_flag is False
    assert stored.weekly_plan_id is None
    assert stored.iteration == 21


@pytest.mark.asyncio
async def test_iteration_never_decreases(make_controller, llm_factory):
    llm = llm_factory([BellaResponse("a"), BellaResponse("b", error="x"), BellaResponse("c")])
    controller = make_controller(llm)
    session = controller.start_session("user-1")

    seen = []
    for text in ("one", "two", "three"):
        await controller.handle_user_message(session.session_id, text)
        seen.append(controller.sessions.get(session.session_id).iteration)

    assert seen == [1, 1, 2]


# =============================================================================
# Scenario D: malformed function call
# =============================================================================


@pytest.mark.asyncio
async def test_reply_without_decodable_call_is_plain_text(make_controller, llm_factory):
    # the client drops undecodable calls, so the controller sees text only
    llm = llm_factory([BellaResponse("Let me think about that")])
    controller = make_controller(llm)
    session = controller.start_session("user-1")

    result = await controller.handle_user_message(session.session_id, "hi")

    assert result.status == SessionStatus.ACTIVE
    assert result.function_call is None
    stored = controller.sessions.get(session.session_id)
    assert stored.messages[-1]["role"] == "assistant"
    assert stored.messages[-1]["content"] == "Let me think about that"
    assert stored.iteration == 1


# =============================================================================
# Planning retries
# =============================================================================


@pytest.mark.asyncio
async def test_failed_planning_call_stays_in_planning(make_controller, llm_factory, build_flag):
    llm = llm_factory([BellaResponse("Ok", build_flag(False)), BellaResponse("I forgot the plan")])
    controller = make_controller(llm)
    session = controller.start_session("user-1")

    result = await controller.handle_user_message(session.session_id, "that's all")

    assert result.status == SessionStatus.PLANNING
    stored = controller.sessions.get(session.session_id)
    assert stored.planning_attempts == 1
    assert stored.weekly_plan_id is None


@pytest.mark.asyncio
async def test_planning_call_upstream_failure_is_reported(make_controller, llm_factory, build_flag):
    llm = llm_factory(
        [
            BellaResponse("Great, I have enough.", build_flag(False)),
            BellaResponse(ERROR_MESSAGE, error="network down"),
        ]
    )
    controller = make_controller(llm)
    session = controller.start_session("user-1")

    result = await controller.handle_user_message(session.session_id, "that's all")

    assert result.success is False
    assert result.error == "network down"
    assert result.assistant_message == ERROR_MESSAGE
    assert result.status == SessionStatus.PLANNING
    stored = controller.sessions.get(session.session_id)
    assert stored.planning_attempts == 1
    assert stored.messages[-1]["content"] == "Great, I have enough."


@pytest.mark.asyncio
async def test_repeated_planning_failures_move_to_error(make_controller, llm_factory, build_flag):
    responses = []
    for _ in range(3):
        responses += [BellaResponse("Ok", build_flag(False)), BellaResponse("no plan")]
    controller = make_controller(llm_factory(responses))
    session = controller.start_session("user-1")

    statuses = []
    for _ in range(3):
        result = await controller.handle_user_message(session.session_id, "go")
        statuses.append(result.status)

    assert statuses == [SessionStatus.PLANNING, SessionStatus.PLANNING, SessionStatus.ERROR]
    with pytest.raises(SessionClosedError):
        await controller.handle_user_message(session.session_id, "hello?")


# =============================================================================
# Guards
# =============================================================================


@pytest.mark.asyncio
async def test_completed_session_rejects_messages(make_controller, llm_factory, build_plan):
    llm = llm_factory([BellaResponse("Done", build_plan())])
    controller = make_controller(llm)
    session = controller.start_session("user-1")
    await controller.handle_user_message(session.session_id, "plan")
    before = list(controller.sessions.get(session.session_id).messages)

    with pytest.raises(SessionClosedError):
        await controller.handle_user_message(session.session_id, "wait")

    assert controller.sessions.get(session.session_id).messages == before


@pytest.mark.asyncio
async def test_unknown_session(make_controller, fake_llm):
    with pytest.raises(NotFoundError):
        await make_controller(fake_llm).handle_user_message("session_missing", "hi")


@pytest.mark.asyncio
async def test_empty_message_rejected(make_controller, fake_llm):
    controller = make_controller(fake_llm)
    session = controller.start_session("user-1")
    with pytest.raises(ValidationError):
        await controller.handle_user_message(session.session_id, "   ")


@pytest.mark.asyncio
async def test_second_plan_archives_first(make_controller, llm_factory, build_plan, db_session):
    llm = llm_factory([BellaResponse("One", build_plan(["A"])), BellaResponse("Two", build_plan(["B"]))])
    controller = make_controller(llm)

    for _ in range(2):
        session = controller.start_session("user-1")
        await controller.handle_user_message(session.session_id, "plan")

    plans = _plans(db_session)
    assert len(plans) == 2
    active = [p for p in plans if p.status == PlanStatus.ACTIVE]
    assert len(active) == 1
    assert active[0].weekly_targets == ["B"]

    linked = db_session.scalars(
        select(ConversationSession).where(ConversationSession.weekly_plan_id.is_not(None))
    ).all()
    assert all(s.status == SessionStatus.COMPLETED for s in linked)
