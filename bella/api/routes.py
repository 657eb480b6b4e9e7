"""
REST API Routes for Bella Planner.

All responses use the `{success, data, error}` envelope except the Slack
webhooks, which answer in the shape Slack expects.

Endpoints (all under /api/v1 prefix):
- /health - Health check
- /planning/chat - Send a message / read a conversation
- /planning/sessions - Current live session / create a session
- /planning/plans - Active plan, plan by id, plan history
- /daily-assistant - Ask Dave
- /slack/events - Bella Slack app webhook
- /dave/events - Dave Slack app webhook
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session as DbSession

from bella.api.dependencies import (
    get_app_settings,
    get_bella_handler,
    get_dave_handler,
    get_db,
    get_llm,
)
from bella.api.schemas import (
    ChatRequest,
    CreateSessionRequest,
    DailyAssistantRequest,
    PlanHistoryRequest,
    error_response,
    success_response,
)
from bella.bot.slack_signature import validate_slack_request
from bella.bot.webhook import SlackEventHandler
from bella.config.settings import Settings
from bella.lib.errors import UNAUTHORIZED, UPSTREAM_ERROR
from bella.lib.exceptions import ValidationError
from bella.models.session import ConversationSession
from bella.modules.daily_assistant import DailyAssistant
from bella.modules.planning import PlanningController
from bella.services.llm_client import LLMClient
from bella.services.plan_store import PlanStore
from bella.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


# =============================================================================
# Health
# =============================================================================


@router.get("/health")
async def health_check() -> dict[str, Any]:
    return success_response({"status": "ok"})


# =============================================================================
# Planning conversation
# =============================================================================


@router.post("/planning/chat", response_model=None)
async def post_chat(
    body: ChatRequest,
    db: DbSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any] | JSONResponse:
    """
    Run one user message through the planning conversation.

    A model failure answers 502 but still carries the canned message so the
    client can show it.
    """
    controller = PlanningController(db, llm, settings)
    result = await controller.handle_user_message(body.session_id, body.user_message)
    data = {
        "sessionId": result.session_id,
        "assistantMessage": result.assistant_message,
        "messages": result.assistant_messages,
        "status": result.status.value,
        "functionCall": result.function_call,
        "weeklyPlanId": result.plan.id if result.plan is not None else None,
    }
    if not result.success:
        return JSONResponse(
            status_code=502,
            content=error_response(UPSTREAM_ERROR, data=data),
        )
    return success_response(data)


@router.get("/planning/chat")
async def get_chat(
    session_id: str = Query(..., alias="sessionId", min_length=1),
    db: DbSession = Depends(get_db),
) -> dict[str, Any]:
    session = SessionStore(db).get(session_id)
    return success_response(session.to_dict())


@router.get("/planning/sessions")
async def get_live_session(
    db: DbSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """Most recent live session for the configured user (null if none)."""
    session = SessionStore(db).find_live(settings.user_id)
    return success_response(session.to_dict() if session is not None else None)


@router.post("/planning/sessions")
async def create_session(
    body: CreateSessionRequest | None = None,
    db: DbSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """Start a session seeded with Bella's opening message."""
    session_id = body.session_id if body is not None else None
    controller = PlanningController(db, llm, settings)
    if session_id and db.get(ConversationSession, session_id) is not None:
        raise ValidationError(f"Session {session_id} already exists")
    session = controller.start_session(settings.user_id, session_id=session_id)
    return success_response(session.to_dict())


# =============================================================================
# Plans
# =============================================================================


@router.get("/planning/plans")
async def get_active_plan(
    db: DbSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    plan = PlanStore(db).get_active_plan(settings.user_id)
    return success_response(plan.to_dict() if plan is not None else None)


@router.get("/planning/plans/{plan_id}")
async def get_plan(plan_id: str, db: DbSession = Depends(get_db)) -> dict[str, Any]:
    return success_response(PlanStore(db).get_plan(plan_id).to_dict())


@router.post("/planning/plans/history")
async def plan_history(
    body: PlanHistoryRequest,
    db: DbSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    plans = PlanStore(db).list_plans(settings.user_id, body.limit)
    return success_response([p.to_summary() for p in plans])


# =============================================================================
# Daily assistant
# =============================================================================


@router.post("/daily-assistant")
async def daily_assistant(
    body: DailyAssistantRequest,
    db: DbSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    reply = await DailyAssistant(db, llm, settings.user_id).respond(body.message, body.history)
    return {"success": reply.success, "message": reply.message, "toolsUsed": reply.tools_used}


# =============================================================================
# Slack webhooks
# =============================================================================


async def _handle_slack_event(
    request: Request,
    background_tasks: BackgroundTasks,
    handler: SlackEventHandler,
) -> dict[str, Any] | JSONResponse:
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise ValidationError("Request body is not valid JSON") from exc

    # Slack's endpoint handshake is unsigned
    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    if not validate_slack_request(
        handler.app,
        request.headers.get("x-slack-signature"),
        request.headers.get("x-slack-request-timestamp"),
        body,
    ):
        return JSONResponse(status_code=401, content=error_response(UNAUTHORIZED))

    event = payload.get("event")
    if isinstance(event, dict) and await handler.accept(event):
        background_tasks.add_task(handler.process, event)
    return {"ok": True}


@router.post("/slack/events", response_model=None)
async def slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    handler: SlackEventHandler = Depends(get_bella_handler),
) -> dict[str, Any] | JSONResponse:
    return await _handle_slack_event(request, background_tasks, handler)


@router.post("/dave/events", response_model=None)
async def dave_events(
    request: Request,
    background_tasks: BackgroundTasks,
    handler: SlackEventHandler = Depends(get_dave_handler),
) -> dict[str, Any] | JSONResponse:
    return await _handle_slack_event(request, background_tasks, handler)


__all__ = ["router"]
