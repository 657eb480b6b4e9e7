"""
Dave, the daily assistant.

A bounded tool-calling loop over the active weekly plan: the model may call
tools for up to five rounds before it must answer. LLM failures turn into a
friendly apology; tool failures are fed back to the model.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy.orm import Session as DbSession

from bella.lib.exceptions import UpstreamError
from bella.lib.prompts import DAILY_SYSTEM_PROMPT, fill_prompt_template
from bella.modules.daily_tools import DAILY_TOOLS, DailyTools, current_weekday
from bella.services.llm_client import LLMClient
from bella.services.plan_store import PlanStore

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 5

APOLOGY_MESSAGE = (
    "I'm sorry, I encountered an issue processing your request. "
    "Please try again or rephrase your question."
)
MAX_ITERATIONS_REPLY = "I couldn't finish that in time. Could you try asking in a simpler way?"


@dataclass
class DailyReply:
    """Dave's answer and the tools used to produce it."""

    message: str
    tools_used: list[str] = field(default_factory=list)
    success: bool = True


class DailyAssistant:
    """Answers day-to-day questions against the active plan."""

    def __init__(self, db: DbSession, llm: LLMClient, user_id: str):
        self._llm = llm
        self._tools = DailyTools(PlanStore(db), user_id)

    async def respond(
        self,
        message: str,
        history: list[dict[str, str]] | None = None,
        today: date | None = None,
    ) -> DailyReply:
        system_prompt = fill_prompt_template(
            DAILY_SYSTEM_PROMPT.template, {"weekday": current_weekday(today)}
        )
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": system_prompt},
            *(history or []),
            {"role": "user", "content": message},
        ]
        tools_used: list[str] = []

        try:
            for _ in range(MAX_ITERATIONS):
                reply = await self._llm.chat(messages, tools=DAILY_TOOLS)
                tool_calls = list(reply.tool_calls or [])
                if not tool_calls:
                    return DailyReply(message=reply.content or "", tools_used=tools_used)

                messages.append(
                    {
                        "role": "assistant",
                        "content": reply.content or "",
                        "tool_calls": [
                            {
                                "id": call.id,
                                "type": "function",
                                "function": {"name": call.function.name, "arguments": call.function.arguments},
                            }
                            for call in tool_calls
                        ],
                    }
                )
                for call in tool_calls:
                    name = call.function.name
                    tools_used.append(name)
                    output = self._tools.execute(name, call.function.arguments)
                    logger.debug("Tool %s returned %s", name, output)
                    messages.append({"role": "tool", "tool_call_id": call.id, "content": output})
        except UpstreamError as exc:
            logger.error("Daily assistant LLM call failed: %s", exc)
            return DailyReply(message=APOLOGY_MESSAGE, tools_used=tools_used, success=False)

        logger.warning("Daily assistant hit %s iterations; tools used: %s", MAX_ITERATIONS, json.dumps(tools_used))
        return DailyReply(message=MAX_ITERATIONS_REPLY, tools_used=tools_used)


__all__ = ["DailyAssistant", "DailyReply", "MAX_ITERATIONS", "APOLOGY_MESSAGE"]
