"""
LLM client for Bella Planner.

Talks to Groq through its OpenAI-compatible chat completions API. Bella's
turns go through `generate_response`, which retries, decodes the optional
function call into a closed variant, and never raises. Dave's tool loop
uses the lower-level `chat`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError as PydanticValidationError

from bella.config.settings import Settings, get_settings
from bella.lib.exceptions import ParseError, UpstreamError
from bella.lib.prompts import (
    CONVERSATION_CONTINUATION,
    NEW_CONVERSATION,
    SYSTEM_PROMPT,
    fill_prompt_template,
)
from bella.modules.planning_state import FUNCTION_CALL_TYPES, BellaResponse, FunctionCall

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAYS = (1.0, 2.0)
HISTORY_WINDOW = 10
TEMPERATURE = 0.7

ERROR_MESSAGE = "I'm having trouble processing right now. Let's try again in a few minutes."
PROCESSING_MESSAGE = "I'm processing your request..."

_TASK_SCHEMA = {
    "type": "object",
    "properties": {
        "time": {"type": "string"},
        "task": {"type": "string"},
        "duration": {"type": "number"},
        "type": {"type": "string", "enum": ["routine", "work", "break", "personal", "travel"]},
    },
    "required": ["time", "task"],
}

_DAY_SCHEMA = {
    "type": "object",
    "properties": {
        "date": {"type": "string"},
        "tasks": {"type": "array", "items": _TASK_SCHEMA},
    },
    "required": ["date", "tasks"],
}

BELLA_FUNCTIONS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "set_continuation_flag",
            "description": "Set whether the conversation should continue or if enough information has been gathered",
            "parameters": {
                "type": "object",
                "properties": {
                    "continueConversation": {
                        "type": "boolean",
                        "description": "True if more information is needed, false if ready to create the plan",
                    },
                    "reason": {"type": "string", "description": "Explanation for the decision"},
                    "missingInfo": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Information still needed from the user",
                    },
                },
                "required": ["continueConversation", "reason"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "save_weekly_plan",
            "description": "Save the generated weekly plan to the database",
            "parameters": {
                "type": "object",
                "properties": {
                    "weeklyTargets": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Main goals and targets for the week",
                    },
                    "days": {
                        "type": "object",
                        "properties": {
                            day: _DAY_SCHEMA
                            for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
                        },
                        "required": ["monday", "tuesday", "wednesday", "thursday", "friday"],
                    },
                },
                "required": ["weeklyTargets", "days"],
            },
        },
    },
]


class ResponseGenerator(Protocol):
    """Anything that can produce Bella's next turn."""

    async def generate_response(self, chat_history: str, user_profile: str) -> BellaResponse: ...


def format_chat_history(messages: list[dict[str, Any]]) -> str:
    """Render the last ten messages as the user-turn content for the model."""
    if not messages:
        return NEW_CONVERSATION

    lines = []
    for msg in messages[-HISTORY_WINDOW:]:
        speaker = "Bella" if msg.get("role") == "assistant" else "Human"
        lines.append(f"{speaker}: {msg.get('content', '')}")
    return fill_prompt_template(
        CONVERSATION_CONTINUATION.template, {"formattedMessages": "\n\n".join(lines)}
    )


def parse_function_call(name: str, arguments: str | dict[str, Any] | None) -> FunctionCall:
    """
    Decode a tool call into its variant.

    Raises:
        ParseError: unknown function name, malformed JSON, or schema mismatch
    """
    model_cls = FUNCTION_CALL_TYPES.get(name)
    if model_cls is None:
        raise ParseError(f"Unknown function: {name}")
    try:
        payload = json.loads(arguments) if isinstance(arguments, str) else (arguments or {})
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON arguments for {name}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ParseError(f"Arguments for {name} must be an object")
    try:
        return model_cls.model_validate(payload)  # type: ignore[return-value]
    except PydanticValidationError as exc:
        raise ParseError(f"Arguments for {name} failed validation: {exc.error_count()} errors") from exc


class LLMClient:
    """
    Async client for the hosted LLM.

    Usage:
        client = LLMClient.from_settings()
        response = await client.generate_response(history, profile)
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str,
        model: str,
        temperature: float = TEMPERATURE,
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model
        self.temperature = temperature
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> LLMClient:
        settings = settings or get_settings()
        return cls(
            api_key=settings.groq_api_key,
            base_url=settings.groq_base_url,
            model=settings.groq_model,
            timeout=settings.groq_timeout_seconds,
        )

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise UpstreamError("GROQ_API_KEY is not configured")
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
    ) -> Any:
        """
        One chat completion call.

        Returns:
            The first choice's message (content and optional tool_calls)

        Raises:
            UpstreamError: transport failure or an empty response
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await self._get_client().chat.completions.create(**kwargs)
        except OpenAIError as exc:
            raise UpstreamError(f"LLM request failed: {exc}") from exc

        if not response.choices or response.choices[0].message is None:
            raise UpstreamError("Empty response from LLM")
        return response.choices[0].message

    async def generate_response(self, chat_history: str, user_profile: str) -> BellaResponse:
        """
        Produce Bella's next turn.

        Up to three attempts with 1s/2s backoff. Never raises: exhausting
        the attempts returns the canned error message with `error` set.
        """
        system_prompt = fill_prompt_template(SYSTEM_PROMPT.template, {"userProfile": user_profile})
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": chat_history},
        ]

        last_error: Exception | None = None
        for attempt in range(MAX_ATTEMPTS):
            try:
                message = await self.chat(messages, tools=BELLA_FUNCTIONS)
                return self._to_response(message)
            except UpstreamError as exc:
                last_error = exc
                logger.warning("LLM attempt %s/%s failed: %s", attempt + 1, MAX_ATTEMPTS, exc)
                if attempt < MAX_ATTEMPTS - 1:
                    await asyncio.sleep(RETRY_DELAYS[attempt])

        logger.error("LLM failed after %s attempts: %s", MAX_ATTEMPTS, last_error)
        return BellaResponse(message=ERROR_MESSAGE, function_call=None, error=str(last_error))

    def _to_response(self, message: Any) -> BellaResponse:
        content = message.content or PROCESSING_MESSAGE
        function_call: FunctionCall | None = None

        for tool_call in message.tool_calls or []:
            if getattr(tool_call, "type", "function") != "function":
                continue
            try:
                function_call = parse_function_call(tool_call.function.name, tool_call.function.arguments)
            except ParseError as exc:
                logger.warning("Dropping function call: %s", exc)
            # only the first function call is acted upon
            break

        return BellaResponse(message=content, function_call=function_call)


_llm_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    """Get the process-wide LLM client."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient.from_settings()
    return _llm_client


__all__ = [
    "BELLA_FUNCTIONS",
    "ERROR_MESSAGE",
    "PROCESSING_MESSAGE",
    "LLMClient",
    "ResponseGenerator",
    "format_chat_history",
    "parse_function_call",
    "get_llm_client",
]
