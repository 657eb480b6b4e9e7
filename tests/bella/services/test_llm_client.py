"""
Tests for the Groq LLM client.

Covers:
- Chat history formatting (window, speaker labels, empty history)
- Function-call decoding (both variants, unknown names, bad JSON)
- generate_response retries with backoff and never raises
- chat() error wrapping
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from bella.lib.exceptions import ParseError, UpstreamError
from bella.lib.prompts import NEW_CONVERSATION
from bella.modules.planning_state import SaveWeeklyPlan, SetContinuationFlag
from bella.services.llm_client import (
    BELLA_FUNCTIONS,
    ERROR_MESSAGE,
    PROCESSING_MESSAGE,
    LLMClient,
    format_chat_history,
    parse_function_call,
)

# =============================================================================
# Helpers
# =============================================================================


def _completion(message):
    return MagicMock(choices=[MagicMock(message=message)])


def _client_with(side_effect):
    """LLMClient over a mocked AsyncOpenAI whose create() follows side_effect."""
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(side_effect=side_effect)
    openai_client.close = AsyncMock()
    return LLMClient(api_key="test", base_url="http://llm.test", model="test-model", client=openai_client)


def _api_error():
    request = httpx.Request("POST", "http://llm.test/chat/completions")
    return openai.APIConnectionError(request=request)


# =============================================================================
# History formatting
# =============================================================================


def test_empty_history_is_new_conversation():
    assert format_chat_history([]) == NEW_CONVERSATION


def test_history_uses_speaker_labels():
    text = format_chat_history(
        [
            {"role": "assistant", "content": "Ready?"},
            {"role": "user", "content": "Yes"},
        ]
    )
    assert text.startswith("Previous conversation:\n\n")
    assert "Bella: Ready?\n\nHuman: Yes" in text
    assert text.endswith("Please continue the conversation naturally.")


def test_history_keeps_last_ten_messages():
    messages = [{"role": "user", "content": f"msg {i}"} for i in range(12)]
    text = format_chat_history(messages)

    assert "Human: msg 0\n" not in text
    assert "Human: msg 1\n" not in text
    assert "Human: msg 2" in text
    assert "Human: msg 11" in text


# =============================================================================
# Function-call decoding
# =============================================================================


def test_parse_continuation_flag():
    call = parse_function_call(
        "set_continuation_flag",
        json.dumps({"continueConversation": True, "reason": "need times", "missingInfo": ["times"]}),
    )
    assert isinstance(call, SetContinuationFlag)
    assert call.continue_conversation is True
    assert call.missing_info == ["times"]


def test_parse_weekly_plan(build_plan):
    payload = build_plan().model_dump(by_alias=True, exclude={"name"})
    call = parse_function_call("save_weekly_plan", json.dumps(payload))

    assert isinstance(call, SaveWeeklyPlan)
    assert call.weekly_targets == ["Ship feature X", "Gym 3x"]
    assert call.days.monday.tasks[0].time == "9:00 AM"


@pytest.mark.parametrize(
    "name,arguments",
    [
        ("delete_everything", "{}"),
        ("set_continuation_flag", "{not json"),
        ("set_continuation_flag", "[1, 2]"),
        ("save_weekly_plan", json.dumps({"weeklyTargets": ["x"]})),
    ],
)
def test_parse_rejects_bad_calls(name, arguments):
    with pytest.raises(ParseError):
        parse_function_call(name, arguments)


def test_tools_schema_names():
    assert [t["function"]["name"] for t in BELLA_FUNCTIONS] == ["set_continuation_flag", "save_weekly_plan"]


# =============================================================================
# generate_response
# =============================================================================


@pytest.mark.asyncio
async def test_generate_response_decodes_first_call(openai_message):
    message = openai_message.message(
        "Tell me more",
        [
            openai_message.tool_call("set_continuation_flag", json.dumps({"continueConversation": True, "reason": "r"})),
            openai_message.tool_call("set_continuation_flag", json.dumps({"continueConversation": False, "reason": "r"}), "call_2"),
        ],
    )
    client = _client_with([_completion(message)])

    response = await client.generate_response("history", "profile")

    assert response.message == "Tell me more"
    assert response.error is None
    assert response.function_call.continue_conversation is True

    kwargs = client._client.chat.completions.create.await_args.kwargs
    assert kwargs["tools"] == BELLA_FUNCTIONS
    assert kwargs["tool_choice"] == "auto"
    assert kwargs["temperature"] == 0.7
    assert kwargs["messages"][0]["role"] == "system"
    assert "profile" in kwargs["messages"][0]["content"]
    assert kwargs["messages"][1] == {"role": "user", "content": "history"}


@pytest.mark.asyncio
async def test_generate_response_drops_malformed_call(openai_message):
    message = openai_message.message("Hi", [openai_message.tool_call("save_weekly_plan", "{broken")])
    client = _client_with([_completion(message)])

    response = await client.generate_response("h", "p")

    assert response.message == "Hi"
    assert response.function_call is None
    assert response.error is None


@pytest.mark.asyncio
async def test_empty_content_gets_placeholder(openai_message):
    client = _client_with([_completion(openai_message.message(None, None))])
    response = await client.generate_response("h", "p")
    assert response.message == PROCESSING_MESSAGE


@pytest.mark.asyncio
async def test_generate_response_retries_then_succeeds(openai_message):
    client = _client_with([_api_error(), _completion(openai_message.message("ok"))])

    with patch("bella.services.llm_client.asyncio.sleep", new=AsyncMock()) as sleep:
        response = await client.generate_response("h", "p")

    assert response.message == "ok"
    sleep.assert_awaited_once_with(1.0)


@pytest.mark.asyncio
async def test_generate_response_exhausts_attempts():
    client = _client_with([_api_error(), _api_error(), _api_error()])

    with patch("bella.services.llm_client.asyncio.sleep", new=AsyncMock()) as sleep:
        response = await client.generate_response("h", "p")

    assert response.message == ERROR_MESSAGE
    assert response.function_call is None
    assert response.error
    assert client._client.chat.completions.create.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_generate_response_without_api_key_does_not_raise():
    client = LLMClient(api_key=None, base_url="http://llm.test", model="m")

    with patch("bella.services.llm_client.asyncio.sleep", new=AsyncMock()):
        response = await client.generate_response("h", "p")

    assert response.message == ERROR_MESSAGE
    assert "GROQ_API_KEY" in response.error


# =============================================================================
# chat()
# =============================================================================


@pytest.mark.asyncio
async def test_chat_wraps_openai_errors():
    client = _client_with([_api_error()])
    with pytest.raises(UpstreamError):
        await client.chat([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_chat_rejects_empty_choices():
    client = _client_with([MagicMock(choices=[])])
    with pytest.raises(UpstreamError):
        await client.chat([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_chat_without_tools_omits_tool_choice(openai_message):
    client = _client_with([_completion(openai_message.message("x"))])
    await client.chat([{"role": "user", "content": "hi"}], temperature=0.2)

    kwargs = client._client.chat.completions.create.await_args.kwargs
    assert "tools" not in kwargs
    assert "tool_choice" not in kwargs
    assert kwargs["temperature"] == 0.2


@pytest.mark.asyncio
async def test_close_releases_client():
    client = _client_with([])
    inner = client._client
    await client.close()
    inner.close.assert_awaited_once()
    assert client._client is None
