"""Tests for prompt templates and placeholder filling."""

import pytest

from bella.lib.prompts import (
    CONVERSATION_CONTINUATION,
    DAILY_SYSTEM_PROMPT,
    DEFAULT_PROFILE,
    FINAL_PLANNING_PROMPT,
    PLAN_COMPLETION_MESSAGE,
    SYSTEM_PROMPT,
    fill_prompt_template,
    missing_variables,
)


def test_fill_replaces_every_occurrence():
    assert fill_prompt_template("{a} and {a} and {b}", {"a": "x", "b": "y"}) == "x and x and y"


def test_fill_leaves_unknown_placeholders():
    assert fill_prompt_template("{a} {json: true}", {"a": "x"}) == "x {json: true}"


@pytest.mark.parametrize(
    "template",
    [
        SYSTEM_PROMPT,
        PLAN_COMPLETION_MESSAGE,
        FINAL_PLANNING_PROMPT,
        CONVERSATION_CONTINUATION,
        DEFAULT_PROFILE,
        DAILY_SYSTEM_PROMPT,
    ],
)
def test_declared_variables_appear_in_template(template):
    for name in template.variables:
        assert "{" + name + "}" in template.template


def test_missing_variables():
    assert missing_variables(SYSTEM_PROMPT, {}) == ["userProfile"]
    assert missing_variables(SYSTEM_PROMPT, {"userProfile": "p"}) == []
