"""Tests for the append-only transcript and its jsonl persistence."""

from __future__ import annotations

import dataclasses
import json

import pytest

from helperbot.session.models import Turn
from helperbot.session.store import SessionStore
from helperbot.tools.base import ToolCall


def test_history_has_one_entry_per_turn_in_order():
    s = SessionStore.in_memory()
    for i in range(5):
        s.append(Turn.user(f"u{i}"))
    history = s.as_model_history()
    assert len(history) == len(s) == 5
    assert [m["content"] for m in history] == ["u0", "u1", "u2", "u3", "u4"]


def test_turns_are_immutable():
    t = Turn.user("hello")
    with pytest.raises(dataclasses.FrozenInstanceError):
        t.content = "changed"  # type: ignore[misc]


def test_turns_returns_a_copy():
    s = SessionStore.in_memory()
    s.append(Turn.user("a"))
    snapshot = s.turns
    s.append(Turn.assistant("b"))
    assert len(snapshot) == 1
    assert len(s.turns) == 2


def test_tool_turns_render_as_openai_messages():
    call = ToolCall(name="convert_currency", arguments={"amount": 100}, id="call_1")
    request = Turn.tool_request([call]).to_openai()
    assert request["role"] == "assistant"
    assert request["content"] is None
    fn = request["tool_calls"][0]
    assert fn["id"] == "call_1"
    assert fn["function"]["name"] == "convert_currency"
    assert json.loads(fn["function"]["arguments"]) == {"amount": 100}

    response = Turn.tool_response(call, '{"ok": true}').to_openai()
    assert response == {"role": "tool", "content": '{"ok": true}', "tool_call_id": "call_1"}


def test_persisted_session_reloads():
    s = SessionStore.open("abc")
    call = ToolCall(name="decode_jwt", arguments={"token": "x"}, id="call_9")
    s.append(Turn.user("decode x"))
    s.append(Turn.tool_request([call]))
    s.append(Turn.tool_response(call, '{"ok": false, "error": "Invalid JWT token"}'))

    again = SessionStore.open("abc")
    assert again.turns == s.turns


def test_partial_trailing_line_is_skipped():
    s = SessionStore.open("torn")
    s.append(Turn.user("kept"))
    with s.path.open("a", encoding="utf-8") as f:
        f.write('{"role": "assis')

    again = SessionStore.open("torn")
    assert [t.content for t in again.turns] == ["kept"]
