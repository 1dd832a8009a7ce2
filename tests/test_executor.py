"""Tests for the executor, the boundary no tool fault crosses."""

from __future__ import annotations

from fakes import BoomTool, EchoTool
from helperbot.errors import UpstreamError
from helperbot.tools.base import ParamSpec, ToolCall, ToolDefinition
from helperbot.tools.builtin_tools.jwt_tool import DecodeJwtTool
from helperbot.tools.executor import ToolExecutor
from helperbot.tools.registry import ToolRegistry

ECHO = ToolDefinition(
    name="echo",
    description="Echo text back.",
    parameters={"text": ParamSpec("STRING", "Text", required=True)},
)


def _executor(events=None, **handlers):
    reg = ToolRegistry()
    for name, handler in handlers.items():
        reg.register(ToolDefinition(name=name, description=name, parameters=ECHO.parameters), handler)
    return ToolExecutor(registry=reg, events=events)


def test_success_wraps_return_value(events):
    echo = EchoTool()
    ex = _executor(events, echo=echo)
    res = ex.execute(ToolCall(name="echo", arguments={"text": "hi"}, id="c1"))
    assert res.ok
    assert res.data == {"echo": "hi"}
    assert res.to_dict() == {"ok": True, "data": {"echo": "hi"}}
    assert echo.calls == [{"text": "hi"}]

    results = events.of_type("tool.result")
    assert len(results) == 1
    assert results[0].data["ok"] is True
    assert results[0].data["tool_call_id"] == "c1"
    assert results[0].data["elapsed_ms"] >= 0


def test_unknown_tool_invokes_nothing(events):
    echo = EchoTool()
    ex = _executor(events, echo=echo)
    res = ex.execute(ToolCall(name="frobnicate", arguments={"text": "x"}))
    assert not res.ok
    assert res.error == "Unknown tool: frobnicate"
    assert echo.calls == []
    assert [e.data["tool"] for e in events.of_type("tool.missing")] == ["frobnicate"]
    assert events.of_type("tool.call") == []


def test_missing_required_parameter_is_rejected():
    echo = EchoTool()
    ex = _executor(echo=echo)
    for args in ({}, {"text": None}):
        res = ex.execute(ToolCall(name="echo", arguments=args))
        assert not res.ok
        assert res.error == "Missing required parameter(s) for echo: text"
    assert echo.calls == []


def test_raising_handler_becomes_failure():
    ex = _executor(boom=BoomTool(UpstreamError("GitHub unreachable")))
    res = ex.execute(ToolCall(name="boom", arguments={"text": "x"}))
    assert res.to_dict() == {"ok": False, "error": "GitHub unreachable"}


def test_empty_exception_message_falls_back_to_class_name():
    ex = _executor(boom=BoomTool(KeyError()))
    res = ex.execute(ToolCall(name="boom", arguments={"text": "x"}))
    assert not res.ok
    assert res.error == "KeyError"


def test_handler_cannot_mutate_call_arguments():
    class Mutating:
        def invoke(self, args):
            args["text"] = "changed"
            return None

    ex = _executor(m=Mutating())
    call = ToolCall(name="m", arguments={"text": "original"})
    assert ex.execute(call).ok
    assert call.arguments == {"text": "original"}


def test_malformed_jwt_is_a_failure_not_an_exception():
    reg = ToolRegistry()
    tool = DecodeJwtTool()
    reg.register(tool.definition, tool)
    res = ToolExecutor(registry=reg).execute(ToolCall(name="decode_jwt", arguments={"token": "not.a-jwt"}))
    assert res.to_dict() == {"ok": False, "error": "Invalid JWT token"}
