from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from .base import ToolCall, ToolResult
from .registry import ToolRegistry
from ..errors import UnknownToolError, ValidationError
from ..events.store import EventStore


def _error_message(exc: BaseException) -> str:
    msg = str(exc).strip()
    return msg or type(exc).__name__


def _preview(value: Any, limit: int = 4000) -> str:
    s = repr(value)
    return s if len(s) <= limit else s[:limit] + "... (truncated)"


@dataclass
class ToolExecutor:
    """Runs registry handlers and turns every failure into ToolResult(ok=False).

    This is the only boundary tool faults are guaranteed not to cross.
    """

    registry: ToolRegistry
    events: EventStore | None = None

    def _record(self, event_type: str, data: dict[str, Any]) -> None:
        if self.events:
            self.events.append(event_type, data)

    def validate(self, call: ToolCall) -> None:
        definition = self.registry.get_definition(call.name)
        args = call.arguments or {}
        missing = [p for p in definition.required_params() if args.get(p) is None]
        if missing:
            raise ValidationError(
                f"Missing required parameter(s) for {call.name}: {', '.join(missing)}"
            )

    def execute(self, call: ToolCall) -> ToolResult:
        try:
            handler = self.registry.get(call.name)
            self.validate(call)
        except UnknownToolError as e:
            self._record("tool.missing", {"tool": call.name, "tool_call_id": call.id})
            return ToolResult.failure(str(e))
        except ValidationError as e:
            self._record("tool.invalid", {"tool": call.name, "tool_call_id": call.id, "error": str(e)})
            return ToolResult.failure(str(e))

        self._record("tool.call", {"tool": call.name, "tool_call_id": call.id, "args": call.arguments})
        t0 = time.perf_counter()
        try:
            res = ToolResult.success(handler.invoke(dict(call.arguments or {})))
        except Exception as e:
            res = ToolResult.failure(_error_message(e))
        elapsed_ms = int((time.perf_counter() - t0) * 1000)

        self._record(
            "tool.result",
            {
                "tool": call.name,
                "tool_call_id": call.id,
                "ok": res.ok,
                "elapsed_ms": elapsed_ms,
                "error": res.error,
                "data_preview": _preview(res.data) if res.ok else None,
            },
        )
        return res
