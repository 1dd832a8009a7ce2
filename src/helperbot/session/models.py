from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

from ..tools.base import ToolCall

Role = Literal["user", "assistant", "tool"]


@dataclass(frozen=True)
class Turn:
    role: Role
    # assistant turns that request tools carry no text
    content: str | None
    # assistant-only: the calls the model requested in this turn
    tool_calls: tuple[ToolCall, ...] = ()
    # tool-only: which call this result answers, and the tool's name
    tool_call_id: str | None = None
    name: str | None = None

    @staticmethod
    def user(text: str) -> "Turn":
        return Turn(role="user", content=text)

    @staticmethod
    def assistant(text: str) -> "Turn":
        return Turn(role="assistant", content=text)

    @staticmethod
    def tool_request(calls: list[ToolCall]) -> "Turn":
        return Turn(role="assistant", content=None, tool_calls=tuple(calls))

    @staticmethod
    def tool_response(call: ToolCall, payload: str) -> "Turn":
        return Turn(role="tool", content=payload, tool_call_id=call.id, name=call.name)

    def to_openai(self) -> dict[str, Any]:
        d: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.role == "assistant" and self.tool_calls:
            d["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments or {}, ensure_ascii=False),
                    },
                }
                for tc in self.tool_calls
            ]
        if self.tool_call_id:
            d["tool_call_id"] = self.tool_call_id
        return d

    def to_record(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "tool_calls": [
                {"id": tc.id, "name": tc.name, "arguments": tc.arguments} for tc in self.tool_calls
            ],
            "tool_call_id": self.tool_call_id,
            "name": self.name,
        }

    @staticmethod
    def from_record(obj: dict[str, Any]) -> "Turn":
        calls = tuple(
            ToolCall(id=str(c.get("id") or ""), name=str(c.get("name") or ""), arguments=c.get("arguments") or {})
            for c in (obj.get("tool_calls") or [])
        )
        return Turn(
            role=obj["role"],
            content=obj.get("content"),
            tool_calls=calls,
            tool_call_id=obj.get("tool_call_id"),
            name=obj.get("name"),
        )


@dataclass
class AssistantTurn:
    """What the model capability returns for one request."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
