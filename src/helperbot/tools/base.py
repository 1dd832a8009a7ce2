from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

ParamType = Literal["STRING", "NUMBER", "BOOLEAN", "OBJECT"]

_JSON_TYPES = {"STRING": "string", "NUMBER": "number", "BOOLEAN": "boolean", "OBJECT": "object"}


@dataclass(frozen=True)
class ParamSpec:
    type: ParamType
    description: str = ""
    required: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "description": self.description, "required": self.required}


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    parameters: dict[str, ParamSpec] = field(default_factory=dict)

    def required_params(self) -> list[str]:
        return [k for k, p in self.parameters.items() if p.required]

    def to_catalog_entry(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {k: p.to_dict() for k, p in self.parameters.items()},
        }

    def to_json_schema(self) -> dict[str, Any]:
        """Render the parameters as a JSON Schema object (OpenAI tools / MCP inputSchema)."""
        props = {
            k: {"type": _JSON_TYPES[p.type], "description": p.description}
            for k, p in self.parameters.items()
        }
        return {"type": "object", "properties": props, "required": self.required_params()}


class ToolHandler(Protocol):
    def invoke(self, args: dict[str, Any]) -> Any: ...


@dataclass(frozen=True)
class ToolCall:
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: str = ""


@dataclass(frozen=True)
class ToolResult:
    ok: bool
    data: Any = None
    error: str | None = None

    @staticmethod
    def success(data: Any) -> "ToolResult":
        return ToolResult(ok=True, data=data)

    @staticmethod
    def failure(error: str) -> "ToolResult":
        return ToolResult(ok=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "data": self.data}
        return {"ok": False, "error": self.error or ""}
