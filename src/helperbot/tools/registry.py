from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional

from .base import ToolDefinition, ToolHandler
from ..errors import DuplicateToolError, UnknownToolError


@dataclass
class ToolRegistry:
    _tools: Dict[str, tuple[ToolDefinition, ToolHandler]] = field(default_factory=dict)

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        name = definition.name
        if name in self._tools:
            raise DuplicateToolError(name)
        self._tools[name] = (definition, handler)

    def get(self, name: str) -> ToolHandler:
        if name not in self._tools:
            raise UnknownToolError(name)
        return self._tools[name][1]

    def get_definition(self, name: str) -> ToolDefinition:
        if name not in self._tools:
            raise UnknownToolError(name)
        return self._tools[name][0]

    def get_optional(self, name: str) -> Optional[ToolHandler]:
        """Return a handler if registered, otherwise None."""
        entry = self._tools.get(name)
        return entry[1] if entry else None

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def list_definitions(self) -> list[ToolDefinition]:
        return [d for d, _ in self._tools.values()]
