from __future__ import annotations


class ToolError(RuntimeError):
    """Base class for every failure a tool invocation can produce."""


class UnknownToolError(ToolError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class DuplicateToolError(ToolError):
    def __init__(self, name: str):
        super().__init__(f"Tool already registered: {name}")
        self.name = name


class ValidationError(ToolError):
    """Arguments do not satisfy the tool's parameter schema."""


class UpstreamError(ToolError):
    """A vendor service (network, auth, not-found, bad payload) failed."""


class StateError(ToolError):
    """Pomodoro liveness marker is missing, stale or cannot be created."""
