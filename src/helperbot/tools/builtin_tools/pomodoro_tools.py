from __future__ import annotations

from typing import Any

from ..base import ToolDefinition
from ...pomodoro.controller import PomodoroController


class _PomodoroTool:
    def __init__(self, controller: PomodoroController):
        self.controller = controller


class StartPomodoroTool(_PomodoroTool):
    definition = ToolDefinition(
        name="start_pomodoro",
        description="Start a Pomodoro timer in the background (work sessions followed by breaks, with notifications).",
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.controller.start()


class StopPomodoroTool(_PomodoroTool):
    definition = ToolDefinition(
        name="stop_pomodoro",
        description="Stop the running Pomodoro timer.",
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.controller.stop()


class PomodoroStatusTool(_PomodoroTool):
    definition = ToolDefinition(
        name="pomodoro_status",
        description="Report whether a Pomodoro timer is running.",
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.controller.status()
