from __future__ import annotations

from .registry import ToolRegistry

from .builtin_tools.currency_tool import ConvertCurrencyTool
from .builtin_tools.jwt_tool import DecodeJwtTool
from .builtin_tools.notify_tool import SendNotificationTool
from .builtin_tools.github_tools import (
    ApprovePrTool,
    CreatePrTool,
    ListMyPrsTool,
    ListMyReposTool,
    ListOpenPrsTool,
    SummarizeChangesTool,
)
from .builtin_tools.calendar_tools import (
    AddCalendarEventTool,
    ListTodayMeetingsTool,
    ListWeeklyMeetingsTool,
)
from .builtin_tools.pomodoro_tools import PomodoroStatusTool, StartPomodoroTool, StopPomodoroTool
from ..pomodoro.controller import PomodoroController
from ..services.calendar import CalendarClient
from ..services.currency import RateSource
from ..services.notify import Notifier
from ..services.pull_requests import PullRequestService


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    rates: RateSource,
    notifier: Notifier,
    pull_requests: PullRequestService,
    calendar: CalendarClient,
    pomodoro: PomodoroController,
) -> None:
    """Register the catalog in the order the model sees it."""
    for tool in (
        SummarizeChangesTool(pull_requests),
        CreatePrTool(pull_requests),
        ApprovePrTool(pull_requests),
        ConvertCurrencyTool(rates),
        DecodeJwtTool(),
        SendNotificationTool(notifier),
        ListOpenPrsTool(pull_requests),
        ListMyPrsTool(pull_requests),
        ListMyReposTool(pull_requests),
        ListTodayMeetingsTool(calendar),
        ListWeeklyMeetingsTool(calendar),
        AddCalendarEventTool(calendar),
        StartPomodoroTool(pomodoro),
        StopPomodoroTool(pomodoro),
        PomodoroStatusTool(pomodoro),
    ):
        registry.register(tool.definition, tool)
