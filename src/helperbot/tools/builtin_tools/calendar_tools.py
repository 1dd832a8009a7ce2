from __future__ import annotations

from typing import Any

from ..base import ParamSpec, ToolDefinition
from ...services.calendar import CalendarClient


class _CalendarTool:
    def __init__(self, calendar: CalendarClient):
        self.calendar = calendar


class ListTodayMeetingsTool(_CalendarTool):
    definition = ToolDefinition(
        name="list_today_meetings",
        description="List today's meetings from Google Calendar.",
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.calendar.today()


class ListWeeklyMeetingsTool(_CalendarTool):
    definition = ToolDefinition(
        name="list_weekly_meetings",
        description="List this week's meetings (Monday to Sunday) from Google Calendar.",
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.calendar.this_week()


class AddCalendarEventTool(_CalendarTool):
    definition = ToolDefinition(
        name="add_calendar_event",
        description="Add an event to Google Calendar.",
        parameters={
            "summary": ParamSpec("STRING", "Event title", required=True),
            "start_time": ParamSpec("STRING", "Start time in ISO 8601 (e.g. 2024-05-01T10:00:00)", required=True),
            "end_time": ParamSpec("STRING", "End time in ISO 8601", required=True),
            "description": ParamSpec("STRING", "Event description"),
            "location": ParamSpec("STRING", "Event location"),
            "attendees": ParamSpec("STRING", "Comma-separated attendee emails"),
        },
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.calendar.add_event(
            summary=str(args["summary"]),
            start_time=str(args["start_time"]),
            end_time=str(args["end_time"]),
            description=args.get("description"),
            location=args.get("location"),
            attendees=args.get("attendees"),
        )
