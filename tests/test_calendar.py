"""Tests for calendar helpers and event creation (Google API mocked)."""

from __future__ import annotations

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from helperbot.errors import UpstreamError, ValidationError
from helperbot.services.calendar import (
    CalendarClient,
    day_range,
    extract_zoom_url,
    format_events,
    week_range,
)


def test_week_range_is_monday_to_sunday():
    start, end = week_range(date(2024, 5, 1))  # a Wednesday
    assert start == datetime(2024, 4, 29, 0, 0)
    assert end == datetime(2024, 5, 5, 23, 59, 59, 999999)


def test_week_range_on_monday_and_sunday():
    assert week_range(date(2024, 4, 29))[0].date() == date(2024, 4, 29)
    assert week_range(date(2024, 5, 5))[0].date() == date(2024, 4, 29)


def test_day_range():
    start, end = day_range(date(2024, 5, 1))
    assert (start.hour, end.hour, end.minute) == (0, 23, 59)


def test_zoom_link_from_conference_notes_unwraps_redirect():
    event = {
        "conferenceData": {
            "notes": '<a href="https://www.google.com/url?q=https://us02web.zoom.us/j/123?pwd%3Dabc&amp;sa=D">Join</a>'
        }
    }
    assert extract_zoom_url(event) == "https://us02web.zoom.us/j/123?pwd=abc"


def test_zoom_link_from_description():
    assert extract_zoom_url({"description": "Join: https://zoom.us/j/999 today"}) == "https://zoom.us/j/999"
    assert extract_zoom_url({"description": "no link"}) is None
    assert extract_zoom_url({}) is None


def test_format_events():
    out = format_events(
        [
            {
                "summary": "Standup",
                "start": {"dateTime": "2024-05-01T09:00:00+07:00"},
                "end": {"dateTime": "2024-05-01T09:15:00+07:00"},
                "hangoutLink": "https://meet.google.com/abc",
                "attendees": [{"email": "a@example.com"}, {"displayName": "no email"}],
            },
            {"start": {"date": "2024-05-02"}, "end": {"date": "2024-05-03"}},
        ]
    )
    assert out["event_count"] == 2
    first, second = out["events"]
    assert first["summary"] == "Standup"
    assert first["all_day"] is False
    assert first["hangout_link"] == "https://meet.google.com/abc"
    assert first["attendees"] == ["a@example.com"]
    assert second["summary"] == "No title"
    assert second["all_day"] is True
    assert second["start"] == "2024-05-02"


def test_format_no_events():
    assert format_events([]) == {"event_count": 0, "events": [], "summary": "No upcoming events found."}


def _client(tmp_path) -> CalendarClient:
    return CalendarClient(
        credentials_file=str(tmp_path / "creds.json"),
        token_file=str(tmp_path / "token.json"),
        timezone="Asia/Ho_Chi_Minh",
    )


def test_add_event_validates_before_calling_google(tmp_path):
    client = _client(tmp_path)
    client._service = MagicMock(side_effect=AssertionError("google must not be called"))
    with pytest.raises(ValidationError, match="Invalid start_time"):
        client.add_event("x", "tomorrow", "2024-05-01T10:00:00")
    with pytest.raises(ValidationError, match="after start_time"):
        client.add_event("x", "2024-05-01T10:00:00", "2024-05-01T09:00:00")


def test_add_event_builds_request_body(tmp_path):
    client = _client(tmp_path)
    service = MagicMock()
    service.events.return_value.insert.return_value.execute.return_value = {
        "summary": "Review",
        "htmlLink": "https://calendar.google.com/event?eid=1",
        "id": "ev1",
    }
    client._service = lambda: service

    out = client.add_event(
        "Review",
        "2024-05-01T10:00:00",
        "2024-05-01T11:00:00",
        attendees="a@example.com, b@example.com",
    )

    body = service.events.return_value.insert.call_args.kwargs["body"]
    assert body["start"] == {"dateTime": "2024-05-01T10:00:00", "timeZone": "Asia/Ho_Chi_Minh"}
    assert body["attendees"] == [{"email": "a@example.com"}, {"email": "b@example.com"}]
    assert out == {
        "summary": "Event created successfully.",
        "title": "Review",
        "html_link": "https://calendar.google.com/event?eid=1",
        "event_id": "ev1",
    }


def test_add_event_rejects_mixed_timezone_awareness(tmp_path):
    client = _client(tmp_path)
    client._service = MagicMock(side_effect=AssertionError("google must not be called"))
    with pytest.raises(ValidationError, match="both include or both omit a timezone"):
        client.add_event("x", "2024-05-01T10:00:00Z", "2024-05-01T11:00:00")
    with pytest.raises(ValidationError, match="both include or both omit a timezone"):
        client.add_event("x", "2024-05-01T10:00:00", "2024-05-01T11:00:00+07:00")


def test_missing_credentials_file_is_explained(tmp_path):
    with pytest.raises(UpstreamError, match="Google credentials not found"):
        _client(tmp_path)._credentials()


def test_consent_flow_refused_without_interactive_auth(tmp_path):
    (tmp_path / "creds.json").write_text("{}", encoding="utf-8")
    client = _client(tmp_path)
    client.interactive_auth = False
    with pytest.raises(UpstreamError, match="not authorized yet"):
        client._credentials()
    assert not (tmp_path / "token.json").exists()


def test_today_lists_primary_calendar(tmp_path):
    client = _client(tmp_path)
    service = MagicMock()
    service.events.return_value.list.return_value.execute.return_value = {"items": []}
    client._service = lambda: service

    out = client.today(date(2024, 5, 1))
    assert out["event_count"] == 0
    kwargs = service.events.return_value.list.call_args.kwargs
    assert kwargs["calendarId"] == "primary"
    assert kwargs["singleEvents"] is True
    assert kwargs["timeMin"].startswith("2024-05-01T00:00:00")
