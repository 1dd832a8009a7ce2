"""
Google Calendar v3 access for the primary calendar.

Credentials: an OAuth "Desktop app" client secret saved as `.google-credentials.json`
(see `calendar.credentials_file` in helperbot.json). The first call opens the
browser consent page; the resulting token is stored in `calendar.token_file`.
"""
from __future__ import annotations

import html
import re
import urllib.parse
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any

from ..errors import UpstreamError, ValidationError

SCOPES = ["https://www.googleapis.com/auth/calendar"]

_ZOOM_HREF_RE = re.compile(r'href="([^"]*zoom\.us[^"]*)"', re.IGNORECASE)
_ZOOM_URL_RE = re.compile(r"https?://[^\s]*zoom\.us/[^\s]*", re.IGNORECASE)


def week_range(today: date) -> tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59:59.999999 of the week containing `today`."""
    monday = today - timedelta(days=today.weekday())
    start = datetime.combine(monday, time.min)
    return start, datetime.combine(monday + timedelta(days=6), time.max)


def day_range(today: date) -> tuple[datetime, datetime]:
    return datetime.combine(today, time.min), datetime.combine(today, time.max)


def extract_zoom_url(event: dict[str, Any]) -> str | None:
    notes = (event.get("conferenceData") or {}).get("notes")
    if notes:
        m = _ZOOM_HREF_RE.search(notes)
        if m:
            url = m.group(1)
            if "google.com/url?q=" in url:
                # unwrap Google's redirect
                q = urllib.parse.parse_qs(url.split("?", 1)[1]).get("q")
                url = q[0] if q else url
            return html.unescape(url)
    desc = event.get("description")
    if desc:
        m = _ZOOM_URL_RE.search(desc)
        if m:
            return m.group(0)
    return None


def format_events(events: list[dict[str, Any]]) -> dict[str, Any]:
    """Shape raw API events for the model and the console renderer."""
    if not events:
        return {"event_count": 0, "events": [], "summary": "No upcoming events found."}
    out = []
    for ev in events:
        start = ev.get("start") or {}
        end = ev.get("end") or {}
        out.append({
            "summary": ev.get("summary") or "No title",
            "description": ev.get("description"),
            "location": ev.get("location"),
            "start": start.get("dateTime") or start.get("date"),
            "end": end.get("dateTime") or end.get("date"),
            "all_day": "dateTime" not in start,
            "hangout_link": ev.get("hangoutLink"),
            "zoom_link": extract_zoom_url(ev),
            "attendees": [a.get("email") for a in ev.get("attendees") or [] if a.get("email")],
        })
    return {"event_count": len(out), "events": out}


def _parse_iso(value: str, field_name: str) -> datetime:
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid {field_name} '{value}': expected ISO 8601")


@dataclass
class CalendarClient:
    credentials_file: str
    token_file: str
    timezone: str = "UTC"
    auth_port: int = 3000
    # False when stdout belongs to a protocol stream and no consent page may be opened
    interactive_auth: bool = True

    def _credentials(self):
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
        from google_auth_oauthlib.flow import InstalledAppFlow

        token_path = Path(self.token_file)
        creds = None
        if token_path.exists():
            creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
        if creds and creds.valid:
            return creds
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            if not Path(self.credentials_file).exists():
                raise UpstreamError(
                    f"Google credentials not found at {self.credentials_file}. Create an OAuth "
                    "client (Desktop app) in Google Cloud Console with the Calendar API enabled "
                    "and save the downloaded JSON there."
                )
            if not self.interactive_auth:
                raise UpstreamError(
                    "Google Calendar is not authorized yet. Run `helperbot calendar today` in a "
                    "terminal once to complete the consent flow."
                )
            flow = InstalledAppFlow.from_client_secrets_file(self.credentials_file, SCOPES)
            creds = flow.run_local_server(port=self.auth_port)
        token_path.write_text(creds.to_json(), encoding="utf-8")
        return creds

    def _service(self):
        from googleapiclient.discovery import build

        return build("calendar", "v3", credentials=self._credentials(), cache_discovery=False)

    def _call(self, request) -> dict[str, Any]:
        from googleapiclient.errors import HttpError

        try:
            return request.execute()
        except HttpError as e:
            raise UpstreamError(f"Google Calendar error: {e}")

    def list_events(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        def _iso(dt: datetime) -> str:
            # naive datetimes are local wall-clock times
            return (dt if dt.tzinfo else dt.astimezone()).isoformat()

        result = self._call(self._service().events().list(
            calendarId="primary",
            timeMin=_iso(start),
            timeMax=_iso(end),
            singleEvents=True,
            orderBy="startTime",
        ))
        return result.get("items", [])

    def today(self, now: date | None = None) -> dict[str, Any]:
        return format_events(self.list_events(*day_range(now or date.today())))

    def this_week(self, now: date | None = None) -> dict[str, Any]:
        return format_events(self.list_events(*week_range(now or date.today())))

    def add_event(
        self,
        summary: str,
        start_time: str,
        end_time: str,
        description: str | None = None,
        location: str | None = None,
        attendees: str | list[str] | None = None,
    ) -> dict[str, Any]:
        start = _parse_iso(start_time, "start_time")
        end = _parse_iso(end_time, "end_time")
        if (start.tzinfo is None) != (end.tzinfo is None):
            raise ValidationError("start_time and end_time must both include or both omit a timezone")
        if end <= start:
            raise ValidationError("end_time must be after start_time")
        if isinstance(attendees, str):
            attendees = attendees.split(",")
        body = {
            "summary": summary,
            "description": description,
            "location": location,
            "start": {"dateTime": start.isoformat(), "timeZone": self.timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": self.timezone},
            "attendees": [{"email": a.strip()} for a in attendees or [] if a.strip()],
        }
        created = self._call(self._service().events().insert(calendarId="primary", body=body))
        return {
            "summary": "Event created successfully.",
            "title": created.get("summary"),
            "html_link": created.get("htmlLink"),
            "event_id": created.get("id"),
        }
