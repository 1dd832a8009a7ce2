from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from ..paths import data_dir


def _events_dir() -> Path:
    d = data_dir() / "events"
    d.mkdir(parents=True, exist_ok=True)
    return d


@dataclass
class Event:
    ts: float
    type: str
    data: dict[str, Any]


@dataclass
class EventStore:
    """Append-only jsonl event log, one file per session.

    Readers skip lines they cannot parse, so a crash mid-write only loses that event.
    """

    session_id: str
    path: Path

    @staticmethod
    def open(session_id: str) -> "EventStore":
        path = _events_dir() / f"{session_id}.jsonl"
        return EventStore(session_id=session_id, path=path)

    def append(self, event_type: str, data: dict[str, Any]) -> None:
        ev = Event(ts=time.time(), type=event_type, data=data)
        with self.path.open("a", encoding="utf-8") as f:
            # tool payloads may carry datetimes or other non-JSON values
            f.write(json.dumps(ev.__dict__, ensure_ascii=False, default=str) + "\n")

    def iter_events(self) -> Iterable[Event]:
        if not self.path.exists():
            return []
        out: list[Event] = []
        for line in self.path.read_text(encoding="utf-8", errors="replace").splitlines():
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
                out.append(Event(ts=float(obj.get("ts", 0.0)), type=str(obj.get("type")), data=obj.get("data") or {}))
            except Exception:
                continue
        return out

    def of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.iter_events() if e.type == event_type]
