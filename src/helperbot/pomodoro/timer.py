from __future__ import annotations

import os
import signal
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from .marker import LivenessMarker
from ..errors import ToolError
from ..events.store import EventStore
from ..services.notify import Notifier


class Phase(str, Enum):
    IDLE = "idle"
    WORKING = "working"
    ON_BREAK = "on_break"


@dataclass
class PomodoroState:
    session_count: int = 0
    phase: Phase = Phase.IDLE

    def begin_work(self) -> None:
        self.session_count += 1
        self.phase = Phase.WORKING

    def begin_break(self) -> None:
        if self.phase is not Phase.WORKING:
            raise ValueError(f"cannot start a break from {self.phase.value}")
        self.phase = Phase.ON_BREAK

    def reset(self) -> None:
        self.phase = Phase.IDLE


@dataclass
class PomodoroTimer:
    """The Working/OnBreak loop that runs inside the detached background process."""

    marker: LivenessMarker
    notifier: Notifier
    work_seconds: float
    break_seconds: float
    state: PomodoroState = field(default_factory=PomodoroState)
    events: EventStore | None = None
    sleep: Callable[[float], None] = time.sleep
    # None runs until stopped; tests bound it
    max_sessions: int | None = None

    def _notify(self, message: str, title: str) -> None:
        try:
            self.notifier.notify(message, title)
        except ToolError as e:
            # a missing notification must not end the timer
            if self.events:
                self.events.append("pomodoro.notify_failed", {"error": str(e), "title": title})

    def _record(self, event_type: str) -> None:
        if self.events:
            self.events.append(
                event_type,
                {"session": self.state.session_count, "phase": self.state.phase.value, "pid": os.getpid()},
            )

    def run(self) -> None:
        pid = os.getpid()
        # readiness: the foreground `start` waits for this marker
        self.marker.write(pid)
        try:
            while self.max_sessions is None or self.state.session_count < self.max_sessions:
                self.state.begin_work()
                self._record("pomodoro.work")
                self._notify(f"Session #{self.state.session_count}. Time to focus!", "Pomodoro Started")
                self.sleep(self.work_seconds)

                self.state.begin_break()
                self._record("pomodoro.break")
                self._notify("Work session complete. Time for a break!", "Pomodoro Break")
                self.sleep(self.break_seconds)

                self._notify("Break over. Time for the next session!", "Pomodoro")
        finally:
            self.state.reset()
            self._record("pomodoro.stopped")
            self.marker.remove_if_owner(pid)


def _exit_on_sigterm(signum, frame) -> None:
    raise SystemExit(0)


def run_background(timer: PomodoroTimer) -> None:
    """Entry point of `helperbot pomodoro run`; SIGTERM unwinds through run()'s cleanup."""
    signal.signal(signal.SIGTERM, _exit_on_sigterm)
    timer.run()
