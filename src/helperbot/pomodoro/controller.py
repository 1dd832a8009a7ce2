from __future__ import annotations

import os
import signal
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol

from .marker import LivenessMarker, pid_alive
from ..config.models import PomodoroConfig
from ..errors import StateError
from ..events.store import EventStore


class SpawnedProcess(Protocol):
    pid: int

    def poll(self) -> int | None: ...


def spawn_detached(cmd: list[str]) -> SpawnedProcess:
    kwargs: dict[str, Any] = {}
    if os.name == "nt":
        kwargs["creationflags"] = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        # outlive the invoking terminal
        kwargs["start_new_session"] = True
    return subprocess.Popen(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        **kwargs,
    )


def terminate(pid: int) -> None:
    os.kill(pid, signal.SIGTERM)


@dataclass
class PomodoroController:
    """Foreground side of the timer: owns the marker, never the timer loop."""

    config: PomodoroConfig
    events: EventStore | None = None
    spawn: Callable[[list[str]], SpawnedProcess] = spawn_detached
    is_alive: Callable[[int], bool] = pid_alive
    kill: Callable[[int], None] = terminate
    sleep: Callable[[float], None] = time.sleep

    @property
    def marker(self) -> LivenessMarker:
        return LivenessMarker(Path(self.config.pid_file))

    def _record(self, event_type: str, data: dict[str, Any]) -> None:
        if self.events:
            self.events.append(event_type, data)

    def background_command(self) -> list[str]:
        return [
            sys.executable, "-m", "helperbot", "pomodoro", "run",
            "--pid-file", str(self.config.pid_file),
            "--work-minutes", str(self.config.work_minutes),
            "--break-minutes", str(self.config.break_minutes),
        ]

    def status(self) -> dict[str, Any]:
        marker = self.marker
        if not marker.exists():
            return {"state": "idle", "pid": None}
        pid = marker.read_pid()
        if pid is None or not self.is_alive(pid):
            return {"state": "stale", "pid": pid}
        return {"state": "running", "pid": pid}

    def start(self) -> dict[str, Any]:
        st = self.status()
        if st["state"] == "running":
            return {
                "started": False,
                "pid": st["pid"],
                "message": 'A Pomodoro timer is already running. Use "helperbot pomodoro stop" to end it.',
            }
        if st["state"] == "stale":
            # the previous process died without cleaning up
            self.marker.remove()
            self._record("pomodoro.stale_cleared", {"pid": st["pid"]})

        proc = self.spawn(self.background_command())
        self._wait_ready(proc)
        self._record("pomodoro.started", {"pid": proc.pid})
        return {
            "started": True,
            "pid": proc.pid,
            "work_minutes": self.config.work_minutes,
            "break_minutes": self.config.break_minutes,
            "message": f"Pomodoro timer started with PID: {proc.pid}.",
        }

    def _wait_ready(self, proc: SpawnedProcess) -> None:
        deadline = time.monotonic() + self.config.ready_timeout
        while True:
            if self.marker.read_pid() == proc.pid:
                return
            code = proc.poll()
            if code is not None:
                raise StateError(f"Pomodoro background process exited early (code {code}).")
            if time.monotonic() >= deadline:
                try:
                    self.kill(proc.pid)
                except ProcessLookupError:
                    pass
                raise StateError("Pomodoro background process did not become ready in time.")
            self.sleep(0.1)

    def stop(self) -> dict[str, Any]:
        st = self.status()
        if st["state"] == "idle":
            return {"stopped": False, "message": "No Pomodoro timer is running."}
        pid = st["pid"]
        if st["state"] == "stale":
            self.marker.remove()
            self._record("pomodoro.stale_cleared", {"pid": pid})
            raise StateError(
                f"Pomodoro marker pointed at PID {pid}, which is no longer running; "
                "the stale marker was removed."
            )
        try:
            self.kill(pid)
        except ProcessLookupError:
            # exited between the liveness check and the signal
            pass
        finally:
            self.marker.remove()
        self._record("pomodoro.stopped_by_user", {"pid": pid})
        return {"stopped": True, "pid": pid, "message": "Pomodoro timer stopped."}
