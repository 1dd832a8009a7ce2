from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # exists, owned by someone else
        return True
    return True


@dataclass
class LivenessMarker:
    """Single-line file holding the pid of the background timer process.

    Present means "a timer was started"; whether it is still running is checked
    against the pid, because a killed process cannot remove its own marker.
    """

    path: Path

    def exists(self) -> bool:
        return self.path.exists()

    def read_pid(self) -> int | None:
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def write(self, pid: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(f"{pid}\n", encoding="utf-8")
        os.replace(tmp, self.path)

    def remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    def remove_if_owner(self, pid: int) -> None:
        if self.read_pid() == pid:
            self.remove()
