from __future__ import annotations

import json
import shutil
import sys
from dataclasses import dataclass
from typing import Protocol

from ..errors import UpstreamError
from ..util.subprocess import run_cmd

DEFAULT_TITLE = "Bot Notification"


class Notifier(Protocol):
    def notify(self, message: str, title: str = DEFAULT_TITLE) -> None: ...


@dataclass
class DesktopNotifier:
    """Desktop notifications through the platform's own command-line tool."""

    platform: str = sys.platform
    sound: bool = True

    def _command(self, message: str, title: str) -> list[str]:
        if self.platform == "darwin":
            # json.dumps gives a double-quoted string AppleScript accepts
            script = f"display notification {json.dumps(message)} with title {json.dumps(title)}"
            if self.sound:
                script += ' sound name "Glass"'
            return ["osascript", "-e", script]
        if self.platform.startswith("linux"):
            if not shutil.which("notify-send"):
                raise UpstreamError("Notification error: notify-send is not installed")
            return ["notify-send", "--app-name=helperbot", title, message]
        raise UpstreamError(f"Notification error: unsupported platform {self.platform}")

    def notify(self, message: str, title: str = DEFAULT_TITLE) -> None:
        res = run_cmd(self._command(message, title or DEFAULT_TITLE), timeout=15)
        if not res.ok:
            raise UpstreamError(f"Notification error: {res.stderr.strip() or res.returncode}")
