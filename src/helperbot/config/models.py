from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..tools.permissions import PermissionRule

VCB_RATES_URL = "https://portal.vietcombank.com.vn/Usercontrols/TVPortal.TyGia/pXML.aspx"

DEFAULT_SYSTEM_PROMPT = """You are a helpful AI assistant for a software developer.
You have access to a set of tools to help the user with their tasks.
For any request that can be fulfilled by a tool, you MUST use the tool. Do not attempt to answer directly if a tool is available.
If the user asks to start or stop a Pomodoro timer, you MUST use the 'start_pomodoro' or 'stop_pomodoro' tools respectively.
If the user asks for a currency exchange rate (e.g., "USD to VND rate"), you MUST use the 'convert_currency' tool. If no amount is specified, assume an amount of 1.
If you use a tool, explain what you did and the result.
"""


def _num(obj: dict[str, Any], key: str, default: float) -> float:
    v = obj.get(key, default)
    return float(v) if isinstance(v, (int, float)) and not isinstance(v, bool) and v > 0 else default


def _str(obj: dict[str, Any], key: str, default: str) -> str:
    v = obj.get(key)
    return v.strip() if isinstance(v, str) and v.strip() else default


@dataclass
class PomodoroConfig:
    work_minutes: float = 25.0
    break_minutes: float = 5.0
    pid_file: str = ".pomodoro.pid"
    # how long `start` waits for the background process to write its marker
    ready_timeout: float = 10.0

    @staticmethod
    def from_obj(obj: Any) -> "PomodoroConfig":
        if not isinstance(obj, dict):
            return PomodoroConfig()
        d = PomodoroConfig()
        return PomodoroConfig(
            work_minutes=_num(obj, "work_minutes", d.work_minutes),
            break_minutes=_num(obj, "break_minutes", d.break_minutes),
            pid_file=_str(obj, "pid_file", d.pid_file),
            ready_timeout=_num(obj, "ready_timeout", d.ready_timeout),
        )


@dataclass
class CurrencyConfig:
    rates_url: str = VCB_RATES_URL
    timeout: float = 15.0

    @staticmethod
    def from_obj(obj: Any) -> "CurrencyConfig":
        if not isinstance(obj, dict):
            return CurrencyConfig()
        return CurrencyConfig(
            rates_url=_str(obj, "rates_url", VCB_RATES_URL),
            timeout=_num(obj, "timeout", 15.0),
        )


@dataclass
class GitHubConfig:
    api_url: str = "https://api.github.com"
    token_env: str = "GITHUB_TOKEN"
    default_target_branch: str = "develop"

    @staticmethod
    def from_obj(obj: Any) -> "GitHubConfig":
        if not isinstance(obj, dict):
            return GitHubConfig()
        d = GitHubConfig()
        return GitHubConfig(
            api_url=_str(obj, "api_url", d.api_url),
            token_env=_str(obj, "token_env", d.token_env),
            default_target_branch=_str(obj, "default_target_branch", d.default_target_branch),
        )


@dataclass
class CalendarConfig:
    credentials_file: str = ".google-credentials.json"
    token_file: str = ".google-token.json"
    timezone: str = "UTC"
    auth_port: int = 3000

    @staticmethod
    def from_obj(obj: Any) -> "CalendarConfig":
        if not isinstance(obj, dict):
            return CalendarConfig()
        d = CalendarConfig()
        port = obj.get("auth_port")
        return CalendarConfig(
            credentials_file=_str(obj, "credentials_file", d.credentials_file),
            token_file=_str(obj, "token_file", d.token_file),
            timezone=_str(obj, "timezone", d.timezone),
            auth_port=port if isinstance(port, int) and not isinstance(port, bool) and port >= 0 else d.auth_port,
        )


@dataclass
class BehaviorConfig:
    """Behavior config loaded from JSON (everything except the model provider)."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    confirm: list[PermissionRule] = field(default_factory=list)
    pomodoro: PomodoroConfig = field(default_factory=PomodoroConfig)
    currency: CurrencyConfig = field(default_factory=CurrencyConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)

    loaded_from: Path | None = None
