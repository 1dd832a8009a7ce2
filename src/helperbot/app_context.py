from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config.loader import load_behavior_config
from .config.models import BehaviorConfig
from .events.store import EventStore
from .llm.base import ModelClient
from .llm.factory import resolve_provider
from .pomodoro.controller import PomodoroController
from .services.calendar import CalendarClient
from .services.currency import RateSource, VcbRateSource
from .services.git import GitRepo
from .services.github import GitHubClient
from .services.notify import DesktopNotifier, Notifier
from .services.pull_requests import PullRequestService
from .session.store import SessionStore
from .tools.builtin import register_builtin_tools
from .tools.executor import ToolExecutor
from .tools.permissions import PermissionConfig, PermissionGate
from .tools.registry import ToolRegistry


@dataclass
class AppContext:
    """Everything one process needs, built once and passed down explicitly."""

    cwd: Path
    behavior: BehaviorConfig
    session: SessionStore
    events: EventStore
    tools: ToolRegistry
    executor: ToolExecutor
    permissions: PermissionGate
    rates: RateSource
    notifier: Notifier
    pull_requests: PullRequestService
    calendar: CalendarClient
    pomodoro: PomodoroController
    # only the conversational front ends need a model
    provider: ModelClient | None = None
    trace: bool = False

    def close(self) -> None:
        self.events.append("session.closed", {"turns": len(self.session)})

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @staticmethod
    def from_env(
        cwd: Path,
        *,
        session_id: str | None = None,
        persist_session: bool = True,
        provider: str | None = None,
        model: str | None = None,
        config_path: Optional[Path] = None,
        with_model: bool = False,
        auto_approve: bool = False,
        behavior_config: Path | None = None,
        trace: bool = False,
        interactive_auth: bool = True,
    ) -> "AppContext":
        behavior = load_behavior_config(cwd=cwd, explicit_path=behavior_config)

        provider_client = None
        if with_model:
            if config_path:
                config_path = config_path.expanduser().resolve()
            provider_client = resolve_provider(provider=provider, yaml_path=config_path, model=model)

        session = SessionStore.open(session_id) if persist_session else SessionStore.in_memory(session_id)
        events = EventStore.open(session.session_id)

        rates = VcbRateSource(url=behavior.currency.rates_url, timeout=behavior.currency.timeout)
        notifier = DesktopNotifier()
        pull_requests = PullRequestService(
            git=GitRepo(cwd=str(cwd)),
            github=GitHubClient(
                token=os.getenv(behavior.github.token_env, ""),
                api_url=behavior.github.api_url,
            ),
            default_target=behavior.github.default_target_branch,
        )
        calendar = CalendarClient(
            credentials_file=behavior.calendar.credentials_file,
            token_file=behavior.calendar.token_file,
            timezone=behavior.calendar.timezone,
            auth_port=behavior.calendar.auth_port,
            interactive_auth=interactive_auth,
        )
        pomodoro = PomodoroController(config=behavior.pomodoro, events=events)

        tools = ToolRegistry()
        register_builtin_tools(
            tools,
            rates=rates,
            notifier=notifier,
            pull_requests=pull_requests,
            calendar=calendar,
            pomodoro=pomodoro,
        )

        perm_cfg = PermissionConfig()
        perm_cfg.apply_rules(behavior.confirm)
        permissions = PermissionGate(config=perm_cfg, auto_approve=auto_approve)

        return AppContext(
            cwd=cwd,
            behavior=behavior,
            session=session,
            events=events,
            tools=tools,
            executor=ToolExecutor(registry=tools, events=events),
            permissions=permissions,
            rates=rates,
            notifier=notifier,
            pull_requests=pull_requests,
            calendar=calendar,
            pomodoro=pomodoro,
            provider=provider_client,
            trace=trace,
        )
