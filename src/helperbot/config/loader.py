from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .models import (
    BehaviorConfig,
    CalendarConfig,
    CurrencyConfig,
    GitHubConfig,
    PomodoroConfig,
)
from ..paths import config_dir
from ..tools.permissions import PermissionRule


def _candidate_paths(cwd: Path) -> list[Path]:
    # project-level (higher priority)
    return [
        cwd / ".helperbot.json",
        cwd / "helperbot.json",
    ]


def _global_candidate_paths() -> list[Path]:
    return [config_dir() / "helperbot.json"]


def _load_json(p: Path) -> dict[str, Any] | None:
    try:
        obj = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return obj if isinstance(obj, dict) else None


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge_dicts(out[k], v)
        else:
            out[k] = v
    return out


def load_behavior_config(*, cwd: Path, explicit_path: Path | None = None) -> BehaviorConfig:
    """Load behavior config.

    Merge order: global < project < explicit_path. An explicit path that does not
    exist is an error; missing global/project files are not.
    """
    merged: dict[str, Any] = {}
    loaded_from: Path | None = None

    for p in _global_candidate_paths():
        if p.is_file():
            obj = _load_json(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from = p

    for p in _candidate_paths(cwd):
        if p.is_file():
            obj = _load_json(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from = p
                break  # first match wins for project-level

    if explicit_path is not None:
        p = explicit_path.expanduser().resolve()
        if not p.is_file():
            raise FileNotFoundError(f"Behavior config not found: {p}")
        obj = _load_json(p)
        if obj is None:
            raise ValueError(f"Behavior config must be a JSON object: {p}")
        merged = _merge_dicts(merged, obj)
        loaded_from = p

    cfg = BehaviorConfig()
    cfg.loaded_from = loaded_from

    sp = merged.get("system_prompt")
    if isinstance(sp, str) and sp.strip():
        cfg.system_prompt = sp

    rules = merged.get("confirm", [])
    if isinstance(rules, list):
        for it in rules:
            r = PermissionRule.from_obj(it)
            if r is not None:
                cfg.confirm.append(r)

    cfg.pomodoro = PomodoroConfig.from_obj(merged.get("pomodoro"))
    cfg.currency = CurrencyConfig.from_obj(merged.get("currency"))
    cfg.github = GitHubConfig.from_obj(merged.get("github"))
    cfg.calendar = CalendarConfig.from_obj(merged.get("calendar"))

    # relative file settings are relative to the project directory
    cfg.pomodoro.pid_file = str(cwd / Path(cfg.pomodoro.pid_file).expanduser())
    cfg.calendar.credentials_file = str(cwd / Path(cfg.calendar.credentials_file).expanduser())
    cfg.calendar.token_file = str(cwd / Path(cfg.calendar.token_file).expanduser())
    return cfg
