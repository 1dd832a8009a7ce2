from __future__ import annotations

import json
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .models import Turn
from ..paths import data_dir


def _sessions_dir() -> Path:
    d = data_dir() / "sessions"
    d.mkdir(parents=True, exist_ok=True)
    return d


@dataclass
class SessionStore:
    """Append-only transcript for one front-end invocation.

    Turns are never edited, removed or reordered; the order is the model's memory.
    Nothing is pruned, so a long REPL run grows every request sent to the model.
    When `path` is set each turn is also appended to a jsonl file for `helperbot replay`.
    """

    session_id: str
    path: Path | None = None
    _turns: list[Turn] = field(default_factory=list)

    @staticmethod
    def in_memory(session_id: str | None = None) -> "SessionStore":
        return SessionStore(session_id=session_id or uuid.uuid4().hex[:12])

    @staticmethod
    def open(session_id: str | None = None) -> "SessionStore":
        sid = session_id or uuid.uuid4().hex[:12]
        path = _sessions_dir() / f"{sid}.jsonl"
        turns: list[Turn] = []
        if path.exists():
            for line in path.read_text(encoding="utf-8").splitlines():
                if not line.strip():
                    continue
                try:
                    turns.append(Turn.from_record(json.loads(line)))
                except Exception:
                    # partial trailing line from a process killed mid-write
                    continue
        return SessionStore(session_id=sid, path=path, _turns=turns)

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)
        if self.path is None:
            return
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(turn.to_record(), ensure_ascii=False, default=str) + "\n")
            f.flush()
            try:
                os.fsync(f.fileno())
            except OSError:
                # some filesystems do not support fsync
                pass

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def as_model_history(self) -> list[dict[str, Any]]:
        return [t.to_openai() for t in self._turns]
