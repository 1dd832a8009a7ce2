from __future__ import annotations
from typing import Any, Protocol

from ..session.models import AssistantTurn


class ModelClient(Protocol):
    """Maps a message list plus a tool catalog to either text or tool calls."""

    model: str

    def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AssistantTurn: ...
