from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

from ..session.models import AssistantTurn
from ..tools.base import ToolCall


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw or "{}")
    except json.JSONDecodeError:
        # best-effort: the executor reports the missing parameters
        return {}
    return parsed if isinstance(parsed, dict) else {}


@dataclass
class OpenAICompatProvider:
    """
    Minimal OpenAI-compatible Chat Completions client.
    Works with OpenAI and compatible gateways (Gemini's OpenAI endpoint, OpenRouter, vLLM, LM Studio, ...).
    """
    model: str
    base_url: str
    api_key: str
    provider_name: str = "openai"
    temperature: float = 0.2
    timeout: int = 120

    def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AssistantTurn:
        if not self.api_key:
            raise RuntimeError(
                "Missing API key. Set HELPERBOT_API_KEY in helperbot.yaml "
                "(a ${ENV_VAR} placeholder is expanded from the environment)."
            )

        url = self.base_url.rstrip("/") + "/chat/completions"
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"

        req = urllib.request.Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace") if hasattr(e, "read") else ""
            raise RuntimeError(f"Provider HTTPError {e.code}: {e.reason}\n{body}")
        except urllib.error.URLError as e:
            raise RuntimeError(f"Provider URLError: {e}")

        return parse_completion(json.loads(raw))


def parse_completion(obj: dict[str, Any]) -> AssistantTurn:
    """Turn a chat-completions response body into an AssistantTurn."""
    try:
        msg = obj["choices"][0]["message"]
    except (KeyError, IndexError, TypeError):
        raise RuntimeError(f"Provider returned an unexpected payload: {str(obj)[:500]}")

    turn = AssistantTurn(text=msg.get("content") or "")
    for tc in msg.get("tool_calls") or []:
        fn = tc.get("function") or {}
        turn.tool_calls.append(
            ToolCall(
                id=str(tc.get("id") or ""),
                name=str(fn.get("name") or ""),
                arguments=_parse_arguments(fn.get("arguments")),
            )
        )
    return turn
