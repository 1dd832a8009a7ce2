from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from rich.console import Console
from rich.panel import Panel

from .events.store import EventStore
from .llm.base import ModelClient
from .session.models import AssistantTurn, Turn
from .session.store import SessionStore
from .tools.base import ToolCall, ToolResult
from .tools.executor import ToolExecutor
from .tools.permissions import PermissionGate

console = Console()

CANCELLED = "Tool execution cancelled by user."

MAX_ATTEMPTS = 3


def catalog_to_openai(executor: ToolExecutor) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": d.name,
                "description": d.description,
                "parameters": d.to_json_schema(),
            },
        }
        for d in executor.registry.list_definitions()
    ]


def args_preview(args: dict[str, Any]) -> str:
    try:
        s = json.dumps(args, ensure_ascii=False, indent=2)
    except (TypeError, ValueError):
        s = str(args)
    if len(s) > 2000:
        s = s[:2000] + "\n... (truncated)"
    return s


def _result_payload(res: ToolResult) -> str:
    return json.dumps(res.to_dict(), ensure_ascii=False, default=str)


@dataclass
class DispatchStep:
    call: ToolCall
    # None when the user declined the call
    result: ToolResult | None
    cancelled: bool = False


@dataclass
class TurnOutcome:
    """What one user utterance produced."""

    reply: str | None = None
    steps: list[DispatchStep] = field(default_factory=list)
    # set when the model could not be reached after retries
    error: str | None = None

    @property
    def first_result(self) -> ToolResult | None:
        return self.steps[0].result if self.steps else None


class ModelUnavailable(RuntimeError):
    pass


@dataclass
class Dispatcher:
    """The tool-dispatch loop shared by `chat` and `interactive`.

    Batch policy (`run_batch`): act on the first requested call only, no
    confirmation, and hand the raw ToolResult back instead of a follow-up.
    Interactive policy (`run_interactive`): every call goes through the
    confirmation gate, results are fed back to the model for a reply.
    """

    model: ModelClient
    executor: ToolExecutor
    session: SessionStore
    system_prompt: str
    permissions: PermissionGate | None = None
    events: EventStore | None = None
    trace: bool = False
    max_steps: int = 8
    sleep: Callable[[float], None] = time.sleep

    @staticmethod
    def from_context(ctx) -> "Dispatcher":
        if ctx.provider is None:
            raise RuntimeError("No model provider configured for this command.")
        return Dispatcher(
            model=ctx.provider,
            executor=ctx.executor,
            session=ctx.session,
            system_prompt=ctx.behavior.system_prompt,
            permissions=ctx.permissions,
            events=ctx.events,
            trace=ctx.trace,
        )

    def _record(self, event_type: str, data: dict[str, Any]) -> None:
        if self.events:
            self.events.append(event_type, data)

    def _messages(self) -> list[dict[str, Any]]:
        return [{"role": "system", "content": self.system_prompt}, *self.session.as_model_history()]

    def _ask_model(self, step: int) -> AssistantTurn:
        messages = self._messages()
        tools = catalog_to_openai(self.executor)
        self._record(
            "llm.request",
            {
                "step": step,
                "model": getattr(self.model, "model", ""),
                "messages_count": len(messages),
                "tools_count": len(tools),
            },
        )

        # transient provider failures get a few retries
        last_err: Exception | None = None
        turn: AssistantTurn | None = None
        elapsed_ms = 0
        for attempt in range(MAX_ATTEMPTS):
            try:
                t0 = time.perf_counter()
                turn = self.model.chat(messages, tools=tools)
                elapsed_ms = int((time.perf_counter() - t0) * 1000)
                last_err = None
                break
            except Exception as e:
                last_err = e
                self._record("llm.error", {"step": step, "attempt": attempt + 1, "error": str(e)[:2000]})
                if attempt + 1 < MAX_ATTEMPTS:
                    self.sleep(0.5 * (2 ** attempt))
        if last_err is not None or turn is None:
            raise ModelUnavailable(f"LLM call failed after retries: {last_err}")

        turn.tool_calls = [
            tc if tc.id else replace(tc, id=f"call_{uuid.uuid4().hex[:12]}") for tc in turn.tool_calls
        ]
        self._record(
            "llm.response",
            {
                "step": step,
                "elapsed_ms": elapsed_ms,
                "text": (turn.text or "")[:4000],
                "tool_calls": [{"id": tc.id, "name": tc.name, "arguments": tc.arguments} for tc in turn.tool_calls],
            },
        )

        if self.trace:
            console.print(
                Panel.fit(
                    json.dumps(messages, ensure_ascii=False, indent=2, default=str)[:4000],
                    title="LLM INPUT (messages)",
                    border_style="cyan",
                )
            )
            console.print(
                Panel.fit(
                    json.dumps(
                        {
                            "text": turn.text,
                            "tool_calls": [{"name": tc.name, "arguments": tc.arguments} for tc in turn.tool_calls],
                        },
                        ensure_ascii=False,
                        indent=2,
                    )[:4000],
                    title="LLM OUTPUT",
                    border_style="magenta",
                )
            )
        return turn

    def _fail(self, outcome: TurnOutcome, err: ModelUnavailable) -> TurnOutcome:
        outcome.error = str(err)
        outcome.reply = f"❌ {err}"
        self.session.append(Turn.assistant(outcome.reply))
        return outcome

    def run_batch(self, prompt: str) -> TurnOutcome:
        outcome = TurnOutcome()
        self.session.append(Turn.user(prompt))
        try:
            turn = self._ask_model(0)
        except ModelUnavailable as e:
            return self._fail(outcome, e)

        if not turn.tool_calls:
            outcome.reply = turn.text or ""
            self.session.append(Turn.assistant(outcome.reply))
            return outcome

        # one call per batch turn; the rest are dropped before they reach the transcript
        call = turn.tool_calls[0]
        self.session.append(Turn.tool_request([call]))
        res = self.executor.execute(call)
        self.session.append(Turn.tool_response(call, _result_payload(res)))
        outcome.steps.append(DispatchStep(call=call, result=res))
        return outcome

    def _confirm(self, call: ToolCall) -> bool:
        # unknown tools are reported, not confirmed
        if call.name not in self.executor.registry:
            return True
        if self.permissions is None:
            return True
        return self.permissions.decide(call.name, args_preview(call.arguments))

    def run_interactive(self, utterance: str) -> TurnOutcome:
        outcome = TurnOutcome()
        self.session.append(Turn.user(utterance))

        for step in range(self.max_steps):
            try:
                turn = self._ask_model(step)
            except ModelUnavailable as e:
                return self._fail(outcome, e)

            if not turn.tool_calls:
                outcome.reply = turn.text or ""
                self.session.append(Turn.assistant(outcome.reply))
                return outcome

            self.session.append(Turn.tool_request(turn.tool_calls))
            any_ran = False
            for call in turn.tool_calls:
                if not self._confirm(call):
                    self._record("tool.cancelled", {"step": step, "tool": call.name, "tool_call_id": call.id})
                    # every requested call still gets an answer in the transcript
                    self.session.append(Turn.tool_response(call, _result_payload(ToolResult.failure(CANCELLED))))
                    outcome.steps.append(DispatchStep(call=call, result=None, cancelled=True))
                    continue
                res = self.executor.execute(call)
                self.session.append(Turn.tool_response(call, _result_payload(res)))
                outcome.steps.append(DispatchStep(call=call, result=res))
                any_ran = True

            if not any_ran:
                # declined calls end the turn without asking the model again
                outcome.reply = "Tool execution cancelled."
                self.session.append(Turn.assistant(outcome.reply))
                return outcome

        outcome.reply = f"Stopped after {self.max_steps} tool rounds without a final answer."
        self.session.append(Turn.assistant(outcome.reply))
        return outcome
