from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatch
from typing import Any, Callable, Literal

from rich.console import Console
from rich.prompt import Confirm

Decision = Literal["allow", "ask", "deny"]

console = Console()


@dataclass
class PermissionRule:
    """A single confirmation rule; `match` is an fnmatch pattern on the tool name."""

    match: str
    decision: Decision

    @staticmethod
    def from_obj(obj: Any) -> "PermissionRule | None":
        if not isinstance(obj, dict):
            return None
        m = obj.get("match")
        d = obj.get("decision")
        if not isinstance(m, str) or d not in {"allow", "ask", "deny"}:
            return None
        return PermissionRule(match=m, decision=d)


@dataclass
class PermissionConfig:
    default: Decision = "ask"
    rules: list[PermissionRule] = field(default_factory=list)

    def apply_rules(self, rules: list[PermissionRule]) -> None:
        # later rules win
        self.rules.extend(rules)

    def decide(self, tool_name: str) -> Decision:
        decision: Decision | None = None
        for rule in self.rules:
            if fnmatch(tool_name, rule.match):
                decision = rule.decision
        return decision or self.default


def _ask(tool_name: str, args_preview: str) -> bool:
    console.print(
        f"\n[yellow]Bot: I'm planning to use the tool[/yellow] [bold]{tool_name}[/bold] "
        f"[yellow]with arguments:[/yellow]\n[cyan]{args_preview}[/cyan]"
    )
    return Confirm.ask("Do you want to proceed with this tool execution?", default=True)


class PermissionGate:
    """Decides whether a model-requested call may run (the ConfirmationPending state)."""

    def __init__(
        self,
        config: PermissionConfig,
        auto_approve: bool = False,
        ask: Callable[[str, str], bool] = _ask,
    ):
        self.config = config
        self.auto_approve = auto_approve
        self._ask = ask

    def decide(self, tool_name: str, args_preview: str) -> bool:
        decision = self.config.decide(tool_name)
        if decision == "allow":
            return True
        if decision == "deny":
            console.print(f"[red]Denied[/red] tool {tool_name} by confirmation rules")
            return False
        if self.auto_approve:
            return True
        return self._ask(tool_name, args_preview)
