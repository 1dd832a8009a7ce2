from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from .app_context import AppContext
from .dispatch import Dispatcher, TurnOutcome
from .errors import ToolError
from .events.store import EventStore
from .llm.factory import DEFAULT_CONFIG
from .session.store import SessionStore
from .tools.base import ToolCall

app = typer.Typer(add_completion=False, help="helperbot: a developer's command-line assistant.")
pr_app = typer.Typer(add_completion=False, help="GitHub pull requests for the current repository.")
calendar_app = typer.Typer(add_completion=False, help="Google Calendar meetings.")
pomodoro_app = typer.Typer(add_completion=False, help="Background Pomodoro timer.")
app.add_typer(pr_app, name="pr")
app.add_typer(calendar_app, name="calendar")
app.add_typer(pomodoro_app, name="pomodoro")

console = Console()
# `serve` owns stdout for the protocol
err_console = Console(stderr=True)


@dataclass
class GlobalOptions:
    cwd: Path
    behavior_config: Path | None = None


def _resolve_cwd(cwd: Path | None) -> Path:
    cwd = Path(str(cwd or Path.cwd())).expanduser()
    cwd = (Path.cwd() / cwd).resolve() if not cwd.is_absolute() else cwd.resolve()
    if not cwd.is_dir():
        raise typer.BadParameter(f"--cwd must be an existing directory, got: {cwd}")
    return cwd


def _fail(message: str, *, stderr: bool = False) -> NoReturn:
    (err_console if stderr else console).print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    cwd: Path = typer.Option(None, "--cwd", help="Project directory (git repository, pid file, calendar tokens). Defaults to current directory."),
    behavior_config: Path = typer.Option(None, "--behavior-config", help="Behavior JSON (helperbot.json) path."),
):
    ctx.obj = GlobalOptions(cwd=_resolve_cwd(cwd), behavior_config=behavior_config)


def _context(
    ctx: typer.Context,
    *,
    with_model: bool = False,
    provider: str | None = None,
    model: str | None = None,
    config: Path | None = None,
    session: str | None = None,
    persist_session: bool = False,
    yes: bool = False,
    trace: bool = False,
    stderr: bool = False,
    interactive_auth: bool = True,
) -> AppContext:
    opts: GlobalOptions = ctx.obj
    try:
        return AppContext.from_env(
            opts.cwd,
            session_id=session,
            persist_session=persist_session,
            provider=provider,
            model=model,
            config_path=config,
            with_model=with_model,
            auto_approve=yes,
            behavior_config=opts.behavior_config,
            trace=trace,
            interactive_auth=interactive_auth,
        )
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        _fail(str(e), stderr=stderr)


def _run_tool(actx: AppContext, name: str, args: dict[str, Any]) -> Any:
    """Direct commands go through the executor too, so they share its failure handling and events."""
    res = actx.executor.execute(ToolCall(name=name, arguments=args))
    if not res.ok:
        _fail(res.error or "Unknown error")
    return res.data


def _call_tool(ctx: typer.Context, name: str, args: dict[str, Any]) -> Any:
    with _context(ctx) as actx:
        return _run_tool(actx, name, args)


def _json_panel(data: Any, title: str, style: str = "green") -> Panel:
    return Panel.fit(json.dumps(data, ensure_ascii=False, indent=2, default=str)[:8000], title=title, border_style=style)


def _header(actx: AppContext, provider_name: str) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_row("📁 [bold green]cwd[/bold green]", f"[bright_cyan]{actx.cwd}[/bright_cyan]")
    table.add_row("🆔 [bold green]session[/bold green]", f"[bright_cyan]{actx.session.session_id}[/bright_cyan]")
    table.add_row("🔌 [bold green]provider[/bold green]", f"[bright_cyan]{provider_name}[/bright_cyan]")
    table.add_row("🧠 [bold green]model[/bold green]", f"[bright_cyan]{actx.provider.model if actx.provider else '-'}[/bright_cyan]")
    table.add_row("🧰 [bold green]tools[/bold green]", f"[bright_cyan]{len(actx.tools)}[/bright_cyan]")
    table.add_row("⚙️ [bold green]behavior_config[/bold green]", f"[bright_cyan]{actx.behavior.loaded_from or '(none)'}[/bright_cyan]")
    console.print(
        Align.center(
            Panel(table, title="[bold magenta]helperbot[/bold magenta]", border_style="bright_blue")
        )
    )


def _render_steps(outcome: TurnOutcome) -> None:
    for step in outcome.steps:
        if step.cancelled:
            console.print(f"[yellow]Tool execution cancelled:[/yellow] {step.call.name}")
        elif step.result is not None and not step.result.ok:
            console.print(f"[red]Tool {step.call.name} failed:[/red] {step.result.error}")


# ---------------------------------------------------------------- front ends


@app.command()
def chat(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="What to ask the assistant."),
    provider: str = typer.Option(None, "--provider", help="Provider name from the YAML (default: default_provider)."),
    model: str = typer.Option(None, "--model", help="Override the provider's model."),
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", help="Provider YAML path (default: ./helperbot.yaml)."),
    trace: bool = typer.Option(False, "--trace", help="Print LLM input/output panels."),
):
    """One-shot: act on the first tool the model asks for and print its raw result."""
    actx = _context(ctx, with_model=True, provider=provider, model=model, config=config, trace=trace)
    try:
        outcome = Dispatcher.from_context(actx).run_batch(prompt)
    finally:
        actx.close()

    if outcome.error:
        _fail(outcome.reply or outcome.error)
    if outcome.steps:
        step = outcome.steps[0]
        console.print(f"[bold]Tool:[/bold] {step.call.name}")
        console.print_json(json.dumps(step.result.to_dict(), ensure_ascii=False, default=str))
        if not step.result.ok:
            raise typer.Exit(code=1)
        return
    console.print(outcome.reply or "")


@app.command()
def interactive(
    ctx: typer.Context,
    provider: str = typer.Option(None, "--provider", help="Provider name from the YAML (default: default_provider)."),
    model: str = typer.Option(None, "--model", help="Override the provider's model."),
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", help="Provider YAML path (default: ./helperbot.yaml)."),
    session: str = typer.Option(None, "--session", help="Session id to continue (default creates new)."),
    yes: bool = typer.Option(False, "--yes", help="Run tools without asking for confirmation."),
    trace: bool = typer.Option(False, "--trace", help="Print LLM input/output panels."),
):
    """Conversational REPL: tools run after confirmation and the model explains the results."""
    actx = _context(
        ctx, with_model=True, provider=provider, model=model, config=config,
        session=session, persist_session=True, yes=yes, trace=trace,
    )
    dispatcher = Dispatcher.from_context(actx)
    _header(actx, provider or "(default)")
    console.print('Type "exit" or "quit" to leave.\n')

    try:
        while True:
            try:
                user = typer.prompt("You")
            except (EOFError, KeyboardInterrupt, typer.Abort):
                break
            if user.strip().lower() in {"exit", "quit"}:
                break
            if not user.strip():
                continue
            outcome = dispatcher.run_interactive(user)
            _render_steps(outcome)
            style = "red" if outcome.error else "bold"
            console.print(f"\n[{style}]Bot:[/{style}] {outcome.reply or ''}\n")
    finally:
        actx.close()
    console.print("Goodbye!")


@app.command()
def serve(ctx: typer.Context):
    """Run the tool catalog as an MCP server over stdio."""
    from .mcp.server import serve as serve_stdio

    # stdout carries the protocol, so no OAuth consent page may print there
    actx = _context(ctx, stderr=True, interactive_auth=False)
    try:
        serve_stdio(actx.executor)
    except KeyboardInterrupt:
        pass
    finally:
        actx.close()


@app.command()
def tools(ctx: typer.Context):
    """List the tools the model can call."""
    with _context(ctx) as actx:
        definitions = actx.tools.list_definitions()
    table = Table(title="Tools")
    table.add_column("name", style="bold cyan")
    table.add_column("parameters")
    table.add_column("description")
    for d in definitions:
        params = ", ".join(f"{k}{'*' if p.required else ''}: {p.type}" for k, p in d.parameters.items())
        table.add_row(d.name, params or "-", d.description)
    console.print(table)


# ---------------------------------------------------------------- direct commands


@app.command()
def currency(
    ctx: typer.Context,
    amount: float = typer.Argument(1.0, help="Amount to convert."),
    from_currency: str = typer.Option("USD", "--from", "-f", help="Source currency code."),
    to_currency: str = typer.Option("VND", "--to", "-t", help="Target currency code."),
):
    """Convert between currencies with Vietcombank rates."""
    data = _call_tool(
        ctx,
        "convert_currency",
        {"amount": amount, "from_currency": from_currency, "to_currency": to_currency},
    )
    result = float(data["result"])
    console.print(
        f"[green]{data['amount']:,} {data['from']} = {result:,.2f} {data['to']}[/green] "
        f"[dim](rate {data['rate']:,})[/dim]"
    )


@app.command()
def jwt(ctx: typer.Context, token: str = typer.Argument(..., help="JWT to decode.")):
    """Decode a JWT without verifying its signature."""
    data = _call_tool(ctx, "decode_jwt", {"token": token})
    console.print(_json_panel(data["header"], "Header", "cyan"))
    console.print(_json_panel(data["payload"], "Payload", "magenta"))


@app.command()
def notify(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="Notification text."),
    title: str = typer.Option(None, "--title", help="Notification title."),
):
    """Send a desktop notification."""
    data = _call_tool(ctx, "send_notification", {"message": message, "title": title})
    console.print(f"[green]{data['message']}[/green]")


@app.command()
def schedule(ctx: typer.Context):
    """Notify the USD sell rate on the 25th of every month at 09:00."""
    from .services.schedule import RATE_DAY, RATE_HOUR, RATE_MINUTE, RateReminder, run_scheduler

    with _context(ctx) as actx:
        reminder = RateReminder(rates=actx.rates, notifier=actx.notifier, events=actx.events)
        console.print(
            f"[green]Scheduler started.[/green] Next reminder: day {RATE_DAY} at "
            f"{RATE_HOUR:02d}:{RATE_MINUTE:02d}. Press Ctrl+C to stop."
        )
        try:
            run_scheduler(reminder)
        except (KeyboardInterrupt, SystemExit):
            console.print("Scheduler stopped.")


# ---------------------------------------------------------------- pr


def _pr_table(prs: list[dict[str, Any]], title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", style="bold")
    table.add_column("title")
    table.add_column("author")
    table.add_column("url", style="cyan")
    for pr in prs:
        table.add_row(str(pr.get("number")), pr.get("title") or "", pr.get("author") or "", pr.get("url") or "")
    return table


@pr_app.command("create")
def pr_create(
    ctx: typer.Context,
    target: str = typer.Option(None, "--target", "-t", help="Branch to merge into (default from config: develop)."),
    source: str = typer.Option(None, "--source", "-s", help="Branch to merge from (default: current branch)."),
    title: str = typer.Option(None, "--title", help="Title (default derived from the branch name)."),
    body: str = typer.Option(None, "--body", help="Description; ';' separates checklist items."),
    reviewers: str = typer.Option(None, "--reviewers", "-r", help="Comma-separated reviewer logins."),
    list_reviewers: bool = typer.Option(False, "--list", help="Only list available reviewers."),
    yes: bool = typer.Option(False, "--yes", help="Do not ask for confirmation."),
):
    """Push the current branch and open a pull request."""
    actx = _context(ctx)
    service = actx.pull_requests
    try:
        if list_reviewers:
            console.print("[bold]Available reviewers:[/bold]")
            for r in service.candidate_reviewers():
                console.print(f"- {r}")
            return
        draft = service.draft(source=source, target=target, title=title, body=body, reviewers=reviewers)
        if not draft.reviewers and not yes:
            candidates = service.candidate_reviewers()
            if candidates:
                console.print(f"Available reviewers: [cyan]{', '.join(candidates)}[/cyan]")
                picked = typer.prompt("Reviewers (comma-separated, empty for none)", default="", show_default=False)
                draft = service.draft(source=draft.source, target=draft.target, title=draft.title, body=draft.body, reviewers=picked)

        table = Table.grid(padding=(0, 2))
        table.add_row("[bold]Source:[/bold]", draft.source)
        table.add_row("[bold]Target:[/bold]", draft.target)
        table.add_row("[bold]Title:[/bold]", draft.title)
        table.add_row("[bold]Body:[/bold]", draft.body)
        if draft.reviewers:
            table.add_row("[bold]Reviewers:[/bold]", ", ".join(draft.reviewers))
        console.print(Panel.fit(table, title="You are about to create a new pull request"))
        if not yes and not Confirm.ask("Do you want to proceed?", default=True):
            console.print("[yellow]PR creation cancelled.[/yellow]")
            return

        with console.status("Creating pull request..."):
            created = service.create(draft)
    except ToolError as e:
        _fail(str(e))
        return
    finally:
        actx.close()
    console.print(f"[green]Pull request created:[/green] {created['pr_url']}")


@pr_app.command("approve")
def pr_approve(
    ctx: typer.Context,
    number: Optional[int] = typer.Argument(None, help="Pull request number (default: the most recent open one)."),
    comment: str = typer.Option(None, "--comment", "-m", help="Review comment."),
    yes: bool = typer.Option(False, "--yes", help="Do not ask for confirmation."),
):
    """Approve a pull request."""
    with _context(ctx) as actx:
        if number is not None and not yes:
            try:
                pr = actx.pull_requests.details(number)
            except ToolError as e:
                _fail(str(e))
            console.print(
                Panel(
                    f"[bold]{pr['title']}[/bold] by {pr['author']}\n{pr['url']}\n\n{pr['body']}",
                    title=f"PR #{number}",
                )
            )
            if not Confirm.ask("Approve this pull request?", default=True):
                console.print("[yellow]Approval cancelled.[/yellow]")
                return
        data = _run_tool(actx, "approve_pr", {"pr_number": number, "comment": comment})
    console.print(f"[green]{data['message']}[/green]")


@pr_app.command("list")
def pr_list(ctx: typer.Context):
    """Open pull requests of the current repository."""
    data = _call_tool(ctx, "list_open_prs", {})
    if not data["prs"]:
        console.print("No open pull requests.")
        return
    console.print(_pr_table(data["prs"], f"Open pull requests ({data['count']})"))


@pr_app.command("review")
def pr_review(
    ctx: typer.Context,
    all_open: bool = typer.Option(False, "--all", help="Show every open pull request, not only those awaiting you."),
):
    """Pull requests in this repository waiting for your review."""
    with _context(ctx) as actx:
        try:
            prs = actx.pull_requests.awaiting_my_review(all_open=all_open)
        except ToolError as e:
            _fail(str(e))
    if not prs:
        console.print("Nothing awaiting your review.")
        return
    console.print(_pr_table(prs, "Awaiting review"))


@pr_app.command("mine")
def pr_mine(ctx: typer.Context):
    """Open pull requests across GitHub requesting your review."""
    data = _call_tool(ctx, "list_my_prs", {})
    console.print(f"[bold]{data['total']}[/bold] pull request(s) awaiting review by [cyan]{data['user']}[/cyan]")
    for repo, prs in data["by_repo"].items():
        console.print(f"\n[bold]{repo}[/bold]")
        for pr in prs:
            console.print(f"  #{pr['number']} {pr['title']}  [cyan]{pr['url']}[/cyan]")


@pr_app.command("repos")
def pr_repos(ctx: typer.Context):
    """Repositories you own, collaborate on or reach through an organization."""
    data = _call_tool(ctx, "list_my_repos", {})
    for group in ("owner", "collaborator", "organization_member"):
        repos = data.get(group) or []
        console.print(f"\n[bold]{group}[/bold] ({len(repos)})")
        for r in repos:
            console.print(f"  {r['full_name']}{' [dim](private)[/dim]' if r['private'] else ''}")


@pr_app.command("changes")
def pr_changes(
    ctx: typer.Context,
    since: str = typer.Option("1 day ago", "--since", help='Timeframe, e.g. "2 weeks ago".'),
):
    """Summarize file changes since a point in time."""
    data = _call_tool(ctx, "summarize_code_changes", {"since": since})
    console.print(data["summary"])


# ---------------------------------------------------------------- calendar


def _events_table(data: dict[str, Any], title: str) -> None:
    if not data["events"]:
        console.print(data.get("summary") or "No upcoming events found.")
        return
    table = Table(title=f"{title} ({data['event_count']})")
    table.add_column("start")
    table.add_column("end")
    table.add_column("summary", style="bold")
    table.add_column("link", style="cyan")
    for ev in data["events"]:
        table.add_row(
            "all day" if ev["all_day"] else str(ev["start"]),
            "" if ev["all_day"] else str(ev["end"]),
            ev["summary"],
            ev["zoom_link"] or ev["hangout_link"] or "",
        )
    console.print(table)


@calendar_app.command("today")
def calendar_today(ctx: typer.Context):
    """Today's meetings."""
    _events_table(_call_tool(ctx, "list_today_meetings", {}), "Today")


@calendar_app.command("week")
def calendar_week(ctx: typer.Context):
    """This week's meetings (Monday to Sunday)."""
    _events_table(_call_tool(ctx, "list_weekly_meetings", {}), "This week")


@calendar_app.command("add")
def calendar_add(
    ctx: typer.Context,
    summary: str = typer.Option(..., "--summary", help="Event title."),
    start: str = typer.Option(..., "--start", help="Start, ISO 8601 (2024-05-01T10:00:00)."),
    end: str = typer.Option(..., "--end", help="End, ISO 8601."),
    description: str = typer.Option(None, "--description"),
    location: str = typer.Option(None, "--location"),
    attendees: str = typer.Option(None, "--attendees", help="Comma-separated emails."),
):
    """Add an event to the primary calendar."""
    data = _call_tool(
        ctx,
        "add_calendar_event",
        {
            "summary": summary,
            "start_time": start,
            "end_time": end,
            "description": description,
            "location": location,
            "attendees": attendees,
        },
    )
    console.print(f"[green]{data['summary']}[/green] {data.get('html_link') or ''}")


# ---------------------------------------------------------------- pomodoro


@pomodoro_app.command("start")
def pomodoro_start(ctx: typer.Context):
    """Start the timer in a detached background process."""
    data = _call_tool(ctx, "start_pomodoro", {})
    console.print(f"[{'green' if data['started'] else 'yellow'}]{data['message']}[/]")


@pomodoro_app.command("stop")
def pomodoro_stop(ctx: typer.Context):
    """Stop the running timer."""
    data = _call_tool(ctx, "stop_pomodoro", {})
    console.print(f"[{'green' if data['stopped'] else 'yellow'}]{data['message']}[/]")


@pomodoro_app.command("status")
def pomodoro_status(ctx: typer.Context):
    data = _call_tool(ctx, "pomodoro_status", {})
    state = data["state"]
    if state == "running":
        console.print(f"[green]Running[/green] (PID {data['pid']})")
    elif state == "stale":
        console.print(f"[yellow]Stale marker[/yellow] for PID {data['pid']}; `helperbot pomodoro stop` clears it.")
    else:
        console.print("Idle.")


@pomodoro_app.command("run", hidden=True)
def pomodoro_run(
    pid_file: Path = typer.Option(..., "--pid-file"),
    work_minutes: float = typer.Option(25.0, "--work-minutes"),
    break_minutes: float = typer.Option(5.0, "--break-minutes"),
    max_sessions: Optional[int] = typer.Option(None, "--max-sessions", help="Exit after N work sessions."),
):
    """Background timer loop; started by `pomodoro start`."""
    from .pomodoro.marker import LivenessMarker
    from .pomodoro.timer import PomodoroTimer, run_background
    from .services.notify import DesktopNotifier

    timer = PomodoroTimer(
        marker=LivenessMarker(pid_file),
        notifier=DesktopNotifier(),
        work_seconds=work_minutes * 60,
        break_seconds=break_minutes * 60,
        events=EventStore.open("pomodoro"),
        max_sessions=max_sessions,
    )
    run_background(timer)


# ---------------------------------------------------------------- inspection


@app.command()
def replay(
    session: str = typer.Option(..., "--session", help="Session id to replay."),
    tail: int = typer.Option(50, "--tail", help="Show last N turns."),
):
    """Replay the turns of a saved interactive session."""
    store = SessionStore.open(session_id=session)
    turns = store.turns
    turns = turns[-tail:] if tail and tail > 0 else turns

    console.print(Panel.fit(f"session: {store.session_id}\nfile: {store.path}\nturns: {len(store)}", title="Replay"))
    for t in turns:
        if t.role == "tool":
            console.print(Panel(t.content or "", title=f"tool {t.name} ({t.tool_call_id})", border_style="yellow"))
        elif t.tool_calls:
            calls = "\n".join(f"{tc.name} {json.dumps(tc.arguments, ensure_ascii=False)}" for tc in t.tool_calls)
            console.print(Panel(calls, title="assistant (tool calls)", border_style="magenta"))
        else:
            console.print(Panel(t.content or "", title=t.role))


@app.command()
def events(
    session: str = typer.Option(..., "--session", help="Session id to inspect events."),
    tail: int = typer.Option(200, "--tail", help="Show last N events."),
    event_type: str = typer.Option(None, "--type", help="Only events of this type, e.g. tool.result."),
):
    """Show recent structured events (LLM calls, tool calls) recorded for a session."""
    es = EventStore.open(session)
    evs = es.of_type(event_type) if event_type else list(es.iter_events())
    evs = evs[-tail:] if tail and tail > 0 else evs
    console.print(Panel.fit(f"session: {session}\nfile: {es.path}\nevents: {len(evs)}", title="Events"))
    for e in evs:
        ts = datetime.fromtimestamp(e.ts).strftime("%Y-%m-%d %H:%M:%S")
        console.print(Panel.fit(json.dumps(e.data, ensure_ascii=False, indent=2)[:4000], title=f"{ts}  {e.type}"))


@app.command()
def stats(
    session: str = typer.Option(..., "--session", help="Session id to summarize."),
):
    """Show a compact summary for a session (latency, errors, tool usage)."""
    es = EventStore.open(session)
    evs = list(es.iter_events())

    llm_req = [e for e in evs if e.type == "llm.request"]
    llm_res = [e for e in evs if e.type == "llm.response"]
    llm_err = [e for e in evs if e.type == "llm.error"]

    tool_call = [e for e in evs if e.type == "tool.call"]
    tool_res = [e for e in evs if e.type == "tool.result"]
    tool_fail = [e for e in tool_res if not (e.data or {}).get("ok")]
    tool_cancel = [e for e in evs if e.type == "tool.cancelled"]
    tool_missing = [e for e in evs if e.type == "tool.missing"]

    def _avg_ms(items):
        vals = []
        for e in items:
            ms = (e.data or {}).get("elapsed_ms")
            if isinstance(ms, (int, float)) and ms >= 0:
                vals.append(float(ms))
        return (sum(vals) / len(vals)) if vals else None

    llm_avg = _avg_ms(llm_res)
    tool_avg = _avg_ms(tool_res)

    freq: dict[str, int] = {}
    for e in tool_call:
        t = (e.data or {}).get("tool")
        if not t:
            continue
        freq[t] = freq.get(t, 0) + 1
    top_tools = sorted(freq.items(), key=lambda x: x[1], reverse=True)[:12]

    lines = []
    lines.append(f"session: {session}")
    lines.append(f"events_file: {es.path}")
    lines.append(f"llm_requests: {len(llm_req)}  llm_responses: {len(llm_res)}  llm_errors: {len(llm_err)}")
    if llm_avg is not None:
        lines.append(f"llm_avg_latency_ms: {llm_avg:.1f}")
    lines.append(
        f"tool_calls: {len(tool_call)}  tool_failures: {len(tool_fail)}  "
        f"tool_cancelled: {len(tool_cancel)}  unknown_tools: {len(tool_missing)}"
    )
    if tool_avg is not None:
        lines.append(f"tool_avg_latency_ms: {tool_avg:.1f}")
    if top_tools:
        lines.append("top_tools:")
        for name, c in top_tools:
            lines.append(f"  - {name}: {c}")

    console.print(Panel.fit("\n".join(lines), title="Stats"))
