from todo.domain.errors import DomainError, TaskNotFoundError, TaskValidationError
from todo.domain.task import Task, TaskId
from todo.domain.query import TaskQuery
from todo.domain.enums import SortKey
from todo.domain.patch import CLEAR, UNCHANGED, SetTo
from todo.domain.collection import all_dependencies_met, parse_date, parse_ids, parse_tags
from todo.services.task_service import AddTaskInput, TaskService, UpdateTaskInput
from todo.services.alerts import Alert, AlertScanner, summarize
from todo.adapters.memory.task_repo import InMemoryTaskRepository
from todo.adapters.json.store import JsonFileStore
from todo.adapters.json.task_repo import JsonTaskRepository
from todo.adapters.system.clock_system import SystemClock
from todo.adapters.system.notifiers import ConsoleNotifier, DesktopNotifier
from todo.api.colors import TaskColor, color_priority
from todo.config import get_settings
from todo.logging_setup import configure_logging
from typer import Exit, Option, Typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional
import logging
import threading


### COMMENTS
# ==========================================================
# CLI (Typer + Rich) — user interface for the task tracker.
# ==========================================================
# Role:
# - Maps commands onto TaskService methods (add/list/done/edit/rm/show/alerts/stats).
# - Renders results as Rich tables and panels.
# - Catches DomainError, prints a red panel and exits with code 1.
#
# Rules:
# - No business logic here; delegate to TaskService.
# - Dependencies (store + repo + service) are built once in the callback.
# - The literal "none" in `edit` options means "clear this field" and is
#   translated to CLEAR here, never passed down as a string.

app = Typer(help="Personal task tracker")
console = Console()
logger = logging.getLogger(__name__)

service: TaskService | None = None  # set in the callback

NONE_LITERAL = "none"


def build_service(file: Optional[Path]) -> TaskService:
    """Builds the service on top of the JSON file store.
    - No --file -> TODO_DATA_FILE or the platform data directory
    """
    settings = get_settings()
    path = file or settings.data_file
    store = JsonFileStore(
        path,
        poll_interval=settings.lock_poll_interval,
        lock_timeout=settings.lock_timeout,
    )
    logger.debug("Using data file %s", store.path)
    return TaskService(JsonTaskRepository(store), SystemClock())


@app.callback()
def main(
    file: Optional[Path] = Option(
        None,
        "--file",
        "-f",
        help="Path to the JSON data file (default: TODO_DATA_FILE or the platform data dir)",
    ),
    log_level: Optional[str] = Option(None, "--log-level", help="DEBUG, INFO, WARNING, ..."),
) -> None:
    """Bootstrap dependencies once per CLI process."""
    global service
    configure_logging(log_level or get_settings().log_level)
    service = build_service(file)


def fail(e: DomainError, title: str = "Error", hint: str | None = None) -> None:
    """Prints a red panel and stops the command with exit code 1."""
    body = f"❌ {e}"
    if hint:
        body += f"\n[dim]{hint}[/]"
    console.print(Panel.fit(body, title=title, border_style="red"))
    raise Exit(code=1)


def handle(e: DomainError) -> None:
    if isinstance(e, TaskNotFoundError):
        fail(e, "Not found", "Use 'todo list --all' to find a valid ID")
    if isinstance(e, TaskValidationError):
        fail(e, "Validation error")
    fail(e)


def fmt_dt(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def fmt_due(task: Task, now: datetime) -> str:
    if task.due is None:
        return ""
    text = task.due.strftime("%Y-%m-%d")
    if task.is_overdue(now):
        return f"{TaskColor.RED}{text} (overdue){TaskColor.RESET}"
    if task.is_due_soon(now, timedelta(hours=24)):
        return f"{TaskColor.YELLOW}{text} (soon){TaskColor.RESET}"
    return text


def render_list(items: list[Task], all_tasks: tuple[Task, ...], now: datetime, detailed: bool = False) -> None:
    """Rich table: ID, status, priority, title, due, tags, notes."""
    table = Table(show_lines=detailed, header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("✓", no_wrap=True)
    table.add_column("Priority", no_wrap=True)
    table.add_column("Title")
    table.add_column("Due", no_wrap=True)
    table.add_column("Tags")
    table.add_column("Info")

    for t in items:
        info: list[str] = []
        if t.repeat:
            info.append(f"🔄 {t.repeat}")
        if t.depends_on:
            info.append("🔗 after " + ",".join(str(d) for d in t.depends_on))
            if not t.is_done() and not all_dependencies_met(all_tasks, t):
                info.append(f"{TaskColor.RED}BLOCKED{TaskColor.RESET}")
        if t.is_done():
            info.append(f"✅ {fmt_dt(t.done_at)}")
        title = t.title
        if detailed:
            if t.description:
                title += f"\n[dim]{t.description}[/]"
            info.append(f"[dim]created {fmt_dt(t.created_at)}[/]")
        table.add_row(
            str(t.id),
            "✓" if t.is_done() else "",
            color_priority(t.priority),
            title,
            fmt_due(t, now),
            " ".join(f"#{tag}" for tag in t.tags),
            "\n".join(info) if detailed else "  ".join(info),
        )

    console.print(table)
    console.print(f"[dim]Total: {len(items)} task(s)[/dim]")


def render_alerts(alerts: list[Alert]) -> None:
    if not alerts:
        console.print("[dim]No alerts[/]")
        return
    table = Table(header_style="bold", title=summarize(alerts))
    table.add_column("Kind", no_wrap=True)
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Message")
    table.add_column("Due", no_wrap=True)
    for a in alerts:
        table.add_row(str(a.kind), str(a.task.id), a.message, fmt_dt(a.task.due))
    console.print(table)


def day_window(now: datetime, days: int, start: datetime | None = None) -> tuple[datetime, datetime]:
    """(after, before) bounds covering `days` whole days from `start` (default: today)."""
    start = start or now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=days) - timedelta(microseconds=1)


@app.command("add")
def add(
    title: str,
    desc: Optional[str] = Option(None, "--desc", "-d", help="Description"),
    due: Optional[str] = Option(None, "--due", help="Due date YYYY-MM-DD"),
    repeat: Optional[str] = Option(None, "--repeat", "-r", help="daily | weekly | monthly"),
    priority: int = Option(1, "--priority", "-p", help="1 (low) .. 3 (high)"),
    tags: Optional[str] = Option(None, "--tags", "-t", help="Comma separated tags"),
    after: Optional[str] = Option(None, "--after", "-a", help="Comma separated IDs this task depends on"),
) -> None:
    """
    Adds a new task.

    Flow:
    - service.add_task(AddTaskInput(...))
    - Success: green panel with the assigned ID.
    - Domain error: red panel, exit code 1.
    """
    try:
        task = service.add_task(AddTaskInput(
            title=title,
            description=desc,
            due=parse_date(due, "due") if due else None,
            priority=priority,
            tags=parse_tags(tags),
            repeat=repeat,
            depends_on=parse_ids(after),
        ))
    except DomainError as e:
        handle(e)
        return
    console.print(Panel.fit(
        f"✅ Task added\n"
        f"[cyan]ID:[/cyan] {task.id}\n"
        f"[dim]Title:[/dim] {task.title}"
        + (f"\n[dim]Due:[/dim] {fmt_dt(task.due)}" if task.due else ""),
        title="Success",
        border_style="green",
    ))


@app.command("list")
def list_cmd(
    show_all: bool = Option(False, "--all", help="Include completed tasks"),
    today: bool = Option(False, "--today", help="Only tasks due today"),
    week: bool = Option(False, "--week", help="Only tasks due this week (Sunday start)"),
    detailed: bool = Option(False, "--detailed", "-D", help="Show description and creation date"),
    grep: Optional[str] = Option(None, "--grep", "-g", help="Case-insensitive search in title/description"),
    tags: Optional[str] = Option(None, "--tags", "-t", help="a,b = any of; a+b = all of"),
    sort: str = Option("due", "--sort", "-s", help="due | priority | created | status | title"),
    before: Optional[str] = Option(None, "--before", help="Due on or before YYYY-MM-DD"),
    after: Optional[str] = Option(None, "--after", help="Due on or after YYYY-MM-DD"),
    priority: int = Option(0, "--priority", "-p", help="Only this priority (1-3)"),
    ready: bool = Option(False, "--ready", help="Only pending tasks whose dependencies are done"),
) -> None:
    """
    Lists tasks through the query pipeline.

    Flow:
    - TaskQuery.from_params(...) -> service.query_tasks(query)
    - --today / --week override --before / --after.
    """
    now = service.clock.now()
    try:
        query = TaskQuery.from_params(
            show_all=show_all, grep=grep, tags=tags, sort=sort,
            before=before, after=after, priority=priority, only_ready=ready,
        )
        if today or week:
            if today:
                lower, upper = day_window(now, 1)
            else:
                midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
                sunday = midnight - timedelta(days=(midnight.weekday() + 1) % 7)
                lower, upper = day_window(now, 7, start=sunday)
            query = replace(query, after=lower, before=upper)
        items = service.query_tasks(query)
        all_tasks = service.list_all()
    except DomainError as e:
        handle(e)
        return

    if not items:
        console.print("[dim](no tasks)[/]")
        return
    if today:
        console.print("[bold]📅 Today's tasks[/]")
    elif week:
        console.print("[bold]📅 This week's tasks[/]")
    render_list(items, all_tasks, now, detailed=detailed)


@app.command("done")
def done(task_id: int) -> None:
    """
    Marks a task as completed.

    Flow:
    - service.mark_done_by_id(task_id)
    - Success: panel with the title; repeating tasks also show the new occurrence.
    - Blocked / already done / not found: red panel.
    """
    try:
        result = service.mark_done_by_id(TaskId(task_id))
    except DomainError as e:
        handle(e)
        return
    body = f"✅ Marked done: {result.completed.title} (ID {result.completed.id})"
    if result.next_occurrence is not None:
        body += (
            f"\n🔄 Next occurrence: ID {result.next_occurrence.id}, "
            f"due {fmt_dt(result.next_occurrence.due)}"
        )
    console.print(Panel.fit(body, title="Success", border_style="green"))


def _text_patch(value: Optional[str]):
    if value is None:
        return UNCHANGED
    if value.strip().lower() == NONE_LITERAL:
        return CLEAR
    return SetTo(value)


@app.command("edit")
def edit(
    task_id: int,
    title: Optional[str] = Option(None, "--title", help="New title"),
    desc: Optional[str] = Option(None, "--desc", "-d", help="New description ('none' clears)"),
    due: Optional[str] = Option(None, "--due", help="YYYY-MM-DD ('none' clears)"),
    repeat: Optional[str] = Option(None, "--repeat", "-r", help="Repeat rule ('none' clears)"),
    priority: Optional[int] = Option(None, "--priority", "-p", help="1-3"),
    tags: Optional[str] = Option(None, "--tags", "-t", help="Comma separated ('none' clears)"),
    after: Optional[str] = Option(None, "--after", "-a", help="Dependency IDs ('none' clears)"),
) -> None:
    """
    Edits a task; options that are not given stay unchanged.
    """
    tags_patch = _text_patch(tags)
    after_patch = _text_patch(after)
    changes = UpdateTaskInput(
        title=SetTo(title) if title is not None else UNCHANGED,
        description=_text_patch(desc),
        due=_text_patch(due),
        repeat=_text_patch(repeat),
        priority=SetTo(priority) if priority is not None else UNCHANGED,
        tags=SetTo(parse_tags(tags_patch.value)) if isinstance(tags_patch, SetTo) else tags_patch,
        depends_on=SetTo(parse_ids(after_patch.value)) if isinstance(after_patch, SetTo) else after_patch,
    )
    try:
        task = service.update_task(TaskId(task_id), changes)
    except DomainError as e:
        handle(e)
        return
    console.print(Panel.fit(f"✏️ Updated: {task.title} (ID {task.id})", title="Success", border_style="green"))


@app.command("rm")
def rm(task_id: int) -> None:
    """
    Removes a task. Tasks that depend on it stay blocked.
    """
    try:
        task = service.get_task(TaskId(task_id))
        service.remove_task(TaskId(task_id))
    except DomainError as e:
        handle(e)
        return
    console.print(Panel.fit(
        f"🟡 Task removed\nID: {task_id}\n[dim]{task.title}[/]",
        title="Removed",
        border_style="yellow",
    ))


@app.command("show")
def show(task_id: int) -> None:
    """
    Shows every field of a single task.
    """
    try:
        task = service.get_task(TaskId(task_id))
        all_tasks = service.list_all()
    except DomainError as e:
        handle(e)
        return

    lines = [
        f"ID: {task.id}",
        f"Title: {task.title}",
        f"Description: {task.description or '[dim]none[/]'}",
        f"Due: {fmt_due(task, service.clock.now()) or '[dim]none[/]'}",
        f"Priority: {color_priority(task.priority)}",
        f"Tags: {' '.join('#' + t for t in task.tags) or '[dim]none[/]'}",
        f"Repeat: {task.repeat or '[dim]none[/]'}",
        f"Depends on: {', '.join(str(d) for d in task.depends_on) or '[dim]none[/]'}",
        f"Created: {task.created_at.isoformat()}",
        f"Completed: {task.done_at.isoformat() if task.done_at else '[dim]no[/]'}",
    ]
    if task.depends_on and not task.is_done() and not all_dependencies_met(all_tasks, task):
        lines.append(f"{TaskColor.RED}⚠️ BLOCKED (dependencies not met){TaskColor.RESET}")
    console.print(Panel.fit("\n".join(lines), title="Task details", border_style="cyan"))


@app.command("alerts")
def alerts_cmd(
    watch: bool = Option(False, "--watch", "-w", help="Keep polling and notify"),
    interval: Optional[float] = Option(None, "--interval", help="Polling interval in seconds"),
    ahead: Optional[float] = Option(None, "--ahead", help="Lookahead window in hours"),
    desktop: bool = Option(True, "--desktop/--no-desktop", help="Desktop notifications in watch mode"),
) -> None:
    """
    Shows overdue, due-soon and blocked tasks; --watch keeps polling.
    """
    settings = get_settings()
    lookahead = timedelta(hours=ahead) if ahead is not None else settings.alert_lookahead_td
    every = timedelta(seconds=interval) if interval is not None else settings.alert_interval_td

    console_notifier = ConsoleNotifier(console)
    notifier = DesktopNotifier(fallback=console_notifier) if desktop else console_notifier
    scanner = AlertScanner(notifier, service.clock)

    if not watch:
        try:
            found = scanner.scan(service.list_all(), service.clock.now(), lookahead)
        except DomainError as e:
            handle(e)
            return
        render_alerts(found)
        return

    console.print(f"[dim]Watching for alerts (interval: {every}, lookahead: {lookahead}). Ctrl+C to stop.[/]")
    stop = threading.Event()
    try:
        scanner.watch(service.list_all, interval=every, lookahead=lookahead, stop=stop, on_alerts=render_alerts)
    except KeyboardInterrupt:
        stop.set()
        console.print("[dim]Stopped.[/]")


@app.command("stats")
def stats_cmd() -> None:
    """
    Task analytics: totals, completion rate, priorities and tags.
    """
    try:
        s = service.stats()
    except DomainError as e:
        handle(e)
        return

    overview = Table(show_header=False, title="Task statistics")
    overview.add_column("Metric")
    overview.add_column("Value", justify="right")
    overview.add_row("Total", str(s.total))
    overview.add_row("Completed", str(s.completed))
    overview.add_row("Pending", str(s.pending))
    overview.add_row("Overdue", str(s.overdue))
    overview.add_row("Blocked", str(s.blocked))
    overview.add_row("Completion rate", f"{s.completion_rate:.1f}%")
    overview.add_row("Completed today", str(s.completed_today))
    overview.add_row("Completed this week", str(s.completed_week))
    if s.avg_completion is not None:
        overview.add_row("Avg completion time", f"{s.avg_completion.total_seconds() / 86400:.1f} days")
    console.print(overview)

    if s.by_priority:
        console.print("By priority: " + ", ".join(
            f"{color_priority(p)} {s.by_priority[p]}" for p in (3, 2, 1) if p in s.by_priority
        ))
    if s.by_tag:
        console.print("By tag: " + ", ".join(f"#{tag} {count}" for tag, count in s.by_tag.items()))


@app.command("server")
def server(
    host: Optional[str] = Option(None, "--host", help="Bind address"),
    port: Optional[int] = Option(None, "--port", help="Port"),
) -> None:
    """
    Starts the HTTP API (uvicorn).
    """
    import uvicorn
    from todo.api.http import create_app

    settings = get_settings()
    host = host or settings.http_host
    port = port or settings.http_port
    console.print(Panel.fit(
        "GET    /tasks          list (all, grep, tags, sort, before, after)\n"
        "POST   /tasks          create\n"
        "GET    /tasks/{id}     get\n"
        "PUT    /tasks/{id}     update\n"
        "DELETE /tasks/{id}     delete\n"
        "POST   /tasks/{id}/done mark done\n"
        "GET    /stats  /alerts  /health",
        title=f"Serving on http://{host}:{port}",
        border_style="cyan",
    ))
    uvicorn.run(create_app(service), host=host, port=port, log_level="warning")


@app.command("version")
def version() -> None:
    """Prints the installed version."""
    from importlib.metadata import PackageNotFoundError, version as dist_version
    try:
        console.print(f"todo {dist_version('todo-tracker')}")
    except PackageNotFoundError:
        console.print("todo (not installed)")


@app.command("demo")
def demo() -> None:
    """
    Walk-through in one process on an in-memory repository.

    - Creates tasks (one repeating, one depending on another).
    - Shows the list.
    - Tries to complete the blocked task, then completes its dependency and it.
    - Removes one task and shows the list again.
    """
    svc = TaskService(InMemoryTaskRepository(), SystemClock())
    now = svc.clock.now()

    console.print(Panel.fit("🚀 Demo start", border_style="cyan"))

    milk = svc.add_task(AddTaskInput("Buy milk", description="2% lactose-free", due=now + timedelta(hours=3), tags=("home",)))
    report = svc.add_task(AddTaskInput("Write report", priority=3, due=now + timedelta(days=2), tags=("work",)))
    send = svc.add_task(AddTaskInput("Send report", priority=2, tags=("work",), depends_on=(report.id,)))
    standup = svc.add_task(AddTaskInput("Standup", repeat="daily", due=now + timedelta(hours=1), tags=("work",)))

    console.print("\n📋 After creating:")
    render_list(svc.query_tasks(TaskQuery(show_all=True)), svc.list_all(), now)

    try:
        svc.mark_done_by_id(send.id)
    except DomainError as e:
        console.print(Panel.fit(f"⛔ {e}", border_style="red"))

    svc.mark_done_by_id(report.id)
    svc.mark_done_by_id(send.id)
    result = svc.mark_done_by_id(standup.id)
    console.print(Panel.fit(
        f"✔️ Completed '{report.title}', '{send.title}' and '{standup.title}'\n"
        f"🔄 Next standup: ID {result.next_occurrence.id}",
        border_style="yellow",
    ))

    svc.remove_task(milk.id)
    console.print(Panel.fit(f"🗑️ Removed: {milk.title}", border_style="red"))

    console.print("\n📋 After changes:")
    render_list(svc.query_tasks(TaskQuery(show_all=True, sort=SortKey.STATUS)), svc.list_all(), now)

    console.print(Panel.fit("🏁 Demo finished", border_style="cyan"))


if __name__ == "__main__":
    app()
