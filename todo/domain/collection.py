from todo.domain.task import Task, TaskId
from todo.domain.enums import Priority, Repeat
from todo.domain.errors import (
    TaskAlreadyDoneError,
    TaskBlockedError,
    TaskNotFoundError,
    TaskValidationError,
)
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable
import calendar

### COMMENTS
# ==========================================================
# Pure functions over a task collection (domain/collection.py).
# ==========================================================
# - A collection is a tuple of `Task`; functions take one and return a new one.
#   Nothing here keeps a reference to its input or touches the disk.
# - No logging, no printing: failures are typed DomainError subclasses.
# - The service owns the collection for one load -> mutate -> save cycle.

TaskCollection = tuple[Task, ...]

DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class MarkDoneResult:
    tasks: TaskCollection
    completed: Task
    next_occurrence: Task | None = None


# ---- normalization / parsing ----

def normalize_priority(value: int | None) -> int:
    """Values outside 1..3 become 1 (low)."""
    try:
        return int(Priority(int(value)))
    except (TypeError, ValueError):
        return int(Priority.LOW)


def normalize_repeat(value: str | None) -> str | None:
    """
    Known rules are lower-cased; empty or "none" means no repeat.
    Unknown strings are kept verbatim, they simply never produce an occurrence.
    """
    if value is None:
        return None
    raw = value.strip()
    if not raw or raw.lower() == "none":
        return None
    try:
        return Repeat(raw.lower()).value
    except ValueError:
        return raw


def parse_tags(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def parse_ids(raw: str | None) -> tuple[int, ...]:
    """Comma separated ids; parts that are not integers are skipped."""
    if not raw:
        return ()
    ids: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(int(part))
        except ValueError:
            continue
    return tuple(ids)


def parse_date(raw: str, field: str = "due") -> datetime:
    """
    Parses `YYYY-MM-DD` (UTC midnight) or a full ISO-8601 timestamp.
    Naive timestamps are taken as UTC.

    :raises TaskValidationError: when the string is not a date.
    """
    text = (raw or "").strip()
    if not text:
        raise TaskValidationError(field, "date must not be empty")
    try:
        return datetime.strptime(text, DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise TaskValidationError(field, f"'{raw}' is not a date (expected YYYY-MM-DD)")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ---- lookups ----

def next_id(tasks: Iterable[Task]) -> TaskId:
    return TaskId(1 + max((t.id for t in tasks), default=0))


def get_by_id(tasks: Iterable[Task], task_id: int) -> Task:
    for t in tasks:
        if t.id == task_id:
            return t
    raise TaskNotFoundError(task_id)


def _index_of(tasks: TaskCollection, task_id: int) -> int:
    for i, t in enumerate(tasks):
        if t.id == task_id:
            return i
    raise TaskNotFoundError(task_id)


# ---- dependencies ----

def pending_dependencies(tasks: Iterable[Task], task: Task) -> tuple[int, ...]:
    """Ids from `task.depends_on` that are missing or not done yet."""
    done = {t.id for t in tasks if t.is_done()}
    return tuple(dep for dep in task.depends_on if dep not in done)


def all_dependencies_met(tasks: Iterable[Task], task: Task) -> bool:
    return not pending_dependencies(tasks, task)


def find_dependency_cycle(tasks: Iterable[Task], task_id: int) -> list[int] | None:
    """
    Returns the ids of a dependency cycle reachable from `task_id`
    (first id repeated at the end), or None. Missing ids end a path.
    """
    by_id = {t.id: t for t in tasks}
    if task_id not in by_id:
        raise TaskNotFoundError(task_id)

    visited: set[int] = set()
    path: list[int] = []
    on_path: set[int] = set()

    def visit(current: int) -> list[int] | None:
        if current in on_path:
            start = path.index(current)
            return path[start:] + [current]
        if current in visited or current not in by_id:
            return None
        visited.add(current)
        path.append(current)
        on_path.add(current)
        for dep in by_id[current].depends_on:
            found = visit(dep)
            if found is not None:
                return found
        path.pop()
        on_path.discard(current)
        return None

    return visit(task_id)


def is_reachable_done(tasks: Iterable[Task], task_id: int) -> bool:
    """
    True iff every task reachable through `depends_on` from `task_id` exists,
    is done, and no cycle is reachable. The start task itself may be pending.
    Never raises on cycles; `mark_done` semantics are not affected.
    """
    tasks = tuple(tasks)
    if find_dependency_cycle(tasks, task_id) is not None:
        return False
    by_id = {t.id: t for t in tasks}
    stack = list(by_id[task_id].depends_on)
    seen: set[int] = set()
    while stack:
        dep = stack.pop()
        if dep in seen:
            continue
        seen.add(dep)
        task = by_id.get(dep)
        if task is None or not task.is_done():
            return False
        stack.extend(task.depends_on)
    return True


# ---- recurrence ----

def _add_month(value: datetime) -> datetime:
    # days past the end of the target month roll over: Jan 31 -> Mar 2 (leap year)
    year, month = (value.year + 1, 1) if value.month == 12 else (value.year, value.month + 1)
    last_day = calendar.monthrange(year, month)[1]
    overflow = max(0, value.day - last_day)
    return value.replace(year=year, month=month, day=value.day - overflow) + timedelta(days=overflow)


def compute_next_due(due: datetime, repeat: str | None) -> datetime | None:
    """
    daily +1 day, weekly +7 days, monthly +1 month; anything else -> None.

    :raises TaskValidationError: the next date is past the supported calendar range.
    """
    rule = (repeat or "").strip().lower()
    try:
        if rule == Repeat.DAILY.value:
            return due + timedelta(days=1)
        if rule == Repeat.WEEKLY.value:
            return due + timedelta(days=7)
        if rule == Repeat.MONTHLY.value:
            return _add_month(due)
    except (OverflowError, ValueError):
        raise TaskValidationError("due", f"next {rule} occurrence after {due.date()} is out of range")
    return None


def next_occurrence(task: Task, now: datetime) -> Task | None:
    """Successor of a completed repeating task, or None if it does not recur."""
    if task.due is None:
        return None
    next_due = compute_next_due(task.due, task.repeat)
    if next_due is None:
        return None
    return Task(
        id=TaskId(task.id + 1),
        title=task.title,
        description=task.description,
        due=next_due,
        created_at=now,
        priority=task.priority,
        tags=tuple(task.tags),
        repeat=task.repeat,
        depends_on=tuple(task.depends_on),
    )


# ---- mutations ----

def add(tasks: TaskCollection, title: str, due: datetime | None, now: datetime) -> tuple[TaskCollection, Task]:
    """
    Appends a new task (priority low, no tags, no dependencies).

    :raises TaskValidationError: when the title is empty or blank.
    :return: (new collection, created task)
    """
    if not title or not title.strip():
        raise TaskValidationError("title", "title must not be empty")
    task = Task(id=next_id(tasks), title=title.strip(), due=due, created_at=now)
    return (*tasks, task), task


def replace_task(tasks: TaskCollection, updated: Task) -> TaskCollection:
    """Full replacement of the task with the same id."""
    idx = _index_of(tasks, updated.id)
    return (*tasks[:idx], updated, *tasks[idx + 1:])


def remove(tasks: TaskCollection, task_id: int) -> TaskCollection:
    """Drops the task; other tasks' `depends_on` are left as they are."""
    idx = _index_of(tasks, task_id)
    return (*tasks[:idx], *tasks[idx + 1:])


def mark_done(tasks: TaskCollection, task_id: int, now: datetime) -> MarkDoneResult:
    """
    Completes a task and, for repeating tasks with a due date, appends the next
    occurrence with id `completed.id + 1`.

    :raises TaskNotFoundError: id absent.
    :raises TaskAlreadyDoneError: task already has `done_at`.
    :raises TaskBlockedError: a dependency is missing or pending.
    :raises TaskValidationError: the occurrence id is already taken.
    :raises TaskValidationError: the next due date is out of range.
    """
    idx = _index_of(tasks, task_id)
    task = tasks[idx]
    if task.is_done():
        raise TaskAlreadyDoneError(task_id)
    pending = pending_dependencies(tasks, task)
    if pending:
        raise TaskBlockedError(task_id, pending)

    completed = replace(task, done_at=now)
    updated = (*tasks[:idx], completed, *tasks[idx + 1:])

    occurrence = next_occurrence(completed, now)
    if occurrence is None:
        return MarkDoneResult(tasks=updated, completed=completed)
    if any(t.id == occurrence.id for t in tasks):
        raise TaskValidationError(
            "id", f"next occurrence id {occurrence.id} is already used by another task"
        )
    return MarkDoneResult(tasks=(*updated, occurrence), completed=completed, next_occurrence=occurrence)
