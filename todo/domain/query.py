from todo.domain.collection import all_dependencies_met, parse_date
from todo.domain.enums import SortKey
from todo.domain.task import Task
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

### COMMENTS
# ==========================================================
# Query / filter / sort pipeline (domain/query.py).
# ==========================================================
# Every read path (CLI list, HTTP GET /tasks, alerts) goes through `run_query`.
# Stages run in a fixed order and each one is a no-op when its option is empty:
#   status -> search -> tags -> date range -> priority -> ready -> sort
# Sorting relies on `sorted()` being stable: equal keys keep input order.


@dataclass(frozen=True)
class TaskQuery:
    show_all: bool = False
    grep: str = ""
    tags: str = ""
    sort: SortKey = SortKey.DUE
    before: datetime | None = None
    after: datetime | None = None
    priority: int = 0
    only_ready: bool = False

    @classmethod
    def from_params(
        cls,
        *,
        show_all: bool = False,
        grep: str | None = None,
        tags: str | None = None,
        sort: str | None = None,
        before: str | None = None,
        after: str | None = None,
        priority: int | None = None,
        only_ready: bool = False,
    ) -> "TaskQuery":
        """
        Builds a query from raw CLI flags / HTTP query-string values.

        :raises TaskValidationError: when `before` or `after` is not a date.
        """
        return cls(
            show_all=bool(show_all),
            grep=(grep or "").strip(),
            tags=(tags or "").strip(),
            sort=SortKey.parse(sort),
            before=parse_date(before, "before") if before else None,
            after=parse_date(after, "after") if after else None,
            priority=int(priority or 0),
            only_ready=bool(only_ready),
        )


# ---- filters ----

def filter_by_status(tasks: Iterable[Task], show_all: bool) -> list[Task]:
    if show_all:
        return list(tasks)
    return [t for t in tasks if not t.is_done()]


def search(tasks: Iterable[Task], query: str) -> list[Task]:
    """Case-insensitive substring match on title or description."""
    if not query:
        return list(tasks)
    needle = query.lower()
    return [
        t for t in tasks
        if needle in t.title.lower() or needle in (t.description or "").lower()
    ]


def filter_by_tags(tasks: Iterable[Task], expression: str) -> list[Task]:
    """
    "a,b" -> tasks having any of the tags (OR).
    "a+b" -> tasks having all of the tags (AND). A '+' anywhere switches to AND.
    Empty parts are skipped, so "+" alone keeps every task.
    """
    if not expression:
        return list(tasks)

    if "+" in expression:
        wanted = [p.strip().lower() for p in expression.split("+") if p.strip()]
        return [t for t in tasks if all(t.has_tag(tag) for tag in wanted)]

    wanted = [p.strip().lower() for p in expression.split(",") if p.strip()]
    return [t for t in tasks if any(t.has_tag(tag) for tag in wanted)]


def filter_by_date(tasks: Iterable[Task], before: datetime | None, after: datetime | None) -> list[Task]:
    """With any bound set, tasks without a due date are dropped."""
    if before is None and after is None:
        return list(tasks)
    result = []
    for t in tasks:
        if t.due is None:
            continue
        if before is not None and t.due > before:
            continue
        if after is not None and t.due < after:
            continue
        result.append(t)
    return result


def filter_by_priority(tasks: Iterable[Task], priority: int) -> list[Task]:
    if priority <= 0:
        return list(tasks)
    return [t for t in tasks if t.priority == priority]


def filter_ready(tasks: Iterable[Task], universe: Iterable[Task]) -> list[Task]:
    """Pending tasks whose dependencies are all done (checked against `universe`)."""
    universe = tuple(universe)
    return [t for t in tasks if not t.is_done() and all_dependencies_met(universe, t)]


# ---- sorting ----

def _due_key(t: Task) -> tuple:
    # no-due-date sorts last
    return (t.due is None, t.due or datetime.min)


def sort_tasks(tasks: Iterable[Task], key: SortKey | str = SortKey.DUE) -> list[Task]:
    match SortKey.parse(key):
        case SortKey.PRIORITY:
            return sorted(tasks, key=lambda t: (-t.priority, *_due_key(t)))
        case SortKey.CREATED:
            return sorted(tasks, key=lambda t: t.created_at, reverse=True)
        case SortKey.STATUS:
            return sorted(tasks, key=lambda t: (t.is_done(), *_due_key(t)))
        case SortKey.TITLE:
            return sorted(tasks, key=lambda t: t.title.lower())
        case _:
            return sorted(tasks, key=lambda t: (*_due_key(t), -t.priority))


def run_query(tasks: Iterable[Task], query: TaskQuery) -> list[Task]:
    universe = tuple(tasks)
    result = filter_by_status(universe, query.show_all)
    result = search(result, query.grep)
    result = filter_by_tags(result, query.tags)
    result = filter_by_date(result, query.before, query.after)
    result = filter_by_priority(result, query.priority)
    if query.only_ready:
        result = filter_ready(result, universe)
    return sort_tasks(result, query.sort)


# ---- views used by alerts and stats ----

def blocked_tasks(tasks: Iterable[Task]) -> list[Task]:
    universe = tuple(tasks)
    return [t for t in universe if not t.is_done() and not all_dependencies_met(universe, t)]


def overdue_tasks(tasks: Iterable[Task], now: datetime) -> list[Task]:
    return [t for t in tasks if t.is_overdue(now)]


def upcoming_tasks(tasks: Iterable[Task], now: datetime, window: timedelta) -> list[Task]:
    return [t for t in tasks if t.is_due_soon(now, window)]
