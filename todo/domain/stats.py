from todo.domain.collection import all_dependencies_met
from todo.domain.task import Task
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable


@dataclass(frozen=True)
class TaskStats:
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    blocked: int = 0
    completion_rate: float = 0.0
    by_priority: dict[int, int] = field(default_factory=dict)
    by_tag: dict[str, int] = field(default_factory=dict)
    avg_completion: timedelta | None = None
    completed_today: int = 0
    completed_week: int = 0


def calculate_stats(tasks: Iterable[Task], now: datetime) -> TaskStats:
    """
    Aggregates a collection. Tags are counted lower-cased; the week starts on
    Sunday in the timezone of `now`.
    """
    tasks = tuple(tasks)
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    # weekday(): Monday=0 .. Sunday=6
    week_start = today_start - timedelta(days=(today_start.weekday() + 1) % 7)

    by_priority: Counter[int] = Counter()
    by_tag: Counter[str] = Counter()
    completed = pending = overdue = blocked = today = week = 0
    durations: list[timedelta] = []

    for t in tasks:
        by_priority[t.priority] += 1
        for tag in t.tags:
            by_tag[tag.lower()] += 1

        if t.is_done():
            completed += 1
            durations.append(t.done_at - t.created_at)
            if t.done_at > today_start:
                today += 1
            if t.done_at > week_start:
                week += 1
            continue

        pending += 1
        if t.is_overdue(now):
            overdue += 1
        if not all_dependencies_met(tasks, t):
            blocked += 1

    total = len(tasks)
    return TaskStats(
        total=total,
        completed=completed,
        pending=pending,
        overdue=overdue,
        blocked=blocked,
        completion_rate=(completed / total * 100) if total else 0.0,
        by_priority=dict(by_priority),
        by_tag=dict(by_tag.most_common()),
        avg_completion=(sum(durations, timedelta()) / len(durations)) if durations else None,
        completed_today=today,
        completed_week=week,
    )
