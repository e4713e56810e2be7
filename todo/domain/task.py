from typing import NewType
from datetime import datetime, timedelta
from dataclasses import dataclass

TaskId = NewType("TaskId", int)


@dataclass(frozen=True)
class Task():
    """
    Domain model of a single task; immutable (a change means a new instance via
    `dataclasses.replace`); all timestamps are UTC-aware and supplied by the caller.

    `done_at` is the only completion marker: a task is done iff it is set.
    `tags` keep their original case and compare lower-cased.
    `depends_on` may name ids that do not exist; those never count as met.
    """
    id: TaskId
    title: str
    created_at: datetime
    description: str | None = None
    due: datetime | None = None
    done_at: datetime | None = None
    priority: int = 1
    tags: tuple[str, ...] = ()
    repeat: str | None = None
    depends_on: tuple[int, ...] = ()

    def is_done(self) -> bool:
        return self.done_at is not None

    def is_overdue(self, now: datetime) -> bool:
        if self.is_done() or self.due is None:
            return False
        return self.due < now

    def is_due_soon(self, now: datetime, window: timedelta) -> bool:
        if self.is_done() or self.due is None:
            return False
        return now <= self.due < now + window

    def has_tag(self, tag: str) -> bool:
        wanted = tag.strip().lower()
        return any(t.lower() == wanted for t in self.tags)
