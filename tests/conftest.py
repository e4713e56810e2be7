from todo.domain.task import Task, TaskId
from datetime import datetime, timezone
import pytest

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, fixed: datetime | None = None):
        # without `fixed` always returns the same "now"
        self.fixed = fixed or NOW

    def now(self) -> datetime:
        return self.fixed


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_task():
    """Task factory with sensible defaults: make_task(1, "title", due=..., ...)."""
    def _make(task_id: int, title: str | None = None, **fields) -> Task:
        fields.setdefault("created_at", NOW)
        return Task(id=TaskId(task_id), title=title or f"task {task_id}", **fields)
    return _make
