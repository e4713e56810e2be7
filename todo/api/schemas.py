"""Request / response bodies of the HTTP API."""
from todo.domain.collection import MarkDoneResult
from todo.domain.patch import CLEAR, SetTo
from todo.domain.stats import TaskStats
from todo.services.alerts import Alert
from todo.services.task_service import UpdateTaskInput
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timedelta
from typing import Optional


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    due: Optional[datetime] = None
    done_at: Optional[datetime] = None
    created_at: datetime
    priority: int
    tags: list[str] = Field(default_factory=list)
    repeat: Optional[str] = None
    depends_on: list[int] = Field(default_factory=list)


class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    due: Optional[str] = Field(None, description="YYYY-MM-DD or ISO 8601")
    priority: int = 1
    tags: list[str] = Field(default_factory=list)
    repeat: Optional[str] = None
    depends_on: list[int] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Absent field -> unchanged; explicit null -> cleared."""
    title: Optional[str] = None
    description: Optional[str] = None
    due: Optional[str] = None
    priority: Optional[int] = None
    tags: Optional[list[str]] = None
    repeat: Optional[str] = None
    depends_on: Optional[list[int]] = None

    def to_input(self) -> UpdateTaskInput:
        patches = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            patches[name] = CLEAR if value is None else SetTo(value)
        return UpdateTaskInput(**patches)


class MarkDoneOut(BaseModel):
    completed: TaskOut
    next_occurrence: Optional[TaskOut] = None

    @classmethod
    def from_result(cls, result: MarkDoneResult) -> "MarkDoneOut":
        return cls(
            completed=TaskOut.model_validate(result.completed),
            next_occurrence=(
                TaskOut.model_validate(result.next_occurrence) if result.next_occurrence else None
            ),
        )


class AlertOut(BaseModel):
    kind: str
    message: str
    task: TaskOut

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertOut":
        return cls(kind=str(alert.kind), message=alert.message, task=TaskOut.model_validate(alert.task))


class StatsOut(BaseModel):
    total: int
    completed: int
    pending: int
    overdue: int
    blocked: int
    completion_rate: float
    by_priority: dict[int, int]
    by_tag: dict[str, int]
    avg_completion_seconds: Optional[float] = None
    completed_today: int
    completed_week: int

    @classmethod
    def from_stats(cls, stats: TaskStats) -> "StatsOut":
        avg: Optional[timedelta] = stats.avg_completion
        return cls(
            total=stats.total,
            completed=stats.completed,
            pending=stats.pending,
            overdue=stats.overdue,
            blocked=stats.blocked,
            completion_rate=stats.completion_rate,
            by_priority=stats.by_priority,
            by_tag=stats.by_tag,
            avg_completion_seconds=avg.total_seconds() if avg is not None else None,
            completed_today=stats.completed_today,
            completed_week=stats.completed_week,
        )
