from todo.ports.task_repository import TaskRepository
from todo.ports.store import Store
from todo.domain.task import Task, TaskId
from todo.domain.errors import DecodeError
from todo.domain.collection import normalize_priority
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from threading import Event
from typing import Any, Optional
import json

### COMMENTS
# ==========================================================
# JSON repository over a byte store (adapters/json/task_repo.py).
# ==========================================================
# File layout: one JSON array, one object per task.
#   required: id, title, created_at, priority
#   optional (omitted when empty): description, due, done_at, tags, repeat, depends_on
# Timestamps are ISO 8601 UTC with a trailing 'Z'.
# Any structural problem while loading -> DecodeError with the record index.


def _encode_dt(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_utc_z(s: Any) -> datetime:
    """Parses an ISO 8601 timestamp; naive values are taken as UTC."""
    if not isinstance(s, str):
        raise ValueError(f"timestamp must be a string, got {type(s).__name__}")
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _encode_task(task: Task) -> dict:
    rec: dict[str, Any] = {
        "id": int(task.id),
        "title": task.title,
    }
    if task.description:
        rec["description"] = task.description
    if task.due is not None:
        rec["due"] = _encode_dt(task.due)
    if task.done_at is not None:
        rec["done_at"] = _encode_dt(task.done_at)
    rec["created_at"] = _encode_dt(task.created_at)
    rec["priority"] = int(task.priority)
    if task.tags:
        rec["tags"] = list(task.tags)
    if task.repeat:
        rec["repeat"] = task.repeat
    if task.depends_on:
        rec["depends_on"] = [int(d) for d in task.depends_on]
    return rec


def _int_field(row: dict, key: str, default: int | None = None) -> int:
    value = row.get(key, default)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer")
    return value


def _decode_task(row: Any) -> Task:
    if not isinstance(row, dict):
        raise ValueError("record must be an object")
    if "id" not in row or "title" not in row or "created_at" not in row:
        raise KeyError("id, title and created_at are required")

    title = row["title"]
    if not isinstance(title, str):
        raise ValueError("'title' must be a string")
    description = row.get("description")
    if description is not None and not isinstance(description, str):
        raise ValueError("'description' must be a string")
    repeat = row.get("repeat")
    if repeat is not None and not isinstance(repeat, str):
        raise ValueError("'repeat' must be a string")

    tags = row.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValueError("'tags' must be a list of strings")
    deps = row.get("depends_on") or []
    if not isinstance(deps, list) or any(isinstance(d, bool) or not isinstance(d, int) for d in deps):
        raise ValueError("'depends_on' must be a list of integers")

    task_id = _int_field(row, "id")
    if task_id < 1:
        raise ValueError("'id' must be a positive integer")

    return Task(
        id=TaskId(task_id),
        title=title,
        description=description or None,
        due=_parse_utc_z(row["due"]) if row.get("due") else None,
        done_at=_parse_utc_z(row["done_at"]) if row.get("done_at") else None,
        created_at=_parse_utc_z(row["created_at"]),
        priority=normalize_priority(_int_field(row, "priority", 1)),
        tags=tuple(tags),
        repeat=repeat or None,
        depends_on=tuple(deps),
    )


def encode_tasks(tasks: tuple[Task, ...]) -> bytes:
    return json.dumps([_encode_task(t) for t in tasks], ensure_ascii=False, indent=2).encode("utf-8")


def decode_tasks(data: bytes) -> tuple[Task, ...]:
    try:
        records = json.loads(data)
    except ValueError as e:
        raise DecodeError(f"invalid JSON: {e}")
    if not isinstance(records, list):
        raise DecodeError("task file must contain a JSON array")

    tasks: list[Task] = []
    seen: set[int] = set()
    for index, record in enumerate(records):
        try:
            task = _decode_task(record)
        except (KeyError, ValueError) as e:
            raise DecodeError(f"record {index}: {e}")
        if task.id in seen:
            raise DecodeError(f"record {index}: duplicate id {task.id}")
        seen.add(task.id)
        tasks.append(task)
    return tuple(tasks)


class JsonTaskRepository(TaskRepository):
    def __init__(self, store: Store) -> None:
        """Typed load/save of the whole collection on top of a byte store."""
        self.store = store

    def load_tasks(self, cancel: Optional[Event] = None) -> tuple[Task, ...]:
        return decode_tasks(self.store.load())

    def save_tasks(self, tasks: tuple[Task, ...], cancel: Optional[Event] = None) -> None:
        self.store.save(encode_tasks(tuple(tasks)))

    def exclusive(self, cancel: Optional[Event] = None) -> AbstractContextManager[None]:
        return self.store.exclusive(cancel)
