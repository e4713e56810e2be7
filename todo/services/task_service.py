from todo.ports.task_repository import TaskRepository
from todo.ports.clock import Clock
from todo.domain.task import Task, TaskId
from todo.domain.errors import TaskValidationError
from todo.domain.patch import CLEAR, UNCHANGED, Patch, SetTo, apply_patch
from todo.domain.query import TaskQuery, run_query
from todo.domain.stats import TaskStats, calculate_stats
from todo.domain import collection
from todo.domain.collection import MarkDoneResult
from dataclasses import dataclass, replace
from datetime import datetime
from threading import Event
from typing import Iterable, Optional
import logging

logger = logging.getLogger(__name__)


### COMMENTS
# ==========================================================
# Service layer (services/task_service.py) — use cases.
# ==========================================================
# Role:
# - The transaction boundary over the `TaskRepository` port.
# - Every mutation is: exclusive lock -> load everything -> pure domain function
#   -> save everything. The collection never outlives one call.
# - Reads (`query_tasks`, `get_task`, `list_all`) skip the lock and may see a
#   snapshot taken while another process is mid-transaction.
#
# Rules:
# - Errors from the domain and the repository are passed through unchanged;
#   mapping them to exit codes / HTTP statuses is the caller's job.
# - No retries here beyond the bounded lock polling of the store.
# - `cancel` (threading.Event) aborts a pending lock wait, nothing else.


@dataclass(frozen=True)
class AddTaskInput:
    title: str
    description: str | None = None
    due: datetime | None = None
    priority: int = 1
    tags: tuple[str, ...] = ()
    repeat: str | None = None
    depends_on: tuple[int, ...] = ()


@dataclass(frozen=True)
class UpdateTaskInput:
    """
    Partial edit; every field is a Patch:
    UNCHANGED (default), SetTo(value) or CLEAR.

    `title` and `priority` cannot be cleared. `due` accepts SetTo(datetime)
    or SetTo("YYYY-MM-DD").
    """
    title: Patch[str] = UNCHANGED
    description: Patch[str] = UNCHANGED
    due: Patch["datetime | str"] = UNCHANGED
    priority: Patch[int] = UNCHANGED
    tags: Patch[Iterable[str]] = UNCHANGED
    repeat: Patch[str] = UNCHANGED
    depends_on: Patch[Iterable[int]] = UNCHANGED


class TaskService:
    """
    Use cases for tasks.

    :param repo: TaskRepository implementation.
    :param clock: source of "now" for created_at / done_at.
    """
    def __init__(self, repo: TaskRepository, clock: Clock) -> None:
        self.repo = repo
        self.clock = clock

    def add_task(self, data: AddTaskInput, *, cancel: Optional[Event] = None) -> Task:
        """
            Creates a task and persists it.

            - `title` must not be empty or blank (`TaskValidationError("title", ...)`).
            - `id` = max existing id + 1, `created_at` = clock.now().
            - priority outside 1..3 becomes 1; repeat is normalized
              (known rules lower-cased, "none" dropped, unknown kept verbatim).

            :return: the created `Task` with its assigned id.
            :raises TaskValidationError: invalid title.
            :raises LockCancelledError: `cancel` fired while waiting for the lock.
        """
        if not data.title or not data.title.strip():
            raise TaskValidationError("title", "title must not be empty")

        with self.repo.exclusive(cancel):
            tasks = self.repo.load_tasks(cancel)
            tasks, created = collection.add(tasks, data.title, data.due, self.clock.now())
            created = replace(
                created,
                description=data.description or None,
                priority=collection.normalize_priority(data.priority),
                tags=tuple(data.tags),
                repeat=collection.normalize_repeat(data.repeat),
                depends_on=tuple(data.depends_on),
            )
            tasks = collection.replace_task(tasks, created)
            self.repo.save_tasks(tasks, cancel)

        logger.info("Task added id=%s title=%r", created.id, created.title)
        return created

    def update_task(self, task_id: TaskId, changes: UpdateTaskInput, *, cancel: Optional[Event] = None) -> Task:
        """
            Applies a partial edit to an existing task.

            :raises TaskNotFoundError: no task with `task_id`.
            :raises TaskValidationError: empty title, unparseable due date,
                or an attempt to clear `title` / `priority`.
            :return: the updated `Task`.
        """
        due_patch = changes.due
        if isinstance(due_patch, SetTo) and isinstance(due_patch.value, str):
            due_patch = SetTo(collection.parse_date(due_patch.value, "due"))
        if changes.title is CLEAR:
            raise TaskValidationError("title", "title cannot be cleared")
        if changes.priority is CLEAR:
            raise TaskValidationError("priority", "priority cannot be cleared")
        if isinstance(changes.title, SetTo) and not (changes.title.value or "").strip():
            raise TaskValidationError("title", "title must not be empty")

        with self.repo.exclusive(cancel):
            tasks = self.repo.load_tasks(cancel)
            task = collection.get_by_id(tasks, task_id)

            priority = apply_patch(changes.priority, task.priority)
            repeat = apply_patch(changes.repeat, task.repeat)
            updated = replace(
                task,
                title=apply_patch(changes.title, task.title).strip(),
                description=apply_patch(changes.description, task.description) or None,
                due=apply_patch(due_patch, task.due),
                priority=collection.normalize_priority(priority),
                tags=tuple(apply_patch(changes.tags, task.tags, ())),
                repeat=collection.normalize_repeat(repeat),
                depends_on=tuple(apply_patch(changes.depends_on, task.depends_on, ())),
            )
            tasks = collection.replace_task(tasks, updated)
            self.repo.save_tasks(tasks, cancel)

        logger.info("Task updated id=%s", updated.id)
        return updated

    def remove_task(self, task_id: TaskId, *, cancel: Optional[Event] = None) -> None:
        """
            Deletes a task. Other tasks that depend on it stay blocked.

            :raises TaskNotFoundError: no task with `task_id`.
        """
        with self.repo.exclusive(cancel):
            tasks = self.repo.load_tasks(cancel)
            tasks = collection.remove(tasks, task_id)
            self.repo.save_tasks(tasks, cancel)
        logger.info("Task removed id=%s", task_id)

    delete_task_by_id = remove_task

    def mark_done_by_id(self, task_id: TaskId, *, cancel: Optional[Event] = None) -> MarkDoneResult:
        """
            Completes a task; repeating tasks with a due date get their next occurrence.

            Nothing is saved when any check fails.

            :raises TaskNotFoundError: no task with `task_id`.
            :raises TaskAlreadyDoneError: the task is already completed.
            :raises TaskBlockedError: a dependency is missing or still pending.
            :raises TaskValidationError: the next occurrence id is already taken.
            :return: `MarkDoneResult` with the completed task and the new occurrence (if any).
        """
        with self.repo.exclusive(cancel):
            tasks = self.repo.load_tasks(cancel)
            result = collection.mark_done(tasks, task_id, self.clock.now())
            self.repo.save_tasks(result.tasks, cancel)

        if result.next_occurrence is not None:
            logger.info(
                "Task done id=%s next_occurrence id=%s due=%s",
                task_id, result.next_occurrence.id, result.next_occurrence.due,
            )
        else:
            logger.info("Task done id=%s", task_id)
        return result

    mark_done = mark_done_by_id

    def get_task(self, task_id: TaskId, *, cancel: Optional[Event] = None) -> Task:
        """
            :raises TaskNotFoundError: no task with `task_id`.
        """
        return collection.get_by_id(self.repo.load_tasks(cancel), task_id)

    def query_tasks(self, query: TaskQuery | None = None, *, cancel: Optional[Event] = None) -> list[Task]:
        """Read-only: filter + sort pipeline over the stored collection."""
        query = query or TaskQuery()
        tasks = self.repo.load_tasks(cancel)
        result = run_query(tasks, query)
        logger.debug("Query %s -> %d of %d tasks", query, len(result), len(tasks))
        return result

    def list_all(self, *, cancel: Optional[Event] = None) -> tuple[Task, ...]:
        """The whole collection in file order (no filtering)."""
        return self.repo.load_tasks(cancel)

    def stats(self, now: datetime | None = None, *, cancel: Optional[Event] = None) -> TaskStats:
        return calculate_stats(self.repo.load_tasks(cancel), now or self.clock.now())
