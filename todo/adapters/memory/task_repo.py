from todo.domain.task import Task
from todo.domain.errors import DecodeError
from contextlib import contextmanager
from threading import Event, Lock
from typing import Iterable, Iterator, Optional

### COMMENTS
# ==========================================================
# In-memory task repository (adapters/memory/task_repo.py).
# ==========================================================
# Implements the `TaskRepository` port without touching the disk.
#
# - Used by service tests and the `demo` CLI command.
# - Data lives in a tuple `_tasks` for the lifetime of the object.
# - `exclusive` is a plain threading.Lock, so the service's transaction
#   discipline is the same as with the JSON file store.
# - `save_count` lets tests check that failed mutations never saved.


class InMemoryTaskRepository:
    """
        Repository seeded with an optional collection of tasks.
        :param initial: tasks to start with; duplicate ids are rejected
        the same way the JSON repository rejects them on load.
    """
    def __init__(self, initial: Iterable[Task] | None = None) -> None:
        tasks = tuple(initial or ())
        ids = [t.id for t in tasks]
        if len(ids) != len(set(ids)):
            raise DecodeError("duplicate task ids in initial data")
        self._tasks: tuple[Task, ...] = tasks
        self._lock = Lock()
        self.save_count = 0

    def load_tasks(self, cancel: Optional[Event] = None) -> tuple[Task, ...]:
        """
            Returns the current collection (a tuple, so callers cannot mutate it).
        """
        return self._tasks

    def save_tasks(self, tasks: tuple[Task, ...], cancel: Optional[Event] = None) -> None:
        """
            Replaces the whole collection.
        """
        self._tasks = tuple(tasks)
        self.save_count += 1

    @contextmanager
    def exclusive(self, cancel: Optional[Event] = None) -> Iterator[None]:
        """
            Serializes transactions inside this process.
        """
        with self._lock:
            yield
