from contextlib import AbstractContextManager
from threading import Event
from typing import Optional, Protocol
from todo.domain.task import Task


### COMMENTS
# ==========================================================
# Task repository contract (ports/task_repository.py).
# ==========================================================
# - Loads and saves the *whole* collection; there are no partial updates.
# - Isolates the encoding format from the service; no business rules here.
# - Technology failures are mapped to domain errors (DecodeError, StorageError).
# - `exclusive` exposes the underlying lock so the service can make
#   load -> mutate -> save atomic across threads and processes.


class TaskRepository(Protocol):
    """Typed access to the persisted task collection."""

    def load_tasks(self, cancel: Optional[Event] = None) -> tuple[Task, ...]:
        """Return every stored task in file order.

        Returns:
            tuple[Task, ...]: empty when nothing was saved yet.

        Domain errors:
            DecodeError: stored data is not a valid task collection.
        """

    def save_tasks(self, tasks: tuple[Task, ...], cancel: Optional[Event] = None) -> None:
        """Replace the stored collection with `tasks`.

        Domain errors:
            StorageError: the write failed (previous contents intact).
        """

    def exclusive(self, cancel: Optional[Event] = None) -> AbstractContextManager[None]:
        """Scoped exclusive section for one read-modify-write transaction.

        Domain errors:
            LockCancelledError: `cancel` fired before the lock was obtained.
        """
