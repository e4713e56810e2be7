

### COMMENTS
# ============================================
# Error conventions used across the project
# ============================================
# - Domain functions (domain/collection.py, domain/query.py):
#     * validate input and raise TaskValidationError
#     * missing ids -> TaskNotFoundError, lifecycle rules -> TaskAlreadyDoneError / TaskBlockedError
#
# - Store / repository adapters:
#     * map json/OSError failures to EncodingError, DecodeError, StorageError
#     * lock waits aborted by the caller -> LockCancelledError
#
# - Services pass everything through unchanged.
#
# - UI (CLI, HTTP):
#     * catch DomainError (or a concrete subclass) and render / map to a status code
#     * anything else is a technical failure and gets logged with its stack trace


class DomainError(Exception):
    """Base class for every error raised by the task core.

    Lets the outer layers tell business failures (bad input, missing task,
    blocked dependency, unreadable data file) apart from programming errors.
    Not raised directly; use a subclass.
    """


class TaskValidationError(DomainError):
    """Input does not satisfy the task rules.

    Examples:
    - empty title,
    - due date that does not parse,
    - a recurrence id that would collide with an existing task.

    `field` names the offending input so the UI can point at it.
    """
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(self.__str__())

    def __str__(self):
        return f"Invalid '{self.field}': {self.message}"


class TaskNotFoundError(DomainError):
    """The referenced task id is not in the collection."""
    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(self.__str__())

    def __str__(self):
        return f"Task {self.task_id} not found."


class TaskAlreadyDoneError(DomainError):
    """`mark_done` was called on a task that already has `done_at` set."""
    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(self.__str__())

    def __str__(self):
        return f"Task {self.task_id} is already completed."


class TaskBlockedError(DomainError):
    """The task has dependencies that are missing or not done yet."""
    def __init__(self, task_id: int, pending: tuple[int, ...] = ()):
        self.task_id = task_id
        self.pending = tuple(pending)
        super().__init__(self.__str__())

    def __str__(self):
        if self.pending:
            ids = ", ".join(str(i) for i in self.pending)
            return f"Cannot complete task {self.task_id}: dependencies not met ({ids})."
        return f"Cannot complete task {self.task_id}: dependencies not met."


class EncodingError(DomainError):
    """Data handed to or read from the store is not well-formed."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DecodeError(EncodingError):
    """Stored bytes are valid JSON but not a valid task collection."""


class LockCancelledError(DomainError):
    """Waiting for the exclusive data-file lock was aborted by the caller."""
    def __init__(self, lock_path: str, reason: str = "cancelled"):
        self.lock_path = lock_path
        self.reason = reason
        super().__init__(self.__str__())

    def __str__(self):
        return f"Lock wait on {self.lock_path} aborted: {self.reason}."


class StorageError(DomainError):
    """Underlying file I/O failed; the previous file contents are intact."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
