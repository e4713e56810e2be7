from contextlib import AbstractContextManager
from threading import Event
from typing import Callable, Optional, Protocol, TypeVar

T = TypeVar("T")


### COMMENTS
# ==========================================================
# Byte-level store contract (ports/store.py).
# ==========================================================
# The whole collection is one blob. Implementations must:
# - return the empty-array encoding when nothing was saved yet,
# - validate before writing and replace the target atomically,
# - offer a cross-process exclusive section for load -> mutate -> save.


class Store(Protocol):

    def load(self) -> bytes:
        """Raw contents; b"[]" when the file is absent or empty. Never fails for "no data yet"."""

    def save(self, data: bytes) -> None:
        """Validate `data`, then atomically replace the stored blob.

        Domain errors:
            EncodingError: `data` is not well-formed; previous contents untouched.
            StorageError: the write failed; previous contents untouched.
        """

    def exclusive(self, cancel: Optional[Event] = None) -> AbstractContextManager[None]:
        """Scoped cross-process lock. Released on every exit path.

        Domain errors:
            LockCancelledError: `cancel` was set (or the wait timed out) before acquisition.
        """

    def with_exclusive(self, fn: Callable[[], T], cancel: Optional[Event] = None) -> T:
        """Run `fn` inside `exclusive(cancel)` and return its result."""

    def close(self) -> None:
        """Release resources (file stores hold none between calls)."""
