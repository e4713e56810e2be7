from todo.domain.errors import EncodingError, LockCancelledError, StorageError
from filelock import FileLock, Timeout
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar
import json
import os
import threading
import time

T = TypeVar("T")

EMPTY_COLLECTION = b"[]"
DEFAULT_POLL_INTERVAL = 0.05

### COMMENTS
# ==========================================================
# File store for the whole collection (adapters/json/store.py).
# ==========================================================
# - One JSON file holds everything; `load` returns raw bytes, `save` replaces them.
# - Writes go to `<file>.tmp`, are fsync'ed and then renamed over the target with
#   os.replace, so readers see either the old or the new file, never half of one.
# - Cross-process exclusion uses an OS advisory lock on the sidecar `<file>.lock`
#   (filelock); the data file itself is never locked.
# - Inside one process a reader/writer lock keeps saves exclusive against loads
#   while letting loads run side by side.
# - No logging here: failures surface as EncodingError / StorageError / LockCancelledError.


class _ReadWriteLock:
    """Many readers or one writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class JsonFileStore:
    def __init__(
        self,
        path: Path,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        lock_timeout: float | None = None,
    ) -> None:
        """Creates the parent directory of the data file if it does not exist.

        :param poll_interval: seconds between lock attempts.
        :param lock_timeout: give up waiting after this many seconds (None = wait until cancelled).
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.poll_interval = poll_interval
        self.lock_timeout = lock_timeout
        self._rw = _ReadWriteLock()

    def load(self) -> bytes:
        """Raw file contents; missing or empty file -> b"[]"."""
        with self._rw.read():
            try:
                data = self.path.read_bytes()
            except FileNotFoundError:
                return EMPTY_COLLECTION
            except OSError as e:
                raise StorageError(f"cannot read {self.path}: {e}")
        if not data.strip():
            return EMPTY_COLLECTION
        return data

    def save(self, data: bytes) -> None:
        """Validates `data` as JSON, then writes tmp -> fsync -> os.replace."""
        try:
            json.loads(data)
        except (TypeError, ValueError) as e:
            raise EncodingError(f"refusing to save malformed JSON: {e}")

        tmp = self.path.with_name(self.path.name + ".tmp")
        with self._rw.write():
            try:
                with tmp.open("wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, self.path)
            except OSError as e:
                try:
                    if tmp.exists():
                        tmp.unlink()
                except OSError:
                    pass
                raise StorageError(f"cannot write {self.path}: {e}")

    @contextmanager
    def exclusive(self, cancel: Optional[threading.Event] = None) -> Iterator[None]:
        """
        Holds the sidecar lock for the duration of the `with` block.

        Polls every `poll_interval`; if `cancel` is set (or `lock_timeout`
        elapses) before the lock is obtained, raises LockCancelledError.
        The lock is released on every exit path.
        """
        lock = FileLock(str(self.lock_path))
        deadline = None if self.lock_timeout is None else time.monotonic() + self.lock_timeout
        while True:
            try:
                lock.acquire(timeout=0)
                break
            except Timeout:
                pass
            except OSError as e:
                raise StorageError(f"cannot open lock file {self.lock_path}: {e}")

            if cancel is not None and cancel.is_set():
                raise LockCancelledError(str(self.lock_path))
            if deadline is not None and time.monotonic() >= deadline:
                raise LockCancelledError(str(self.lock_path), f"timed out after {self.lock_timeout}s")
            if cancel is not None:
                cancel.wait(self.poll_interval)
            else:
                time.sleep(self.poll_interval)
        try:
            yield
        finally:
            lock.release()

    def with_exclusive(self, fn: Callable[[], T], cancel: Optional[threading.Event] = None) -> T:
        with self.exclusive(cancel):
            return fn()

    def close(self) -> None:
        return
