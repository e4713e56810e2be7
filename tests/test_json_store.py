from todo.adapters.json.store import EMPTY_COLLECTION, JsonFileStore
from todo.domain.errors import EncodingError, LockCancelledError
from filelock import FileLock
from pathlib import Path
import json
import threading
import time
import pytest


@pytest.fixture
def store(tmp_path: Path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "data" / "tasks.json", poll_interval=0.01)


def test_missing_file_loads_as_empty_collection(store):
    assert not store.path.exists()
    assert store.load() == EMPTY_COLLECTION


def test_blank_file_loads_as_empty_collection(store):
    store.path.write_bytes(b"  \n")
    assert store.load() == EMPTY_COLLECTION


def test_save_then_load_returns_same_bytes(store):
    data = b'[{"id": 1, "title": "x"}]'
    store.save(data)
    assert store.load() == data


def test_malformed_save_leaves_file_untouched(store):
    # Arrange
    store.save(b"[1, 2]")
    before = store.path.read_bytes()

    # Act
    with pytest.raises(EncodingError):
        store.save(b"{not json")

    # Assert
    assert store.path.read_bytes() == before
    assert not store.path.with_name("tasks.json.tmp").exists()


def test_save_leaves_no_temp_file(store):
    store.save(b"[]")
    assert sorted(p.name for p in store.path.parent.iterdir()) == ["tasks.json"]


def test_exclusive_releases_lock_after_block(store):
    with store.exclusive():
        pass
    # a second, independent lock can be taken right away
    lock = FileLock(str(store.lock_path))
    lock.acquire(timeout=0)
    lock.release()


def test_exclusive_releases_lock_on_error(store):
    with pytest.raises(RuntimeError):
        with store.exclusive():
            raise RuntimeError("boom")
    assert store.with_exclusive(lambda: "again") == "again"


def test_cancel_aborts_lock_wait(store):
    # Arrange: someone else holds the lock
    holder = FileLock(str(store.lock_path))
    holder.acquire()
    cancel = threading.Event()
    threading.Timer(0.05, cancel.set).start()

    # Act / Assert
    try:
        started = time.monotonic()
        with pytest.raises(LockCancelledError):
            with store.exclusive(cancel):
                pytest.fail("lock must not be granted while held")
        assert time.monotonic() - started < 5
    finally:
        holder.release()


def test_lock_timeout(tmp_path):
    store = JsonFileStore(tmp_path / "tasks.json", poll_interval=0.01, lock_timeout=0.05)
    holder = FileLock(str(store.lock_path))
    holder.acquire()
    try:
        with pytest.raises(LockCancelledError) as exc:
            store.with_exclusive(lambda: None)
        assert "timed out" in str(exc.value)
    finally:
        holder.release()


def test_concurrent_loads_during_saves_never_see_partial_data(store):
    store.save(b"[]")
    payloads = [("[" + ",".join(str(i) for i in range(n)) + "]").encode() for n in range(50)]
    errors: list[Exception] = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            try:
                json.loads(store.load())
            except Exception as e:
                errors.append(e)

    t = threading.Thread(target=reader)
    t.start()
    for p in payloads:
        store.save(p)
    done.set()
    t.join()

    assert errors == []
    assert store.load() == payloads[-1]
