from todo.adapters.json.store import JsonFileStore
from todo.adapters.json.task_repo import JsonTaskRepository, decode_tasks, encode_tasks
from todo.domain.errors import DecodeError
from datetime import datetime, timezone
import json
import pytest


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_optional_fields_are_omitted(make_task):
    records = json.loads(encode_tasks((make_task(1, "plain"),)))
    assert set(records[0]) == {"id", "title", "created_at", "priority"}
    assert records[0]["created_at"].endswith("Z")


def test_round_trip_through_file(tmp_path, make_task):
    # Arrange
    repo = JsonTaskRepository(JsonFileStore(tmp_path / "tasks.json"))
    task = make_task(
        1,
        "full",
        description="all fields",
        due=utc(2024, 1, 10),
        done_at=utc(2024, 1, 9, 8, 30),
        priority=3,
        tags=("Work", "home"),
        repeat="weekly",
        depends_on=(4, 5),
    )

    # Act
    repo.save_tasks((task,))
    loaded = repo.load_tasks()

    # Assert
    assert loaded == (task,)


def test_empty_file_loads_as_no_tasks(tmp_path):
    repo = JsonTaskRepository(JsonFileStore(tmp_path / "tasks.json"))
    assert repo.load_tasks() == ()


def test_reads_legacy_timestamps_without_z():
    data = b'[{"id": 2, "title": "t", "created_at": "2024-01-01T10:00:00", "due": "2024-01-05T00:00:00+02:00"}]'
    (task,) = decode_tasks(data)
    assert task.created_at == utc(2024, 1, 1, 10)
    assert task.due == utc(2024, 1, 4, 22)
    assert task.priority == 1


@pytest.mark.parametrize(
    "data, fragment",
    [
        (b"{oops", "invalid JSON"),
        (b'{"id": 1}', "JSON array"),
        (b'[{"title": "no id", "created_at": "2024-01-01T00:00:00Z"}]', "record 0"),
        (b'[{"id": "1", "title": "t", "created_at": "2024-01-01T00:00:00Z"}]', "record 0"),
        (b'[{"id": 0, "title": "t", "created_at": "2024-01-01T00:00:00Z"}]', "positive integer"),
        (b'[{"id": -3, "title": "t", "created_at": "2024-01-01T00:00:00Z"}]', "positive integer"),
        (b'[{"id": 1, "title": "t", "created_at": "yesterday"}]', "record 0"),
        (b'[{"id": 1, "title": "t", "created_at": "2024-01-01T00:00:00Z", "tags": "work"}]', "record 0"),
        (
            b'[{"id": 1, "title": "a", "created_at": "2024-01-01T00:00:00Z"},'
            b' {"id": 1, "title": "b", "created_at": "2024-01-01T00:00:00Z"}]',
            "duplicate id",
        ),
    ],
)
def test_decode_errors(data, fragment):
    with pytest.raises(DecodeError) as exc:
        decode_tasks(data)
    assert fragment in str(exc.value)


def test_out_of_range_priority_is_normalized_on_load():
    data = (
        b'[{"id": 1, "title": "a", "created_at": "2024-01-01T00:00:00Z", "priority": 9},'
        b' {"id": 2, "title": "b", "created_at": "2024-01-01T00:00:00Z", "priority": -4},'
        b' {"id": 3, "title": "c", "created_at": "2024-01-01T00:00:00Z", "priority": 3}]'
    )
    assert [(t.id, t.priority) for t in decode_tasks(data)] == [(1, 1), (2, 1), (3, 3)]
