from todo.domain import collection
from todo.domain.collection import (
    add,
    compute_next_due,
    find_dependency_cycle,
    is_reachable_done,
    mark_done,
    next_id,
    normalize_priority,
    normalize_repeat,
    parse_date,
    parse_ids,
    parse_tags,
    remove,
)
from todo.domain.errors import (
    TaskAlreadyDoneError,
    TaskBlockedError,
    TaskNotFoundError,
    TaskValidationError,
)
from datetime import datetime, timedelta, timezone
import pytest

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_next_id_is_max_plus_one(make_task):
    tasks = (make_task(3), make_task(7), make_task(5))
    assert next_id(tasks) == 8
    assert next_id(()) == 1


def test_add_appends_with_next_id(make_task):
    # Arrange
    tasks = (make_task(1), make_task(4))

    # Act
    updated, created = add(tasks, "  Buy milk ", None, NOW)

    # Assert
    assert created.id == 5
    assert created.title == "Buy milk"
    assert created.created_at == NOW
    assert created.priority == 1
    assert updated[-1] == created
    assert len(tasks) == 2


@pytest.mark.parametrize("title", ["", "   "])
def test_add_rejects_blank_title(title):
    with pytest.raises(TaskValidationError) as exc:
        add((), title, None, NOW)
    assert exc.value.field == "title"


def test_mark_done_sets_done_at_only_on_target(make_task):
    tasks = (make_task(1), make_task(2))

    result = mark_done(tasks, 2, NOW)

    assert result.completed.done_at == NOW
    assert result.tasks[0].done_at is None
    assert result.next_occurrence is None
    assert tasks[1].done_at is None


def test_mark_done_missing_id_raises_not_found(make_task):
    with pytest.raises(TaskNotFoundError):
        mark_done((make_task(1),), 9, NOW)


def test_mark_done_twice_raises_already_done(make_task):
    tasks = (make_task(1, done_at=NOW),)
    with pytest.raises(TaskAlreadyDoneError):
        mark_done(tasks, 1, NOW)


def test_blocked_task_becomes_completable_after_dependency(make_task):
    # Arrange: A pending, B depends on A
    tasks = (make_task(1, "A"), make_task(2, "B", depends_on=(1,)))

    # Act / Assert
    with pytest.raises(TaskBlockedError) as exc:
        mark_done(tasks, 2, NOW)
    assert exc.value.pending == (1,)

    tasks = mark_done(tasks, 1, NOW).tasks
    result = mark_done(tasks, 2, NOW)
    assert result.completed.is_done()


def test_missing_dependency_blocks_forever(make_task):
    tasks = (make_task(1, depends_on=(42,)),)
    with pytest.raises(TaskBlockedError):
        mark_done(tasks, 1, NOW)


def test_daily_recurrence_creates_next_occurrence(make_task):
    # Arrange
    tasks = (make_task(1, "Standup", due=utc(2024, 1, 10), repeat="daily", tags=("work",), priority=2),)

    # Act
    result = mark_done(tasks, 1, NOW)

    # Assert
    nxt = result.next_occurrence
    assert nxt is not None
    assert nxt.id == 2
    assert nxt.due == utc(2024, 1, 11)
    assert nxt.done_at is None
    assert nxt.created_at == NOW
    assert (nxt.title, nxt.tags, nxt.priority, nxt.repeat) == ("Standup", ("work",), 2, "daily")
    assert [t.id for t in result.tasks] == [1, 2]


def test_recurrence_without_due_date_does_nothing(make_task):
    result = mark_done((make_task(1, repeat="weekly"),), 1, NOW)
    assert result.next_occurrence is None
    assert len(result.tasks) == 1


def test_recurrence_id_collision_leaves_collection_unchanged(make_task):
    tasks = (make_task(1, due=utc(2024, 1, 10), repeat="daily"), make_task(2))

    with pytest.raises(TaskValidationError) as exc:
        mark_done(tasks, 1, NOW)

    assert exc.value.field == "id"
    assert tasks[0].done_at is None


@pytest.mark.parametrize(
    "due, repeat, expected",
    [
        (utc(2024, 1, 10, 9), "daily", utc(2024, 1, 11, 9)),
        (utc(2024, 1, 10), "WEEKLY", utc(2024, 1, 17)),
        (utc(2024, 1, 31), "monthly", utc(2024, 3, 2)),
        (utc(2023, 3, 31), "monthly", utc(2023, 5, 1)),
        (utc(2023, 12, 15), "monthly", utc(2024, 1, 15)),
        (utc(2024, 1, 10), "yearly", None),
        (utc(2024, 1, 10), None, None),
    ],
)
def test_compute_next_due(due, repeat, expected):
    assert compute_next_due(due, repeat) == expected


def test_remove_does_not_cascade_to_dependents(make_task):
    tasks = (make_task(1), make_task(2, depends_on=(1,)))

    remaining = remove(tasks, 1)

    assert [t.id for t in remaining] == [2]
    assert remaining[0].depends_on == (1,)
    with pytest.raises(TaskBlockedError):
        mark_done(remaining, 2, NOW)


def test_remove_missing_raises_not_found():
    with pytest.raises(TaskNotFoundError):
        remove((), 1)


def test_find_dependency_cycle(make_task):
    tasks = (
        make_task(1, depends_on=(2,)),
        make_task(2, depends_on=(3,)),
        make_task(3, depends_on=(1,)),
        make_task(4, depends_on=(5,)),
    )
    assert find_dependency_cycle(tasks, 1) == [1, 2, 3, 1]
    assert find_dependency_cycle(tasks, 4) is None


def test_is_reachable_done(make_task):
    done = NOW - timedelta(hours=1)
    tasks = (
        make_task(1, done_at=done),
        make_task(2, done_at=done, depends_on=(1,)),
        make_task(3, depends_on=(2,)),
        make_task(4, depends_on=(3,)),
        make_task(5, depends_on=(6,)),
        make_task(6, depends_on=(5,)),
        make_task(7, depends_on=(99,)),
    )
    assert is_reachable_done(tasks, 3) is True
    assert is_reachable_done(tasks, 4) is False
    assert is_reachable_done(tasks, 5) is False
    assert is_reachable_done(tasks, 7) is False
    with pytest.raises(TaskNotFoundError):
        is_reachable_done(tasks, 100)


def test_normalize_helpers():
    assert normalize_priority(3) == 3
    assert normalize_priority(0) == 1
    assert normalize_priority(7) == 1
    assert normalize_repeat("Daily") == "daily"
    assert normalize_repeat("none") is None
    assert normalize_repeat("  ") is None
    assert normalize_repeat("every-other-day") == "every-other-day"


def test_parse_helpers():
    assert parse_tags(" work, home ,,") == ("work", "home")
    assert parse_ids("1, x, 3,") == (1, 3)
    assert parse_date("2024-01-10") == utc(2024, 1, 10)
    assert parse_date("2024-01-10T08:30:00Z") == utc(2024, 1, 10, 8, 30)
    with pytest.raises(TaskValidationError) as exc:
        parse_date("tomorrow", "before")
    assert exc.value.field == "before"


def test_replace_task_keeps_position(make_task):
    tasks = (make_task(1), make_task(2), make_task(3))
    updated = collection.replace_task(tasks, make_task(2, "renamed"))
    assert [t.title for t in updated] == ["task 1", "renamed", "task 3"]


@pytest.mark.parametrize("repeat", ["daily", "weekly", "monthly"])
def test_recurrence_past_calendar_end_is_a_validation_error(make_task, repeat):
    # Arrange
    tasks = (make_task(1, due=datetime.max.replace(tzinfo=timezone.utc) - timedelta(hours=1), repeat=repeat),)

    # Act / Assert
    with pytest.raises(TaskValidationError) as exc:
        mark_done(tasks, 1, NOW)
    assert exc.value.field == "due"
