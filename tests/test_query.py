from todo.domain.query import (
    TaskQuery,
    blocked_tasks,
    filter_by_date,
    filter_by_tags,
    run_query,
    search,
    sort_tasks,
)
from todo.domain.enums import SortKey
from todo.domain.errors import TaskValidationError
from datetime import datetime, timedelta, timezone
import pytest

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def ids(tasks) -> list[int]:
    return [t.id for t in tasks]


@pytest.fixture
def tagged(make_task):
    return (
        make_task(1, tags=("work",)),
        make_task(2, tags=("Work", "urgent")),
        make_task(3, tags=("home",)),
    )


def test_tag_filter_or(tagged):
    assert ids(filter_by_tags(tagged, "work,home")) == [1, 2, 3]


def test_tag_filter_and(tagged):
    assert ids(filter_by_tags(tagged, "work+urgent")) == [2]


def test_tag_filter_is_case_insensitive(tagged):
    assert ids(filter_by_tags(tagged, "WORK")) == [1, 2]


def test_search_matches_title_or_description(make_task):
    tasks = (make_task(1, "Buy milk"), make_task(2, "Call", description="about MILK prices"), make_task(3, "Gym"))
    assert ids(search(tasks, "milk")) == [1, 2]


def test_date_filter_drops_tasks_without_due(make_task):
    tasks = (
        make_task(1, due=utc(2024, 1, 5)),
        make_task(2, due=utc(2024, 1, 15)),
        make_task(3),
    )
    assert ids(filter_by_date(tasks, before=utc(2024, 1, 10), after=None)) == [1]
    assert ids(filter_by_date(tasks, before=None, after=utc(2024, 1, 10))) == [2]
    assert ids(filter_by_date(tasks, before=utc(2024, 1, 15), after=utc(2024, 1, 5))) == [1, 2]


def test_sort_by_due_puts_missing_due_last_and_breaks_ties_by_priority(make_task):
    tasks = (
        make_task(1),
        make_task(2, due=utc(2024, 1, 10), priority=1),
        make_task(3, due=utc(2024, 1, 10), priority=3),
        make_task(4, due=utc(2024, 1, 5)),
    )
    assert ids(sort_tasks(tasks, SortKey.DUE)) == [4, 3, 2, 1]


def test_sort_by_priority_then_due(make_task):
    tasks = (
        make_task(1, priority=3),
        make_task(2, priority=1, due=utc(2024, 1, 1)),
        make_task(3, priority=3, due=utc(2024, 1, 2)),
    )
    assert ids(sort_tasks(tasks, "priority")) == [3, 1, 2]


def test_sort_by_status_pending_first(make_task):
    tasks = (
        make_task(1, done_at=NOW, due=utc(2024, 1, 1)),
        make_task(2, due=utc(2024, 1, 9)),
        make_task(3, due=utc(2024, 1, 3)),
    )
    assert ids(sort_tasks(tasks, "status")) == [3, 2, 1]


def test_sort_by_created_newest_first_and_title(make_task):
    tasks = (
        make_task(1, "beta", created_at=NOW - timedelta(days=2)),
        make_task(2, "Alpha", created_at=NOW),
        make_task(3, "gamma", created_at=NOW - timedelta(days=1)),
    )
    assert ids(sort_tasks(tasks, "created")) == [2, 3, 1]
    assert ids(sort_tasks(tasks, "title")) == [2, 1, 3]


def test_sort_is_stable_for_equal_keys(make_task):
    # already sorted by created; none has a due date
    tasks = sort_tasks(
        [make_task(i, created_at=NOW - timedelta(hours=i)) for i in range(1, 6)],
        "created",
    )
    assert ids(sort_tasks(tasks, "due")) == ids(tasks)


def test_unknown_sort_key_falls_back_to_due(make_task):
    tasks = (make_task(1, due=utc(2024, 2, 1)), make_task(2, due=utc(2024, 1, 1)))
    assert ids(sort_tasks(tasks, "nonsense")) == [2, 1]


def test_run_query_hides_done_unless_show_all(make_task):
    tasks = (make_task(1, done_at=NOW), make_task(2))
    assert ids(run_query(tasks, TaskQuery())) == [2]
    assert ids(run_query(tasks, TaskQuery(show_all=True))) == [1, 2]


def test_run_query_on_empty_collection():
    assert run_query((), TaskQuery(show_all=True)) == []


def test_run_query_ready_and_priority(make_task):
    tasks = (
        make_task(1, priority=3),
        make_task(2, priority=3, depends_on=(1,)),
        make_task(3, priority=1),
    )
    assert ids(run_query(tasks, TaskQuery(only_ready=True))) == [1, 3]
    assert ids(run_query(tasks, TaskQuery(priority=3))) == [1, 2]
    assert ids(blocked_tasks(tasks)) == [2]


def test_from_params_parses_dates_and_sort():
    query = TaskQuery.from_params(show_all=True, sort="PRIORITY", before="2024-01-10", tags=" work ")
    assert query.sort is SortKey.PRIORITY
    assert query.before == utc(2024, 1, 10)
    assert query.tags == "work"

    with pytest.raises(TaskValidationError):
        TaskQuery.from_params(after="not-a-date")


def test_tag_filter_with_only_empty_parts_keeps_everything(tagged):
    assert ids(filter_by_tags(tagged, "+")) == [1, 2, 3]
    assert ids(filter_by_tags(tagged, " + work")) == [1, 2]
