from gantt_cpm.rollup import child_span, rollup_parent_dates
from gantt_cpm.task_models import Task


def _family():
    return [
        Task(id="P", name="Parent", start="2025-01-04", end="2025-01-04"),
        Task(id="C1", name="Child 1", start="2025-01-01", end="2025-01-05", parent_id="P"),
        Task(id="C2", name="Child 2", start="2025-01-03", end="2025-01-08", parent_id="P"),
    ]


def test_parent_span_becomes_union_of_children():
    tasks = _family()

    result = rollup_parent_dates("P", tasks)

    parent = result[0]
    assert (parent.start, parent.end) == ("2025-01-01", "2025-01-08")
    assert tasks[0].start == "2025-01-04"


def test_rollup_on_unchanged_children_is_a_no_op():
    once = rollup_parent_dates("P", _family())
    twice = rollup_parent_dates("P", once)

    assert twice == once


def test_rollup_propagates_to_grandparent():
    tasks = [
        Task(id="G", start="2025-02-01", end="2025-02-02"),
        Task(id="P", start="2025-02-01", end="2025-02-02", parent_id="G"),
        Task(id="C", start="2025-01-20", end="2025-02-10", parent_id="P"),
    ]

    result = {task.id: task for task in rollup_parent_dates("P", tasks)}

    assert (result["P"].start, result["P"].end) == ("2025-01-20", "2025-02-10")
    assert (result["G"].start, result["G"].end) == ("2025-01-20", "2025-02-10")


def test_children_with_malformed_dates_are_skipped():
    tasks = _family() + [Task(id="C3", start="soon", end="later", parent_id="P")]

    parent = rollup_parent_dates("P", tasks)[0]

    assert (parent.start, parent.end) == ("2025-01-01", "2025-01-08")


def test_rollup_without_children_or_parent_returns_tasks_unchanged():
    tasks = _family()

    assert rollup_parent_dates("C1", tasks) == tasks
    assert rollup_parent_dates(None, tasks) == tasks
    assert child_span("C1", tasks) is None


def test_rollup_stops_on_cyclic_parent_chain():
    tasks = [
        Task(id="A", start="2025-01-01", end="2025-01-01", parent_id="B"),
        Task(id="B", start="2025-01-05", end="2025-01-06", parent_id="A"),
    ]

    result = rollup_parent_dates("A", tasks)

    assert [task.id for task in result] == ["A", "B"]
