from gantt_cpm.task_models import Task
from gantt_cpm.visibility import (
    focus_collapse_state,
    is_task_hidden,
    parent_ids,
    task_depth,
    toggle_collapse,
    visible_tasks,
)


def _tree():
    # R1 > A > A1 > A1a, R1 > B, R2 > C
    return [
        Task(id="R1"),
        Task(id="A", parent_id="R1"),
        Task(id="A1", parent_id="A"),
        Task(id="A1a", parent_id="A1"),
        Task(id="B", parent_id="R1"),
        Task(id="R2"),
        Task(id="C", parent_id="R2"),
    ]


def _ids(tasks):
    return [task.id for task in tasks]


def test_depth_counts_ancestor_hops():
    tasks = _tree()
    lookup = {task.id: task for task in tasks}

    assert [task_depth(task, lookup) for task in tasks] == [0, 1, 2, 3, 1, 0, 1]


def test_collapsing_root_hides_every_descendant():
    visible = visible_tasks(_tree(), {"R1": True})

    assert _ids(visible) == ["R1", "R2", "C"]


def test_collapsing_deep_node_hides_only_its_descendants():
    visible = visible_tasks(_tree(), {"A1": True})

    assert _ids(visible) == ["R1", "A", "A1", "B", "R2", "C"]


def test_explicitly_expanded_flag_does_not_hide():
    assert _ids(visible_tasks(_tree(), {"R1": False})) == _ids(_tree())


def test_broken_parent_chain_terminates():
    orphan = Task(id="O", parent_id="missing")
    lookup = {"O": orphan}

    assert task_depth(orphan, lookup) == 0
    assert not is_task_hidden(orphan, {}, lookup)
    assert is_task_hidden(orphan, {"missing": True}, lookup)


def test_cyclic_parent_chain_terminates():
    tasks = [Task(id="A", parent_id="B"), Task(id="B", parent_id="A")]
    lookup = {task.id: task for task in tasks}

    assert task_depth(tasks[0], lookup) == 1
    assert not is_task_hidden(tasks[0], {}, lookup)


def test_parent_ids_and_toggle_collapse():
    state = {"R1": True}

    toggled = toggle_collapse(state, "R1")

    assert parent_ids(_tree()) == {"R1", "A", "A1", "R2"}
    assert toggled == {"R1": False}
    assert state == {"R1": True}
    assert toggle_collapse({}, "A") == {"A": True}


def test_focus_collapses_other_roots_and_expands_branch():
    state = focus_collapse_state(_tree(), "A1")

    assert state == {"R2": True, "A1": False, "A": False, "R1": False}
    assert _ids(visible_tasks(_tree(), state)) == ["R1", "A", "A1", "A1a", "B", "R2"]
    assert focus_collapse_state(_tree(), "") == {}
