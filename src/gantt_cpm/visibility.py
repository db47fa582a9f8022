from __future__ import annotations

from typing import Iterable, Mapping, Protocol, Sequence, TypeVar

from .task_models import index_tasks


class _Node(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def parent_id(self) -> str | None: ...


NodeT = TypeVar("NodeT", bound=_Node)
"""Anything with `id` and `parent_id`: plain tasks and scheduled tasks alike."""


def _ancestor_ids(node: _Node, nodes_by_id: Mapping[str, _Node]) -> Iterable[str]:
    # Yields parent ids nearest first; stops at a root, a dangling link or a repeated id.
    seen = {node.id}
    parent_id = node.parent_id
    while parent_id and parent_id not in seen:
        yield parent_id
        seen.add(parent_id)
        parent = nodes_by_id.get(parent_id)
        if parent is None:
            return
        parent_id = parent.parent_id


def task_depth(task: _Node, tasks_by_id: Mapping[str, _Node]) -> int:
    """Number of resolvable ancestor hops above `task`; 0 for a root."""

    depth = 0
    for parent_id in _ancestor_ids(task, tasks_by_id):
        if parent_id not in tasks_by_id:
            break
        depth += 1
    return depth


def is_task_hidden(task: _Node, collapsed: Mapping[str, bool], tasks_by_id: Mapping[str, _Node]) -> bool:
    """True as soon as any ancestor of `task` is marked collapsed."""
    return any(collapsed.get(parent_id) for parent_id in _ancestor_ids(task, tasks_by_id))


def visible_tasks(tasks: Sequence[NodeT], collapsed: Mapping[str, bool]) -> list[NodeT]:
    """Tasks not hidden by a collapsed ancestor, in input order."""

    if not collapsed:
        return list(tasks)
    lookup = index_tasks(tasks)
    return [task for task in tasks if not is_task_hidden(task, collapsed, lookup)]


def parent_ids(tasks: Iterable[_Node]) -> set[str]:
    """Ids referenced as a parent by at least one task."""
    return {task.parent_id for task in tasks if task.parent_id}


def toggle_collapse(collapsed: Mapping[str, bool], task_id: str) -> dict[str, bool]:
    updated = dict(collapsed)
    updated[task_id] = not collapsed.get(task_id, False)
    return updated


def focus_collapse_state(tasks: Sequence[_Node], task_id: str | None) -> dict[str, bool]:
    """
    Collapse state that shows one branch: every other root is collapsed and
    the chain from `task_id` up to its root is expanded. An empty id expands all.
    """

    if not task_id:
        return {}

    lookup = index_tasks(tasks)
    state = {task.id: True for task in tasks if not task.parent_id and task.id != task_id}

    target = lookup.get(task_id)
    if target is None:
        return state
    state[target.id] = False
    for ancestor_id in _ancestor_ids(target, lookup):
        state[ancestor_id] = False
    return state
