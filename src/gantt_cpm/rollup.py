from __future__ import annotations

import logging
from dataclasses import replace
from typing import Sequence

from .dates import earlier, later, parse_date
from .task_models import Task

logger = logging.getLogger(__name__)


def rollup_parent_dates(parent_id: str | None, tasks: Sequence[Task]) -> list[Task]:
    """
    Recompute a parent's span from its children and propagate it upwards.

    The parent's start becomes the earliest child start and its end the latest
    child end (children without parseable dates are skipped). Each changed
    parent continues with its own parent; the walk stops at a root, when a
    span is already correct, or when a parent id is missing or repeats. The
    input is never mutated; a new list is returned.
    """

    result = list(tasks)
    visited: set[str] = set()
    current_id = parent_id

    while current_id and current_id not in visited:
        visited.add(current_id)
        span = child_span(current_id, result)
        if span is None:
            break

        position = _position_of(current_id, result)
        if position is None:
            logger.debug("Rollup stopped: parent '%s' is not in the task list", current_id)
            break

        parent = result[position]
        new_start, new_end = span
        updated = replace(
            parent,
            start=new_start or parent.start,
            end=new_end or parent.end,
        )
        if updated == parent:
            break

        logger.debug("Rolled up '%s' to %s..%s", parent.id, updated.start, updated.end)
        result[position] = updated
        current_id = updated.parent_id

    return result


def child_span(parent_id: str, tasks: Sequence[Task]) -> tuple[str | None, str | None] | None:
    """(earliest start, latest end) over the direct children of `parent_id`; None when it has none."""

    children = [task for task in tasks if task.parent_id == parent_id]
    if not children:
        return None

    span_start: str | None = None
    span_end: str | None = None
    for child in children:
        if parse_date(child.start) is None or parse_date(child.end) is None:
            continue
        span_start = earlier(span_start, child.start)
        span_end = later(span_end, child.end)
    return span_start, span_end


def _position_of(task_id: str, tasks: Sequence[Task]) -> int | None:
    for position, task in enumerate(tasks):
        if task.id == task_id:
            return position
    return None
