"""
Task-table edit operations.

Every function takes the current snapshot and returns a new list; the input
list and its tasks are left untouched.
"""
from __future__ import annotations

import datetime as _dt
import logging
import re
from dataclasses import replace
from itertools import count
from typing import Any, Sequence

from .dates import add_days
from .rollup import rollup_parent_dates
from .scheduling import TaskValidationError
from .task_models import Task, parse_dependency_ids

logger = logging.getLogger(__name__)

DATE_FIELDS = ("start", "end")
NUMERIC_FIELDS = ("progress", "cost")
_NON_NUMERIC = re.compile(r"[^0-9.]")


def generate_task_id(tasks: Sequence[Task], prefix: str = "T") -> str:
    """First free id of the form `<prefix><n>`, starting at 1."""

    taken = {task.id for task in tasks}
    for number in count(1):
        candidate = f"{prefix}{number}"
        if candidate not in taken:
            return candidate
    raise AssertionError("unreachable")  # pragma: no cover


def add_task(
    tasks: Sequence[Task], parent_id: str | None = None, today: _dt.date | None = None
) -> tuple[list[Task], Task]:
    """Add a two-day task starting today; subtasks are placed right after their parent."""

    start = (today or _dt.date.today()).isoformat()
    new_task = Task(
        id=generate_task_id(tasks, "S" if parent_id else "T"),
        name="New subtask" if parent_id else "New task",
        start=start,
        end=add_days(start, 1),
        parent_id=parent_id,
        priority="Medium",
    )
    return _insert_after_parent(tasks, new_task), new_task


def add_milestone(
    tasks: Sequence[Task], parent_id: str | None = None, today: _dt.date | None = None
) -> tuple[list[Task], Task]:
    """Add a single-day milestone (start == end) dated today."""

    day = (today or _dt.date.today()).isoformat()
    milestone = Task(
        id=generate_task_id(tasks, "M"),
        name="New milestone",
        start=day,
        end=day,
        parent_id=parent_id,
        priority="High",
    )
    return _insert_after_parent(tasks, milestone), milestone


def update_task_field(
    tasks: Sequence[Task],
    task_id: str,
    field_name: str,
    value: Any,
    today: _dt.date | None = None,
) -> list[Task]:
    """
    Apply one cell edit and return the new task list.

    - progress/cost are parsed from free text (non-numeric gives 0, progress is clamped to 0..100)
    - an empty start/end falls back to today
    - editing either date of a milestone moves both dates
    - after a date edit the parent chain is rolled up
    """

    position = next((idx for idx, task in enumerate(tasks) if task.id == task_id), None)
    if position is None:
        raise TaskValidationError(f"Cannot edit unknown task '{task_id}'")

    task = tasks[position]
    updated = _apply_field(task, field_name, value, today)
    result = list(tasks)
    result[position] = updated
    logger.debug("Task '%s' field '%s' set to %r", task_id, field_name, value)

    if field_name in DATE_FIELDS and updated.parent_id:
        result = rollup_parent_dates(updated.parent_id, result)
    return result


def _apply_field(task: Task, field_name: str, value: Any, today: _dt.date | None) -> Task:
    if field_name in NUMERIC_FIELDS:
        number = _coerce_number(value)
        if field_name == "progress":
            return replace(task, progress=int(min(100, max(0, number))))
        return replace(task, cost=number)

    if field_name in DATE_FIELDS:
        text = str(value).strip() if value is not None else ""
        if not text:
            text = (today or _dt.date.today()).isoformat()
        if task.is_milestone:
            return replace(task, start=text, end=text)
        return replace(task, **{field_name: text})

    if field_name == "dependencies":
        return replace(task, dependencies=parse_dependency_ids(value))
    if field_name in ("parentId", "parent_id"):
        return replace(task, parent_id=str(value) if value else None)
    if field_name in ("name", "priority"):
        return replace(task, **{field_name: "" if value is None else str(value)})
    if field_name == "id":
        raise TaskValidationError("Task ids cannot be edited")

    extra = dict(task.extra)
    extra[field_name] = value
    return replace(task, extra=extra)


def _coerce_number(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    cleaned = _NON_NUMERIC.sub("", str(value))
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _insert_after_parent(tasks: Sequence[Task], new_task: Task) -> list[Task]:
    result = list(tasks)
    if new_task.parent_id:
        for position, task in enumerate(result):
            if task.id == new_task.parent_id:
                result.insert(position + 1, new_task)
                return result
    result.append(new_task)
    return result
