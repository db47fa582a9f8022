from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .scheduling import TaskValidationError
from .task_models import ScheduleResult, Task, parse_dependency_ids


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable YAML path strings like tasks[0].dependencies."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


@dataclass
class TaskList:
    """A named task snapshot as read from disk."""

    name: str
    tasks: list[Task] = field(default_factory=list)


def load_tasks(path: str) -> TaskList:
    """Load a task list from a YAML file at the given path (no scheduling)."""

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    return parse_task_list(raw)


def parse_task_list(data: Any) -> TaskList:
    """
    Validate the structure of a raw YAML document and build Tasks.

    Accepts `{project: {name: ...}, tasks: [...]}` or a bare list of task
    mappings. Dates are only normalised to text here; malformed dates are
    kept so the scheduler can degrade them per task.
    """

    path = _Path()
    name = ""
    if isinstance(data, list):
        tasks_raw: Any = data
    elif isinstance(data, dict):
        project_raw = data.get("project")
        if project_raw is not None:
            if not isinstance(project_raw, dict):
                raise TaskValidationError(f"{path.child('project')}: expected mapping")
            name = _optional_str(project_raw, "name", path.child("project"))
        tasks_raw = data.get("tasks")
        if tasks_raw is None:
            raise TaskValidationError(f"{path}: missing required field 'tasks'")
    else:
        raise TaskValidationError(f"{path}: expected mapping or list at top level")

    if not isinstance(tasks_raw, list):
        raise TaskValidationError(f"{path.child('tasks')}: expected list")

    ids: set[str] = set()
    tasks: list[Task] = []
    for idx, item in enumerate(tasks_raw):
        tasks.append(_parse_task(item, path.child(f"tasks[{idx}]"), ids))
    return TaskList(name=name, tasks=tasks)


def _parse_task(data: Any, path: _Path, ids: set[str]) -> Task:
    if not isinstance(data, dict):
        raise TaskValidationError(f"{path}: expected mapping for task")

    task_id = _require_id(data, path, ids)
    name = _optional_str(data, "name", path)

    progress = data.get("progress", 0)
    if progress is None:
        progress = 0
    if isinstance(progress, bool) or not isinstance(progress, int):
        raise TaskValidationError(f"{path.child('progress')}: expected integer")
    if not 0 <= progress <= 100:
        raise TaskValidationError(f"{path.child('progress')}: expected value between 0 and 100")

    cost = data.get("cost", 0)
    if cost is None:
        cost = 0
    if isinstance(cost, bool) or not isinstance(cost, (int, float)):
        raise TaskValidationError(f"{path.child('cost')}: expected number")

    dependencies_raw = data.get("dependencies")
    if dependencies_raw is not None and not isinstance(dependencies_raw, (str, list)):
        raise TaskValidationError(f"{path.child('dependencies')}: expected comma-joined string or list of ids")
    if isinstance(dependencies_raw, list):
        for idx, dep in enumerate(dependencies_raw):
            if not isinstance(dep, str):
                raise TaskValidationError(f"{path.child('dependencies')}[{idx}]: expected string id")

    parent_id = data.get("parentId")
    if parent_id is not None and not isinstance(parent_id, str):
        raise TaskValidationError(f"{path.child('parentId')}: expected string id")

    mapping = dict(data)
    mapping.update(
        {
            "id": task_id,
            "name": name,
            "start": _date_text(data.get("start"), path.child("start")),
            "end": _date_text(data.get("end"), path.child("end")),
            "progress": progress,
            "cost": cost,
            "dependencies": parse_dependency_ids(dependencies_raw),
        }
    )
    return Task.from_mapping(mapping)


def _require_id(data: dict[str, Any], path: _Path, ids: set[str]) -> str:
    if "id" not in data:
        raise TaskValidationError(f"{path}: missing required field 'id'")
    value = data["id"]
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise TaskValidationError(f"{path.child('id')}: expected non-empty string")
    if value in ids:
        raise TaskValidationError(f"{path.child('id')}: duplicate id '{value}'")
    ids.add(value)
    return value


def _optional_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TaskValidationError(f"{path.child(key)}: expected string")
    return value


def _date_text(value: Any, path: _Path) -> str:
    # yaml.safe_load turns unquoted YYYY-MM-DD into date objects.
    if value is None:
        return ""
    if isinstance(value, (_dt.date, _dt.datetime)):
        return (value.date() if isinstance(value, _dt.datetime) else value).isoformat()
    if isinstance(value, str):
        return value.strip()
    raise TaskValidationError(f"{path}: expected YYYY-MM-DD string")


def dump_schedule(result: ScheduleResult, path: str, name: str | None = None) -> None:
    """Write a computed schedule as YAML (critical path, project finish, enriched tasks)."""

    document: dict[str, Any] = {}
    if name:
        document["project"] = {"name": name}
    document["projectFinish"] = result.project_finish
    document["converged"] = result.converged
    document["criticalTaskIds"] = list(result.critical_task_ids)
    document["tasks"] = [scheduled.to_mapping() for scheduled in result.scheduled_tasks]

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(document, fh, sort_keys=False, allow_unicode=True)
