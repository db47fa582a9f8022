from __future__ import annotations

import datetime as _dt
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Mapping, TypeVar


NodeKind = Literal["bar", "lozenge", "bracket"]
"""Allowed render node types: bar (task), lozenge (milestone), bracket (parent task)."""

TaskT = TypeVar("TaskT", "Task", "ScheduledTask")

_CORE_KEYS = ("id", "name", "start", "end", "progress", "parentId", "dependencies", "cost", "priority")
_DEPENDENCY_TOKEN = re.compile(r"^\s*([^\[\],]+?)\s*(?:\[[^\]]*\])?\s*$")


def parse_dependency_ids(value: str | Iterable[str] | None) -> tuple[str, ...]:
    """
    Parse the external dependency representation into an ordered set of ids.

    Accepts a comma-joined string ("T1, T2") or an iterable of ids. Tokens in
    the dependency editor form `T1[FS+0]` are reduced to the task id. Blank
    tokens are dropped and repeated ids keep their first position.
    """

    if value is None:
        return ()
    tokens = value.split(",") if isinstance(value, str) else list(value)

    ids: list[str] = []
    for token in tokens:
        token = str(token).strip()
        if not token:
            continue
        match = _DEPENDENCY_TOKEN.match(token)
        if not match:
            continue
        dep_id = match.group(1)
        if dep_id not in ids:
            ids.append(dep_id)
    return tuple(ids)


def format_dependency_ids(ids: Iterable[str]) -> str:
    """Join dependency ids back into the comma-joined external form."""
    return ",".join(ids)


@dataclass(frozen=True)
class Task:
    """One row of the authoritative task list. Instances are never mutated; edits produce copies."""

    id: str
    name: str = ""
    start: str = ""
    end: str = ""
    progress: int = 0
    parent_id: str | None = None
    dependencies: tuple[str, ...] = ()
    cost: float = 0
    priority: str = "Medium"
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_milestone(self) -> bool:
        """Single-day checkpoint: start and end on the same calendar day."""
        return bool(self.start) and self.start == self.end

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Task":
        """Build a Task from the external camelCase mapping; unknown keys become `extra`."""

        parent_id = data.get("parentId") or None
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            start=_date_text(data.get("start")),
            end=_date_text(data.get("end")),
            progress=int(data.get("progress") or 0),
            parent_id=str(parent_id) if parent_id is not None else None,
            dependencies=parse_dependency_ids(data.get("dependencies")),
            cost=data.get("cost") or 0,
            priority=str(data.get("priority") or "Medium"),
            extra={key: value for key, value in data.items() if key not in _CORE_KEYS},
        )

    def to_mapping(self) -> dict[str, Any]:
        """External representation: camelCase keys, comma-joined dependencies, extras flattened in."""

        mapping: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "start": self.start,
            "end": self.end,
            "progress": self.progress,
            "parentId": self.parent_id,
            "cost": self.cost,
            "priority": self.priority,
            "dependencies": format_dependency_ids(self.dependencies),
        }
        for key, value in self.extra.items():
            mapping.setdefault(key, value)
        return mapping


def index_tasks(tasks: Iterable[TaskT]) -> dict[str, TaskT]:
    """Arena lookup id -> task; a repeated id keeps its first occurrence."""

    lookup: dict[str, TaskT] = {}
    for task in tasks:
        lookup.setdefault(task.id, task)
    return lookup


@dataclass(frozen=True)
class ScheduledTask:
    """A task enriched with CPM results. Built fresh by every engine run."""

    task: Task
    index: int
    duration: int
    es: str | None
    ef: str | None
    ls: str | None = None
    lf: str | None = None
    successors: tuple[str, ...] = ()
    float_days: int | None = None
    is_critical: bool = False

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def name(self) -> str:
        return self.task.name

    @property
    def start(self) -> str:
        return self.task.start

    @property
    def end(self) -> str:
        return self.task.end

    @property
    def parent_id(self) -> str | None:
        return self.task.parent_id

    @property
    def dependencies(self) -> tuple[str, ...]:
        return self.task.dependencies

    def to_mapping(self) -> dict[str, Any]:
        mapping = self.task.to_mapping()
        mapping.update(
            {
                "duration": self.duration,
                "ES": self.es,
                "EF": self.ef,
                "LS": self.ls,
                "LF": self.lf,
                "successors": list(self.successors),
                "float": self.float_days,
                "isCritical": self.is_critical,
                "index": self.index,
            }
        )
        return mapping


@dataclass(frozen=True)
class Cycle:
    """Represents a detected dependency cycle path for diagnostics."""

    path: list[str]

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return " -> ".join(self.path)


@dataclass(frozen=True)
class ScheduleResult:
    """Output of one CPM run: critical ids plus the enriched task list in input order."""

    critical_task_ids: tuple[str, ...]
    scheduled_tasks: tuple[ScheduledTask, ...]
    project_finish: str | None = None
    converged: bool = True
    cycle: Cycle | None = None

    def by_id(self) -> dict[str, ScheduledTask]:
        return {scheduled.id: scheduled for scheduled in self.scheduled_tasks}


@dataclass
class FlatRenderRow:
    """
    Flattened view of a schedule used by renderers.

    Only the fields relevant to drawing are kept: positional order,
    indentation level, node kind, schedule dates and critical-path membership.
    """

    order: int
    indent: int
    node_type: NodeKind
    node_id: str
    name: str
    parent_id: str | None
    depends_on: list[str] = field(default_factory=list)
    start_date: _dt.date | None = None
    finish_date: _dt.date | None = None
    progress: int = 0
    float_days: int | None = None
    is_critical: bool = False


def _date_text(value: Any) -> str:
    # YAML and JSON callers may hand over date objects; the model keeps ISO text.
    if isinstance(value, _dt.datetime):
        return value.date().isoformat()
    if isinstance(value, _dt.date):
        return value.isoformat()
    if value is None:
        return ""
    return str(value)
