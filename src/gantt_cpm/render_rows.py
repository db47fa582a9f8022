from __future__ import annotations

from typing import List, Mapping

from .dates import parse_date
from .task_models import FlatRenderRow, ScheduledTask, ScheduleResult, index_tasks
from .visibility import parent_ids, task_depth, visible_tasks


def to_render_rows(result: ScheduleResult, collapsed: Mapping[str, bool] | None = None) -> list[FlatRenderRow]:
    """
    Convert a computed schedule into a flat list of render rows with indentation.

    Rows keep input order and skip tasks hidden by a collapsed ancestor.
    Indent equals the task's depth in the parent forest. Bars are placed on
    the earliest dates (ES/EF).
    """

    scheduled = list(result.scheduled_tasks)
    lookup = index_tasks(scheduled)
    parents = parent_ids(scheduled)

    rows: List[FlatRenderRow] = []
    for order, item in enumerate(visible_tasks(scheduled, collapsed or {})):
        rows.append(
            FlatRenderRow(
                order=order,
                indent=task_depth(item, lookup),
                node_type=_node_type(item, parents),
                node_id=item.id,
                name=item.name,
                parent_id=item.parent_id,
                depends_on=[dep_id for dep_id in item.dependencies if dep_id in lookup],
                start_date=parse_date(item.es),
                finish_date=parse_date(item.ef),
                progress=item.task.progress,
                float_days=item.float_days,
                is_critical=item.is_critical,
            )
        )
    return rows


def _node_type(item: ScheduledTask, parents: set[str]) -> str:
    if item.id in parents:
        return "bracket"
    if item.task.is_milestone:
        return "lozenge"
    return "bar"
