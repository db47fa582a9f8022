from __future__ import annotations

import logging
from functools import reduce
from typing import Iterable, Iterator, Sequence

from .dates import add_days, days_between, duration_days, earlier, later, parse_date
from .task_models import Cycle, ScheduledTask, ScheduleResult, Task

logger = logging.getLogger(__name__)


class TaskValidationError(Exception):
    """Raised when the task list structure is invalid (bad field types, duplicate or unknown ids)."""


def compute_critical_path(tasks: Sequence[Task]) -> ScheduleResult:
    """
    Run the Critical Path Method over a task snapshot and return a fresh result.

    - Input order is not assumed to be topological; both passes iterate to a
      fixed point, capped at 2 x task count passes each.
    - Unknown dependency ids are ignored; malformed dates give duration 0 and
      the task's dates pass through unchanged.
    - The project finish is the latest EF over tasks with a positive duration;
      unscheduled tasks neither set it nor constrain their neighbours.
    - Never raises for bad data. Hitting the cap leaves the values reached so
      far and reports `converged=False`.
    """

    ordered, positions = _unique_tasks(tasks)
    if not ordered:
        return ScheduleResult(critical_task_ids=(), scheduled_tasks=())

    durations = {task.id: duration_days(task.start, task.end) for task in ordered}
    es: dict[str, str | None] = {task.id: task.start for task in ordered}
    ef: dict[str, str | None] = {task.id: task.end for task in ordered}
    ls: dict[str, str | None] = dict.fromkeys(durations)
    lf: dict[str, str | None] = dict.fromkeys(durations)

    predecessors, successors = _link_tasks(ordered)
    max_iterations = 2 * len(ordered)

    forward_converged = _run_forward_pass(ordered, predecessors, durations, es, ef, max_iterations)
    # Unscheduled tasks (duration 0) carry raw dates that do not bound the project.
    project_finish = reduce(later, (ef[task.id] for task in ordered if durations[task.id] > 0), None)
    backward_converged = _run_backward_pass(
        ordered, successors, durations, ls, lf, project_finish, max_iterations
    )

    cycle = find_cycle([task.id for task in ordered], predecessors)
    converged = forward_converged and backward_converged
    if not converged:
        logger.warning(
            "Schedule did not converge within %d passes; returning partial values (cycle: %s)",
            max_iterations,
            cycle if cycle else "none found",
        )

    critical: list[str] = []
    scheduled: list[ScheduledTask] = []
    for task in ordered:
        float_days = None
        if durations[task.id] > 0:
            float_days = days_between(ef[task.id], lf[task.id])
        is_critical = float_days == 0
        if is_critical:
            critical.append(task.id)
        scheduled.append(
            ScheduledTask(
                task=task,
                index=positions[task.id],
                duration=durations[task.id],
                es=es[task.id],
                ef=ef[task.id],
                ls=ls[task.id],
                lf=lf[task.id],
                successors=tuple(successors[task.id]),
                float_days=float_days,
                is_critical=is_critical,
            )
        )

    return ScheduleResult(
        critical_task_ids=tuple(critical),
        scheduled_tasks=tuple(scheduled),
        project_finish=project_finish,
        converged=converged,
        cycle=cycle,
    )


def _unique_tasks(tasks: Iterable[Task]) -> tuple[list[Task], dict[str, int]]:
    ordered: list[Task] = []
    positions: dict[str, int] = {}
    for index, task in enumerate(tasks):
        if task.id in positions:
            logger.warning("Duplicate task id '%s' at position %d ignored", task.id, index)
            continue
        positions[task.id] = index
        ordered.append(task)
    return ordered, positions


def _link_tasks(ordered: list[Task]) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    predecessors: dict[str, list[str]] = {task.id: [] for task in ordered}
    successors: dict[str, list[str]] = {task.id: [] for task in ordered}

    for task in ordered:
        for dep_id in task.dependencies:
            if dep_id not in successors:
                logger.debug("Task '%s' depends on unknown id '%s'; link ignored", task.id, dep_id)
                continue
            predecessors[task.id].append(dep_id)
            if task.id not in successors[dep_id]:
                successors[dep_id].append(task.id)
    return predecessors, successors


def _run_forward_pass(
    ordered: list[Task],
    predecessors: dict[str, list[str]],
    durations: dict[str, int],
    es: dict[str, str | None],
    ef: dict[str, str | None],
    max_iterations: int,
) -> bool:
    for passes in range(1, max_iterations + 1):
        changed = False
        for task in ordered:
            duration = durations[task.id]
            if duration <= 0:
                continue

            # Declared start is a floor; predecessors can only push the task later.
            new_es = task.start
            for dep_id in predecessors[task.id]:
                dep_ef = ef[dep_id]
                if durations[dep_id] > 0 and parse_date(dep_ef) is not None:
                    new_es = later(new_es, add_days(dep_ef, 1))
            new_ef = add_days(new_es, duration - 1)

            if new_es != es[task.id] or new_ef != ef[task.id]:
                es[task.id] = new_es
                ef[task.id] = new_ef
                changed = True

        if not changed:
            logger.debug("Forward pass converged after %d pass(es)", passes)
            return True
    return False


def _run_backward_pass(
    ordered: list[Task],
    successors: dict[str, list[str]],
    durations: dict[str, int],
    ls: dict[str, str | None],
    lf: dict[str, str | None],
    project_finish: str | None,
    max_iterations: int,
) -> bool:
    if project_finish is None:
        logger.debug("No known finish date; backward pass skipped")
        return True

    # Only scheduled successors constrain latest dates; a task without any is an end task.
    scheduled_successors = {
        task.id: [succ_id for succ_id in successors[task.id] if durations[succ_id] > 0] for task in ordered
    }
    for task in ordered:
        duration = durations[task.id]
        if duration > 0 and not scheduled_successors[task.id]:
            lf[task.id] = project_finish
            ls[task.id] = add_days(project_finish, -(duration - 1))

    for passes in range(1, max_iterations + 1):
        changed = False
        for task in reversed(ordered):
            duration = durations[task.id]
            if duration <= 0 or not scheduled_successors[task.id]:
                continue

            candidate: str | None = None
            for succ_id in scheduled_successors[task.id]:
                succ_ls = ls[succ_id]
                if parse_date(succ_ls) is not None:
                    candidate = earlier(candidate, add_days(succ_ls, -1))
            if candidate is None:
                continue

            current = lf[task.id]
            if current is None or parse_date(candidate) < parse_date(current):
                lf[task.id] = candidate
                ls[task.id] = add_days(candidate, -(duration - 1))
                changed = True

        if not changed:
            logger.debug("Backward pass converged after %d pass(es)", passes)
            return True
    return False


def find_cycle(order: list[str], dependencies: dict[str, list[str]]) -> Cycle | None:
    """Return the first dependency cycle reachable in `order`, or None for an acyclic graph."""

    state: dict[str, str] = {}

    for root in order:
        if state.get(root) is not None:
            continue
        stack: list[str] = [root]
        frames: list[Iterator[str]] = [iter(dependencies.get(root, []))]
        state[root] = "visiting"

        while frames:
            node_id = stack[-1]
            dep_id = next(frames[-1], None)
            if dep_id is None:
                state[node_id] = "done"
                stack.pop()
                frames.pop()
                continue

            dep_state = state.get(dep_id)
            if dep_state == "visiting":
                return Cycle(stack[stack.index(dep_id) :] + [dep_id])
            if dep_state is None:
                state[dep_id] = "visiting"
                stack.append(dep_id)
                frames.append(iter(dependencies.get(dep_id, [])))
    return None
