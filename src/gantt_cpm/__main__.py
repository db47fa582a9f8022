from __future__ import annotations

import argparse
import logging
import sys
import webbrowser
from pathlib import Path
from typing import TextIO

import yaml

from .dates import parse_date
from .logging_config import setup_logging
from .parse_tasks import TaskList, dump_schedule, load_tasks
from .render_gantt import render_gantt
from .render_rows import to_render_rows
from .scheduling import TaskValidationError, compute_critical_path
from .task_models import ScheduleResult
from .visibility import focus_collapse_state

logger = logging.getLogger(__name__)


def _parse_date(value: str):
    parsed = parse_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gantt-cpm",
        description="Critical path scheduler and Gantt chart renderer",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("tasks", help="Path to task list YAML")
    parser.add_argument("--out", default="output/gantt_chart.svg", help="Output SVG path")
    parser.add_argument("--min-date", type=_parse_date, help="Chart window start; inferred from ES dates if omitted")
    parser.add_argument("--max-date", type=_parse_date, help="Chart window end; inferred from EF dates if omitted")
    parser.add_argument("--schedule-out", help="Also write the computed schedule as YAML to this path")
    parser.add_argument(
        "--collapse",
        nargs="*",
        default=[],
        metavar="ID",
        help="Parent task ids to collapse in the chart",
    )
    parser.add_argument("--focus", metavar="ID", help="Collapse every other root and expand the branch of ID")
    parser.add_argument("--no-render", dest="render", action="store_false", help="Skip SVG rendering")
    parser.add_argument(
        "--view",
        dest="view",
        action="store_true",
        default=False,
        help="Best-effort open the output file after rendering",
    )
    parser.add_argument(
        "--no-view",
        dest="view",
        action="store_false",
        help="Do not open the output file after rendering",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser


def print_schedule(result: ScheduleResult, stream: TextIO) -> None:
    """Write a plain-text schedule table followed by the critical path."""

    header = f"{'ID':<8} {'Name':<28} {'ES':<10} {'EF':<10} {'LS':<10} {'LF':<10} {'Float':>5}  Crit"
    print(header, file=stream)
    print("-" * len(header), file=stream)
    for item in result.scheduled_tasks:
        float_text = "-" if item.float_days is None else str(item.float_days)
        print(
            f"{item.id:<8} {item.name[:28]:<28} {item.es or '-':<10} {item.ef or '-':<10} "
            f"{item.ls or '-':<10} {item.lf or '-':<10} {float_text:>5}  {'*' if item.is_critical else ''}",
            file=stream,
        )
    print("", file=stream)
    print(f"Project finish: {result.project_finish or '-'}", file=stream)
    print(f"Critical path: {' -> '.join(result.critical_task_ids) or '(none)'}", file=stream)
    if not result.converged:
        print("Warning: schedule did not converge; values are partial", file=stream)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    tasks_path = Path(args.tasks)

    try:
        task_list: TaskList = load_tasks(str(tasks_path))
    except (yaml.YAMLError, TaskValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: task file not found: {tasks_path}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        logger.exception("Unexpected error while loading %s", tasks_path)
        print(f"Unexpected error while loading tasks: {exc}", file=sys.stderr)
        return 1

    result = compute_critical_path(task_list.tasks)
    logger.info(
        "Scheduled %d task(s); %d critical", len(result.scheduled_tasks), len(result.critical_task_ids)
    )
    print_schedule(result, sys.stdout)

    if args.schedule_out:
        try:
            dump_schedule(result, args.schedule_out, name=task_list.name or None)
        except OSError as exc:
            print(f"Error: cannot write schedule: {exc}", file=sys.stderr)
            return 1

    if not args.render:
        return 0

    collapsed = focus_collapse_state(task_list.tasks, args.focus) if args.focus else {}
    for task_id in args.collapse:
        collapsed[task_id] = True
    rows = to_render_rows(result, collapsed)

    try:
        render_gantt(
            rows=rows,
            out_path=args.out,
            title=task_list.name,
            min_date=args.min_date,
            max_date=args.max_date,
        )
    except ValueError as exc:
        print(f"Error: cannot render chart: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:
        logger.exception("Unexpected error while rendering %s", args.out)
        print(f"Unexpected error while rendering: {exc}", file=sys.stderr)
        return 1

    if args.view:
        try:
            webbrowser.open(Path(args.out).resolve().as_uri())
        except webbrowser.Error as exc:
            logger.info("Could not open viewer: %s", exc)

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
