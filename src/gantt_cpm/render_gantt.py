from __future__ import annotations

import datetime as dt
from importlib import metadata
from pathlib import Path
from typing import Iterable

import matplotlib

matplotlib.use("Agg")  # ensure headless, deterministic output
import matplotlib.dates as mdates
import matplotlib.path as mpath
import matplotlib.pyplot as plt
from matplotlib.patches import FancyArrowPatch, Polygon

from .task_models import FlatRenderRow

CRITICAL_COLOR = "#d62728"
NORMAL_COLOR = "#1f77b4"
BRACKET_COLOR = "#444444"
MILESTONE_COLOR = "#666666"
ARROW_COLOR = "#3a3a3a"
ROUTE_X_PAD = 0.35  # horizontal gap from bar edges to start/end of connector
BRACKET_LW = 2.5
INDENT_STEP = 0.04  # label offset per depth level, in label-axis fraction
TIMELINE_PAD_DAYS = 3  # breathing room before first and after last date
TITLE_FONT = 14
LABEL_FONT = 10
FOOTER_FONT = 8
TICK_FONT = 9
TITLE_Y = 0.985


def render_gantt(
    rows: list[FlatRenderRow],
    out_path: str,
    title: str,
    min_date: dt.date | None = None,
    max_date: dt.date | None = None,
) -> None:
    """
    Render a static SVG Gantt chart to `out_path`.

    - Expects rows built from a computed schedule (ES/EF dates).
    - Critical tasks are drawn in red, others in blue, with a darker progress overlay.
    - Parent tasks draw as brackets, milestones as lozenges.
    - Finish-to-start dependencies draw as elbow arrows between bars.
    """

    if not rows:
        raise ValueError("rows must not be empty")

    min_date, max_date = _resolve_date_window(rows, min_date, max_date)
    row_height = 0.6
    span_days = (max_date - min_date).days + 1

    fig_height = max(3.0, row_height * len(rows) + 2.0)
    fig_width = max(12.0, min(24.0, span_days / 7.0 * 2.0 + 6.0))
    fig = plt.figure(figsize=(fig_width, fig_height))
    # Left column for labels, right for the timeline.
    gs = fig.add_gridspec(1, 2, width_ratios=[1.2, 4.0], wspace=0.05, left=0.06, right=0.98, top=0.85, bottom=0.1)
    label_ax = fig.add_subplot(gs[0, 0])
    ax = fig.add_subplot(gs[0, 1], sharey=label_ax)

    ax.set_ylim(-1, len(rows))
    ax.invert_yaxis()
    ax.set_xlim(
        mdates.date2num(min_date - dt.timedelta(days=TIMELINE_PAD_DAYS)),
        mdates.date2num(max_date + dt.timedelta(days=TIMELINE_PAD_DAYS)),
    )
    ax.xaxis_date()
    ax.xaxis.tick_top()
    major_locator, major_formatter = _major_tick_strategy(span_days)
    ax.xaxis.set_major_locator(major_locator)
    ax.xaxis.set_major_formatter(major_formatter)
    ax.xaxis.set_minor_locator(mdates.DayLocator(interval=1))
    ax.grid(True, axis="x", which="major", linestyle="--", alpha=0.4)
    ax.grid(True, axis="x", which="minor", linestyle=":", alpha=0.2)
    ax.tick_params(axis="x", labelrotation=30, labelsize=TICK_FONT, pad=4)
    ax.set_yticks([])

    label_ax.set_xlim(0, 1)
    label_ax.axis("off")

    fig.suptitle(title, x=0.5, fontsize=TITLE_FONT, y=TITLE_Y)
    footer = f"gantt-cpm v{_tool_version()}"
    fig.text(0.99, 0.01, footer, ha="right", va="bottom", fontsize=FOOTER_FONT, alpha=0.8)

    bar_rects: dict[str, tuple[float, float, float, float]] = {}

    for y, row in enumerate(rows):
        label = row.name or row.node_id
        if row.float_days is not None and not row.is_critical:
            label = f"{label} (+{row.float_days}d)"
        label_ax.text(
            0.02 + INDENT_STEP * row.indent,
            y,
            label,
            ha="left",
            va="center",
            fontsize=LABEL_FONT,
            fontweight="bold" if row.node_type == "bracket" else "normal",
            color=CRITICAL_COLOR if row.is_critical else "black",
            transform=label_ax.transData,
        )

        if row.start_date is None or row.finish_date is None:
            continue
        x_start = mdates.date2num(row.start_date)
        x_end = mdates.date2num(row.finish_date + dt.timedelta(days=1))
        if x_end <= x_start:
            continue

        if row.node_type == "bar":
            color = CRITICAL_COLOR if row.is_critical else NORMAL_COLOR
            ax.barh(y, width=x_end - x_start, left=x_start, height=row_height,
                    color=color, alpha=0.45, edgecolor="black", linewidth=0.5)
            if row.progress:
                done = (x_end - x_start) * min(row.progress, 100) / 100.0
                ax.barh(y, width=done, left=x_start, height=row_height * 0.5, color=color, linewidth=0)

        elif row.node_type == "lozenge":
            center_x = x_start + (x_end - x_start) / 2
            half_width = 0.45
            half_height = row_height / 1.5
            diamond = [
                (center_x - half_width, y),
                (center_x, y - half_height),
                (center_x + half_width, y),
                (center_x, y + half_height),
            ]
            face = CRITICAL_COLOR if row.is_critical else MILESTONE_COLOR
            ax.add_patch(Polygon(diamond, closed=True, facecolor=face, edgecolor="black"))

        else:
            cap = row_height / 2.2
            color = CRITICAL_COLOR if row.is_critical else BRACKET_COLOR
            ax.plot([x_start, x_end], [y, y], color=color, linewidth=BRACKET_LW, zorder=2)
            ax.plot([x_start, x_start], [y - cap, y + cap], color=color, linewidth=BRACKET_LW, zorder=2)
            ax.plot([x_end, x_end], [y - cap, y + cap], color=color, linewidth=BRACKET_LW, zorder=2)

        bar_rects[row.node_id] = (x_start, x_end, y - row_height / 2, y + row_height / 2)

    _draw_dependencies(ax, rows, bar_rects)

    try:
        Path(out_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out_path, format="svg", bbox_inches="tight")
    finally:
        plt.close(fig)


def _resolve_date_window(
    rows: Iterable[FlatRenderRow], min_date: dt.date | None, max_date: dt.date | None
) -> tuple[dt.date, dt.date]:
    """Explicit bounds win; a missing bound falls back to the scheduled ES/EF dates."""

    scheduled = [(row.start_date, row.finish_date) for row in rows if row.start_date and row.finish_date]
    if not scheduled and (min_date is None or max_date is None):
        raise ValueError("no scheduled dates to infer the chart window from")

    window_start = min_date if min_date is not None else min(start for start, _ in scheduled)
    window_end = max_date if max_date is not None else max(finish for _, finish in scheduled)
    if window_end < window_start:
        raise ValueError(f"chart window ends ({window_end}) before it starts ({window_start})")
    return window_start, window_end


def _tool_version() -> str:
    try:
        return metadata.version("gantt-cpm")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _major_tick_strategy(span_days: int) -> tuple[mdates.DateLocator, mdates.DateFormatter]:
    """Choose a major tick locator/formatter to avoid overlapping labels."""
    if span_days > 180:
        return mdates.MonthLocator(interval=1), mdates.DateFormatter("%b %Y")
    if span_days > 90:
        return mdates.WeekdayLocator(byweekday=mdates.MO, interval=2), mdates.DateFormatter("%b %d")
    if span_days > 45:
        return mdates.WeekdayLocator(byweekday=mdates.MO, interval=1), mdates.DateFormatter("%b %d")
    return mdates.DayLocator(interval=2), mdates.DateFormatter("%b %d")


def route_dependency(
    a_rect: tuple[float, float, float, float],
    b_rect: tuple[float, float, float, float],
) -> list[tuple[float, float]]:
    """
    Orthogonal connector from the finish of bar A to the start of bar B.

    Uses right -> vertical -> right when B starts to the right of A, otherwise
    a detour that drops between the rows and comes back in from the left.
    """

    axmin, axmax, aymin, aymax = a_rect
    bxmin, bxmax, bymin, bymax = b_rect
    start = (axmax + ROUTE_X_PAD, (aymin + aymax) / 2)
    goal = (bxmin - ROUTE_X_PAD, (bymin + bymax) / 2)
    if goal[0] > start[0]:
        x_lane = (start[0] + goal[0]) / 2
        return _dedupe_points([start, (x_lane, start[1]), (x_lane, goal[1]), goal])

    y_mid = (aymax + bymin) / 2 if bymin >= aymax else (aymin + bymax) / 2
    return _dedupe_points([start, (start[0], y_mid), (goal[0], y_mid), goal])


def _bevel_polyline(points: list[tuple[float, float]], bevel: float = 0.6) -> list[tuple[float, float]]:
    """Insert small diagonal segments at each elbow so connectors have beveled corners."""
    if len(points) < 3:
        return points

    beveled: list[tuple[float, float]] = [points[0]]
    for i in range(1, len(points) - 1):
        prev_pt = points[i - 1]
        corner = points[i]
        next_pt = points[i + 1]

        vx1, vy1 = corner[0] - prev_pt[0], corner[1] - prev_pt[1]
        vx2, vy2 = next_pt[0] - corner[0], next_pt[1] - corner[1]
        len1 = (vx1**2 + vy1**2) ** 0.5
        len2 = (vx2**2 + vy2**2) ** 0.5
        trim1 = min(bevel, len1 / 2) if len1 else 0.0
        trim2 = min(bevel, len2 / 2) if len2 else 0.0

        beveled.append((corner[0] - vx1 / len1 * trim1, corner[1] - vy1 / len1 * trim1) if len1 else corner)
        beveled.append((corner[0] + vx2 / len2 * trim2, corner[1] + vy2 / len2 * trim2) if len2 else corner)

    beveled.append(points[-1])
    return beveled


def _dedupe_points(points: list[tuple[float, float]]) -> list[tuple[float, float]]:
    """Remove consecutive duplicate points to avoid zero-length segments."""
    if not points:
        return points
    cleaned = [points[0]]
    for pt in points[1:]:
        if pt != cleaned[-1]:
            cleaned.append(pt)
    return cleaned


def _polyline_path(points: list[tuple[float, float]]) -> mpath.Path:
    codes = [mpath.Path.MOVETO] + [mpath.Path.LINETO] * (len(points) - 1)
    return mpath.Path(points, codes)


def _draw_dependencies(
    ax: plt.Axes,
    rows: list[FlatRenderRow],
    bar_rects: dict[str, tuple[float, float, float, float]],
) -> None:
    critical_ids = {row.node_id for row in rows if row.is_critical}
    for row in rows:
        b_rect = bar_rects.get(row.node_id)
        if b_rect is None:
            continue
        for dep_id in row.depends_on:
            a_rect = bar_rects.get(dep_id)
            if a_rect is None:
                continue
            polyline = route_dependency(a_rect, b_rect)
            if len(polyline) < 2:
                continue
            on_path = row.is_critical and dep_id in critical_ids
            arrow = FancyArrowPatch(
                path=_polyline_path(_bevel_polyline(polyline, bevel=0.3)),
                arrowstyle="-|>",
                mutation_scale=8.0,
                lw=1.3 if on_path else 0.9,
                color=CRITICAL_COLOR if on_path else ARROW_COLOR,
                shrinkA=0.5,
                shrinkB=0.5,
            )
            ax.add_patch(arrow)
