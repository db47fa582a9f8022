import datetime as dt
import textwrap
from pathlib import Path

import pytest

from gantt_cpm.__main__ import main
from gantt_cpm.render_gantt import render_gantt, route_dependency
from gantt_cpm.render_rows import to_render_rows
from gantt_cpm.scheduling import compute_critical_path
from gantt_cpm.task_models import Task

SAMPLE = Path(__file__).resolve().parent.parent / "samples" / "project.yaml"


def _tasks():
    return [
        Task(id="P", name="Phase", start="2025-01-01", end="2025-01-05"),
        Task(id="A", name="Design", start="2025-01-01", end="2025-01-02", parent_id="P", progress=50),
        Task(id="B", name="Build", start="2025-01-03", end="2025-01-05", parent_id="P", dependencies=("A",)),
        Task(id="M", name="Done", start="2025-01-06", end="2025-01-06", dependencies=("B",)),
    ]


def test_render_rows_carry_depth_kind_and_schedule():
    rows = to_render_rows(compute_critical_path(_tasks()))

    assert [(row.node_id, row.indent, row.node_type) for row in rows] == [
        ("P", 0, "bracket"),
        ("A", 1, "bar"),
        ("B", 1, "bar"),
        ("M", 0, "lozenge"),
    ]
    assert rows[2].depends_on == ["A"]
    assert rows[2].start_date == dt.date(2025, 1, 3)
    assert rows[3].is_critical


def test_render_rows_skip_collapsed_descendants():
    rows = to_render_rows(compute_critical_path(_tasks()), {"P": True})

    assert [row.node_id for row in rows] == ["P", "M"]
    assert [row.order for row in rows] == [0, 1]


def test_renderer_produces_svg(tmp_path):
    rows = to_render_rows(compute_critical_path(_tasks()))
    out_file = tmp_path / "chart.svg"

    render_gantt(rows, out_path=str(out_file), title="Demo")

    assert out_file.exists()
    assert out_file.stat().st_size > 0


def test_renderer_rejects_empty_rows(tmp_path):
    with pytest.raises(ValueError):
        render_gantt([], out_path=str(tmp_path / "x.svg"), title="Empty")


def test_route_dependency_detours_when_target_starts_left():
    forward = route_dependency((0.0, 2.0, -0.3, 0.3), (5.0, 6.0, 0.7, 1.3))
    backward = route_dependency((0.0, 4.0, -0.3, 0.3), (1.0, 2.0, 0.7, 1.3))

    assert forward[0][0] < forward[-1][0]
    assert backward[-1][0] < backward[0][0]
    assert backward[1][1] == pytest.approx(0.5)


def test_cli_schedules_renders_and_exports(tmp_path, capsys):
    out_svg = tmp_path / "chart.svg"
    out_yaml = tmp_path / "schedule.yaml"

    code = main([str(SAMPLE), "--out", str(out_svg), "--schedule-out", str(out_yaml), "--no-view"])

    captured = capsys.readouterr()
    assert code == 0
    assert out_svg.exists()
    assert out_yaml.exists()
    assert "Critical path:" in captured.out
    assert "S3-2" in captured.out


def test_cli_missing_file_returns_1(tmp_path, capsys):
    code = main([str(tmp_path / "missing.yaml"), "--no-render"])

    assert code == 1
    assert "not found" in capsys.readouterr().err


def test_cli_validation_error_returns_2(tmp_path, capsys):
    path = tmp_path / "bad.yaml"
    path.write_text(
        textwrap.dedent(
            """
            tasks:
              - id: A
              - id: A
            """
        ),
        encoding="utf-8",
    )

    code = main([str(path), "--no-render"])

    assert code == 2
    assert "duplicate id" in capsys.readouterr().err


def test_cli_reports_non_converging_schedule(tmp_path, capsys):
    path = tmp_path / "cycle.yaml"
    path.write_text(
        textwrap.dedent(
            """
            tasks:
              - {id: A, start: 2025-01-01, end: 2025-01-02, dependencies: B}
              - {id: B, start: 2025-01-01, end: 2025-01-02, dependencies: A}
            """
        ),
        encoding="utf-8",
    )

    code = main([str(path), "--no-render"])

    assert code == 0
    assert "did not converge" in capsys.readouterr().out


def test_renderer_honours_explicit_window_and_closes_figure_on_failure(tmp_path):
    import matplotlib.pyplot as plt

    rows = to_render_rows(compute_critical_path(_tasks()))
    out_file = tmp_path / "window.svg"
    render_gantt(
        rows, out_path=str(out_file), title="Window", min_date=dt.date(2024, 12, 1), max_date=dt.date(2025, 2, 1)
    )
    assert out_file.exists()

    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(OSError):
        render_gantt(rows, out_path=str(blocker / "chart.svg"), title="Blocked")
    assert plt.get_fignums() == []


def test_renderer_rejects_inverted_window(tmp_path):
    rows = to_render_rows(compute_critical_path(_tasks()))

    with pytest.raises(ValueError, match="before it starts"):
        render_gantt(
            rows, out_path=str(tmp_path / "x.svg"), title="Bad", min_date=dt.date(2025, 2, 1), max_date=dt.date(2025, 1, 1)
        )


def test_cli_renders_with_date_window(tmp_path):
    out_svg = tmp_path / "chart.svg"

    code = main([str(SAMPLE), "--out", str(out_svg), "--min-date", "2025-10-01", "--max-date", "2026-01-31"])

    assert code == 0
    assert out_svg.exists()


@pytest.mark.parametrize("flag", ["--min-date", "--max-date"])
def test_cli_rejects_malformed_window_date(flag, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([str(SAMPLE), flag, "20250101"])

    assert excinfo.value.code == 2
    assert "expected YYYY-MM-DD" in capsys.readouterr().err


def test_cli_inverted_window_returns_2(tmp_path, capsys):
    code = main(
        [str(SAMPLE), "--out", str(tmp_path / "c.svg"), "--min-date", "2026-01-01", "--max-date", "2025-01-01"]
    )

    assert code == 2
    assert "cannot render chart" in capsys.readouterr().err
