from datetime import timedelta

import pytest

from projectflow import EngineSettings, Task, TimelineService, analyze_critical_path, build_timeline
from projectflow.impact import impact_score, projected_remaining_days
from projectflow.models import ScheduledTask

from conftest import NOW


def test_impact_score_formula():
    assert impact_score(4, 25, 0, 2) == pytest.approx(46.5)
    assert impact_score(15, 100, 0, 0) == pytest.approx(30.0)
    assert impact_score(1, 0, 2, 0) == pytest.approx(10 + 2 + 30 + 10)


def test_unstarted_unassigned_diamond_is_high_risk(diamond):
    tasks, deps = diamond
    analysis = analyze_critical_path(build_timeline(tasks, deps, now=NOW), now=NOW)

    details = {d.task_id: d for d in analysis.critical_task_details}
    assert set(details) == {"A", "B", "D"}
    assert details["A"].dependents == 2
    assert details["A"].impact_score == pytest.approx(48)
    assert details["B"].impact_score == pytest.approx(49)
    assert details["D"].impact_score == pytest.approx(42)
    assert [d.task_id for d in analysis.critical_task_details] == ["B", "A", "D"]
    assert set(analysis.bottlenecks) == {"A", "B", "D"}

    risk = analysis.risk_assessment
    assert {f.type for f in risk.factors} == {
        "low_progress", "unassigned_critical_tasks", "long_critical_path", "short_critical_tasks",
    }
    assert risk.score == pytest.approx(24 + 30 + 20 + 5)
    assert risk.level == "high"

    assert [r.type for r in analysis.recommendations] == [
        "assignment_needed",
        "bottleneck_focus",
        "progress_acceleration",
        "parallel_execution",
        "task_consolidation",
    ]


def test_thresholds_come_from_service_settings(diamond):
    tasks, deps = diamond
    service = TimelineService(EngineSettings(bottleneck_min_score=100, high_risk_score=200))
    analysis = service.analyze_critical_path(service.build_timeline(tasks, deps, now=NOW), now=NOW)

    assert analysis.bottlenecks == ()
    assert analysis.risk_assessment.score == pytest.approx(79)
    assert analysis.risk_assessment.level == "medium"
    assert "bottleneck_focus" not in [r.type for r in analysis.recommendations]


def test_overdue_critical_task_is_medium_risk(make_task):
    task = make_task("X", 5, assignee="ana", status="In Progress", actual_hours=20)
    analysis = analyze_critical_path(build_timeline([task], [], now=NOW), now=NOW)

    detail = analysis.critical_task_details[0]
    assert detail.progress == pytest.approx(50)
    assert detail.overdue_days > 0
    assert detail.is_bottleneck is False

    risk = analysis.risk_assessment
    assert [f.type for f in risk.factors] == ["overdue_critical_tasks", "long_critical_path"]
    assert risk.score == pytest.approx(35)
    assert risk.level == "medium"
    assert analysis.recommendations[0].type == "overdue_recovery"
    assert analysis.recommendations[0].priority == "critical"


def test_on_track_single_task_is_low_risk(make_task):
    task = make_task("X", 5, offset=30, assignee="ana", status="In Progress", actual_hours=20)
    analysis = analyze_critical_path(build_timeline([task], [], now=NOW), now=NOW)
    assert analysis.risk_assessment.score == pytest.approx(20)
    assert analysis.risk_assessment.level == "low"


def test_scenarios_are_ordered(diamond):
    tasks, deps = diamond
    timeline = build_timeline(tasks, deps, now=NOW)
    analysis = analyze_critical_path(timeline, now=NOW)

    best, current, worst = analysis.scenarios
    assert [s.kind for s in analysis.scenarios] == ["best_case", "current_trajectory", "worst_case"]
    assert best.date <= current.date <= worst.date
    start = min(t.start for t in timeline.tasks)
    assert best.date == start + timedelta(days=5)
    assert worst.date == best.date + timedelta(days=1)
    assert best.assumptions and best.probability == "low"


def test_current_trajectory_follows_progress_rate():
    task = Task(
        id="X", name="X", status="In Progress", assignee="ana",
        start_date=NOW - timedelta(days=10), due_date=NOW + timedelta(days=2),
        estimated_hours=80, actual_hours=40,
    )
    analysis = analyze_critical_path(build_timeline([task], [], now=NOW), now=NOW)

    best, current, worst = analysis.scenarios
    assert best.date == NOW + timedelta(days=2)
    assert current.date == NOW + timedelta(days=10)
    assert worst.date == current.date


def test_projection_guards_against_zero_rate():
    item = ScheduledTask(
        task_id="X", start=NOW + timedelta(days=3), end=NOW + timedelta(days=7),
        duration_days=4, progress=0.0,
    )
    assert projected_remaining_days([item], NOW) == pytest.approx(4)


def test_no_critical_tasks_means_no_scenarios():
    analysis = analyze_critical_path(build_timeline([], [], now=NOW), now=NOW)
    assert analysis.critical_task_details == ()
    assert analysis.scenarios is None
    assert analysis.risk_assessment.level == "low"
    assert analysis.recommendations == ()
