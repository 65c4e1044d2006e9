# cpm_selftest.py
from datetime import datetime, timedelta
from math import isclose

from projectflow import RecordedDependency, Task, TimelineData, build_timeline

TOL = 1e-6
T0 = datetime(2025, 3, 3, 9, 0)
NOW = datetime(2025, 3, 1, 9, 0)


def task_map(timeline):
    """Helper: index scheduled tasks by id."""
    return {t.task_id: t for t in timeline.tasks}


def assert_close(a, b, msg):
    assert isclose(a, b, rel_tol=0, abs_tol=TOL), f"{msg}: expected {b}, got {a}"


def schedule(durations, links):
    """durations: {id: days}; links: {id: [predecessor ids]} stored as inline dependencies."""
    tasks = [
        Task(id=tid, name=f"Task {tid}", start_date=T0, due_date=T0 + timedelta(days=days),
             dependencies=tuple(links.get(tid, ())))
        for tid, days in durations.items()
    ]
    timeline = build_timeline(tasks, [], now=NOW)
    assert isinstance(timeline, TimelineData), f"Expected a timeline, got {timeline}"
    return timeline


def test_linear_chain():
    # A(2) -> B(3) -> C(4)  => project = 9, all critical
    res = schedule({"A": 2, "B": 3, "C": 4}, {"B": ["A"], "C": ["B"]})
    m = task_map(res)

    expected = {
        "A": (0, 2, 0, 2),
        "B": (2, 5, 2, 5),
        "C": (5, 9, 5, 9),
    }
    for tid, (es, ef, ls, lf) in expected.items():
        assert_close(m[tid].earliest_start, es, f"{tid} ES")
        assert_close(m[tid].earliest_finish, ef, f"{tid} EF")
        assert_close(m[tid].latest_start, ls, f"{tid} LS")
        assert_close(m[tid].latest_finish, lf, f"{tid} LF")
        assert_close(m[tid].total_float, 0, f"{tid} slack")
        assert m[tid].is_critical is True, f"{tid} should be critical"

    assert_close(res.project_duration, 9, "Project duration (linear)")


def test_sample_A_to_H():
    # A(3) → B(11) → E(4)/F(6) → G(2)
    # C(13) ────────┘          └→ H(1) depends on D(5),E(4),F(6)
    res = schedule(
        {"A": 3, "B": 11, "C": 13, "D": 5, "E": 4, "F": 6, "G": 2, "H": 1},
        {"B": ["A"], "D": ["A"], "E": ["B", "C"], "F": ["B", "C"], "G": ["F"], "H": ["D", "E", "F"]},
    )
    m = task_map(res)

    expected = {
        "A": (0, 3, 0, 3, 0),
        "B": (3, 14, 3, 14, 0),
        "C": (0, 13, 1, 14, 1),
        "D": (3, 8, 16, 21, 13),
        "E": (14, 18, 17, 21, 3),
        "F": (14, 20, 14, 20, 0),
        "G": (20, 22, 20, 22, 0),
        "H": (20, 21, 21, 22, 1),
    }
    for tid, (es, ef, ls, lf, slack) in expected.items():
        assert_close(m[tid].earliest_start, es, f"{tid} ES")
        assert_close(m[tid].earliest_finish, ef, f"{tid} EF")
        assert_close(m[tid].latest_start, ls, f"{tid} LS")
        assert_close(m[tid].latest_finish, lf, f"{tid} LF")
        assert_close(m[tid].total_float, slack, f"{tid} slack")

    assert res.critical_path == {"A", "B", "F", "G"}, f"Critical path should be A-B-F-G, got {res.critical_path}"
    assert_close(res.project_duration, 22, "Project duration (A–H)")


def test_diamond_with_slack_branch():
    # A(1) -> B(3) -> D(1) and A -> C(1) -> D: A-B-D is 5 days, C has 2 days of float
    res = schedule({"A": 1, "B": 3, "C": 1, "D": 1}, {"B": ["A"], "C": ["A"], "D": ["B", "C"]})
    m = task_map(res)

    assert res.critical_path == {"A", "B", "D"}
    assert_close(res.project_duration, 5, "Project duration (diamond)")
    assert_close(m["C"].total_float, 2, "C slack")
    assert m["C"].is_critical is False


def test_recorded_lag_shifts_successor():
    # A(2) -FS+3-> B(1): B may start on day 5
    tasks = [
        Task(id="A", name="A", start_date=T0, due_date=T0 + timedelta(days=2)),
        Task(id="B", name="B", start_date=T0, due_date=T0 + timedelta(days=1)),
    ]
    res = build_timeline(tasks, [RecordedDependency("d1", "A", "B", lag=3)], now=NOW)
    m = task_map(res)

    assert_close(m["B"].earliest_start, 5, "B ES")
    assert_close(res.project_duration, 6, "Project duration (lag)")
    assert_close(m["A"].latest_finish, 2, "A LF")
    assert res.critical_path == {"A", "B"}


if __name__ == "__main__":
    test_linear_chain()
    test_sample_A_to_H()
    test_diamond_with_slack_branch()
    test_recorded_lag_shifts_successor()
    print("✅ CPM self-test passed: linear chain, A–H example, diamond, lag")
