from datetime import timedelta

import pytest

from projectflow.durations import compute_progress, resolve_window
from projectflow.models import Task

from conftest import NOW, T0


def test_both_dates_round_up_to_whole_days():
    task = Task(id="A", name="A", start_date=T0, due_date=T0 + timedelta(days=2, hours=12))
    window = resolve_window(task, NOW)
    assert window.duration_days == 3
    assert window.start == T0
    assert window.end == T0 + timedelta(days=2, hours=12)


def test_same_day_task_lasts_one_day():
    task = Task(id="A", name="A", start_date=T0, due_date=T0)
    assert resolve_window(task, NOW).duration_days == 1


def test_due_before_start_is_clamped_to_one_day():
    task = Task(id="A", name="A", start_date=T0, due_date=T0 - timedelta(days=3))
    window = resolve_window(task, NOW)
    assert window.duration_days == 1
    assert window.start <= window.end
    assert window.end == T0 + timedelta(days=1)


def test_due_only_estimates_backwards_from_effort():
    due = T0 + timedelta(days=10)
    task = Task(id="A", name="A", due_date=due, estimated_hours=20)
    window = resolve_window(task, NOW)
    assert window.duration_days == 3
    assert window.start == due - timedelta(days=3)
    assert window.end == due


def test_small_estimates_use_the_eight_hour_floor():
    task = Task(id="A", name="A", due_date=T0, estimated_hours=2)
    assert resolve_window(task, NOW).duration_days == 1


def test_start_only_estimates_forwards():
    task = Task(id="A", name="A", start_date=T0, estimated_hours=40)
    window = resolve_window(task, NOW)
    assert window.duration_days == 5
    assert window.end == T0 + timedelta(days=5)


def test_undated_task_starts_at_creation_time():
    created = T0 - timedelta(days=4)
    window = resolve_window(Task(id="A", name="A", created_at=created), NOW)
    assert window.start == created
    assert window.duration_days == 1


def test_undated_task_without_creation_time_starts_now():
    window = resolve_window(Task(id="A", name="A", estimated_hours=16), NOW)
    assert window.start == NOW
    assert window.end == NOW + timedelta(days=2)


@pytest.mark.parametrize(
    "status, estimated, actual, expected",
    [
        ("Done", 8, 0, 100.0),
        ("In Progress", 8, 4, 50.0),
        ("Review", 8, 20, 90.0),
        ("Testing", 0, 5, 50.0),
        ("Blocked", 10, 1, 10.0),
        ("To Do", 8, 6, 0.0),
        ("Backlog", 8, 0, 0.0),
    ],
)
def test_progress_from_status_and_effort(status, estimated, actual, expected):
    task = Task(id="A", name="A", status=status, estimated_hours=estimated, actual_hours=actual)
    assert compute_progress(task) == pytest.approx(expected)
