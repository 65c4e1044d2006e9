from datetime import datetime, timedelta

import pytest

from projectflow import RecordedDependency, Task

NOW = datetime(2025, 6, 16, 12, 0)
T0 = datetime(2025, 6, 2, 9, 0)


@pytest.fixture
def make_task():
    """Factory for dated tasks: `days` long, starting `offset` days after T0."""

    def _make(task_id, days=1, offset=0, **overrides):
        start = T0 + timedelta(days=offset)
        fields = {
            "id": task_id,
            "name": f"Task {task_id}",
            "start_date": start,
            "due_date": start + timedelta(days=days),
            "estimated_hours": 8.0 * days,
        }
        fields.update(overrides)
        return Task(**fields)

    return _make


@pytest.fixture
def link():
    """Factory for finish-to-start dependency records."""
    counter = {"n": 0}

    def _link(pred, succ, **overrides):
        counter["n"] += 1
        fields = {"id": f"dep-{counter['n']}", "predecessor_id": pred, "successor_id": succ}
        fields.update(overrides)
        return RecordedDependency(**fields)

    return _link


@pytest.fixture
def diamond(make_task, link):
    """A(1)->B(3)->D(1) and A->C(1)->D, starting 30 days after T0 (in the future)."""
    tasks = [
        make_task("A", 1, offset=30),
        make_task("B", 3, offset=30),
        make_task("C", 1, offset=30),
        make_task("D", 1, offset=30),
    ]
    deps = [link("A", "B"), link("A", "C"), link("B", "D"), link("C", "D")]
    return tasks, deps


@pytest.fixture
def client():
    from app import create_app

    flask_app = create_app({"TESTING": True})
    return flask_app.test_client()
