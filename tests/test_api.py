import pytest
from jsonschema import validate

from app import REQUEST_SCHEMA

NOW = "2025-06-16T12:00:00Z"

TASK_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "start": {"type": "string"},
        "end": {"type": "string"},
        "duration": {"type": "integer", "minimum": 1},
        "es": {"type": "number"},
        "ef": {"type": "number"},
        "ls": {"type": "number"},
        "lf": {"type": "number"},
        "slack": {"type": "number"},
        "critical": {"type": "boolean"},
    },
    "required": ["id", "start", "end", "duration", "es", "ef", "ls", "lf", "slack", "critical"],
}

TIMELINE_SCHEMA = {
    "type": "object",
    "properties": {
        "tasks": {"type": "array", "items": TASK_SCHEMA},
        "dependencies": {"type": "array"},
        "critical_path": {"type": "array", "items": {"type": "string"}},
        "milestones": {"type": "array"},
        "date_range": {
            "type": "object",
            "properties": {"start": {"type": "string"}, "end": {"type": "string"}},
            "required": ["start", "end"],
        },
        "project_duration": {"type": "number"},
    },
    "required": ["tasks", "dependencies", "critical_path", "milestones", "date_range", "project_duration"],
}

DIAMOND = {
    "now": NOW,
    "tasks": [
        {"id": "A", "name": "Design", "start_date": "2025-07-01", "due_date": "2025-07-02", "assignee": "ana"},
        {"id": "B", "name": "Build", "start_date": "2025-07-01", "due_date": "2025-07-04", "dependencies": ["A"]},
        {"id": "C", "name": "Docs", "start_date": "2025-07-01", "due_date": "2025-07-02", "assignee": "ana"},
        {"id": "D", "name": "Ship", "start_date": "2025-07-01", "due_date": "2025-07-02", "assignee": "ana"},
    ],
    "dependencies": [
        {"id": "d1", "predecessor_id": "A", "successor_id": "C"},
        {"id": "d2", "predecessor_id": "B", "successor_id": "D", "type": "FS", "lag": 0},
        {"id": "d3", "predecessor_id": "C", "successor_id": "D"},
    ],
}


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}


def test_request_fixture_matches_schema():
    validate(instance=DIAMOND, schema=REQUEST_SCHEMA)


def test_timeline_endpoint(client):
    resp = client.post("/api/timeline", json=DIAMOND)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body["ok"] is True
    validate(instance=body["result"], schema=TIMELINE_SCHEMA)

    result = body["result"]
    assert result["critical_path"] == ["A", "B", "D"]
    assert result["project_duration"] == 5
    assert result["critical_chains"] == [["A", "B", "D"]]
    by_id = {t["id"]: t for t in result["tasks"]}
    assert by_id["C"]["slack"] == 2
    sources = {(d["predecessor_id"], d["successor_id"]): d["source"] for d in result["dependencies"]}
    assert sources[("A", "B")] == "inline"
    assert sources[("A", "C")] == "recorded"


def test_timeline_endpoint_is_deterministic(client):
    first = client.post("/api/timeline", json=DIAMOND).get_data()
    second = client.post("/api/timeline", json=DIAMOND).get_data()
    assert first == second


def test_timeline_endpoint_with_filters(client):
    payload = dict(DIAMOND, filters={"assignee": "ana"})
    resp = client.post("/api/timeline", json=payload)
    result = resp.get_json()["result"]
    assert {t["id"] for t in result["tasks"]} == {"A", "C", "D"}
    assert result["critical_path"] == ["A", "C", "D"]
    assert result["stats"] == {"total": 4, "filtered": 3, "overdue": 0, "completed": 0, "critical": 3}


def test_cycle_is_reported(client):
    payload = {
        "now": NOW,
        "tasks": [
            {"id": "A", "dependencies": "B"},
            {"id": "B", "dependencies": "C"},
            {"id": "C", "dependencies": "A"},
        ],
    }
    resp = client.post("/api/timeline", json=payload)
    assert resp.status_code == 400
    data = resp.get_json()
    assert data["ok"] is False
    assert "Cycle detected in dependencies" in data["error"]
    assert len(data["cycles"]) == 1
    assert data["cycles"][0][0] == data["cycles"][0][-1]


def test_error_invalid_date(client):
    payload = {"tasks": [{"id": "A", "start_date": "next tuesday"}]}
    resp = client.post("/api/timeline", json=payload)
    assert resp.status_code == 400
    assert "Task A: 'start_date'" in resp.get_json()["error"]


def test_error_non_numeric_hours(client):
    payload = {"tasks": [{"id": "A", "estimated_hours": "x"}]}
    resp = client.post("/api/timeline", json=payload)
    assert resp.status_code == 400
    assert "'estimated_hours' must be a number" in resp.get_json()["error"]


@pytest.mark.parametrize("hours", ["inf", "-inf", "1e300"])
def test_error_unbounded_hours(client, hours):
    payload = {"tasks": [{"id": "A", "estimated_hours": hours}]}
    resp = client.post("/api/timeline", json=payload)
    assert resp.status_code == 400
    assert "Task A: 'estimated_hours'" in resp.get_json()["error"]


def test_recorded_self_dependency_is_a_cycle(client):
    payload = {"now": NOW, "tasks": [{"id": "A"}], "dependencies": [{"predecessor_id": "A", "successor_id": "A"}]}
    resp = client.post("/api/timeline", json=payload)
    assert resp.status_code == 400
    assert resp.get_json()["cycles"] == [["A", "A"]]


def test_error_self_dependency(client):
    resp = client.post("/api/timeline", json={"tasks": [{"id": "A", "dependencies": ["A"]}]})
    assert resp.status_code == 400
    assert "cannot depend on itself" in resp.get_json()["error"]


def test_error_duplicate_ids(client):
    resp = client.post("/api/timeline", json={"tasks": [{"id": "A"}, {"id": "A", "name": "A dup"}]})
    assert resp.status_code == 400
    assert "Duplicate task ids found: A" in resp.get_json()["error"]


def test_error_unknown_dependency_type(client):
    payload = {"tasks": [{"id": "A"}, {"id": "B"}], "dependencies": [{"predecessor_id": "A", "successor_id": "B", "type": "XX"}]}
    resp = client.post("/api/timeline", json=payload)
    assert resp.status_code == 400
    assert "unknown type 'XX'" in resp.get_json()["error"]


def test_error_missing_tasks(client):
    resp = client.post("/api/timeline", json={"dependencies": []})
    assert resp.status_code == 400
    assert resp.get_json()["ok"] is False


def test_unknown_dependency_is_ignored(client):
    payload = {"now": NOW, "tasks": [{"id": "A", "dependencies": ["GHOST"]}]}
    resp = client.post("/api/timeline", json=payload)
    assert resp.status_code == 200
    assert resp.get_json()["result"]["dependencies"] == []


def test_critical_path_endpoint(client):
    resp = client.post("/api/critical-path", json=DIAMOND)
    assert resp.status_code == 200
    result = resp.get_json()["result"]
    assert {d["id"] for d in result["critical_task_details"]} == {"A", "B", "D"}
    assert result["risk_assessment"]["level"] in {"low", "medium", "high"}
    scenarios = result["scenarios"]
    assert scenarios["best_case"]["date"] <= scenarios["current_trajectory"]["date"] <= scenarios["worst_case"]["date"]
    ranks = {"critical": 0, "high": 1, "medium": 2, "low": 3}
    priorities = [ranks[r["priority"]] for r in result["recommendations"]]
    assert priorities == sorted(priorities)


def test_empty_project(client):
    resp = client.post("/api/critical-path", json={"now": NOW, "tasks": []})
    assert resp.status_code == 200
    result = resp.get_json()["result"]
    assert result["critical_task_details"] == []
    assert result["scenarios"] is None
