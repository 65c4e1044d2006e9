import logging
import sys
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from jsonschema import ValidationError, validate

from projectflow import TimelineService, TimelineData
from projectflow.models import CycleError
from projectflow.serializers import analysis_to_dict, cycle_error_to_dict, timeline_to_dict
from projectflow.settings import EngineSettings
from projectflow.validation import (
    parse_date_range,
    parse_datetime,
    parse_dependencies,
    parse_filter_spec,
    parse_projects,
    parse_tasks,
)

DATE_RANGE_SCHEMA = {
    "type": "object",
    "properties": {
        "start": {"type": "string"},
        "end": {"type": "string"},
    },
    "required": ["start", "end"],
}

REQUEST_SCHEMA = {
    "type": "object",
    "properties": {
        "tasks": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "name": {"type": "string"},
                    "status": {"type": "string"},
                    "estimated_hours": {"type": ["number", "string", "null"]},
                    "actual_hours": {"type": ["number", "string", "null"]},
                    "dependencies": {"type": ["array", "string", "null"]},
                },
                "required": ["id"],
            },
        },
        "dependencies": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "predecessor_id": {"type": "string", "minLength": 1},
                    "successor_id": {"type": "string", "minLength": 1},
                    "type": {"type": "string"},
                    "lag": {"type": ["integer", "string"]},
                },
                "required": ["predecessor_id", "successor_id"],
            },
        },
        "projects": {"type": "array", "items": {"type": "object"}},
        "project_id": {"type": ["string", "null"]},
        "date_range": {"oneOf": [DATE_RANGE_SCHEMA, {"type": "null"}]},
        "filters": {"type": ["object", "null"]},
        "now": {"type": ["string", "null"]},
        "allow_cycles": {"type": "boolean"},
    },
    "required": ["tasks"],
}

DEFAULT_CONFIG = {
    "DEBUG": False,
    "CRITICAL_EPSILON": 0.01,
    "HOURS_PER_DAY": 8.0,
    "RANGE_PADDING_DAYS": 7,
    "DEFAULT_WINDOW_DAYS": 30,
}

logger = logging.getLogger(__name__)


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_app(config=None) -> Flask:
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_CONFIG)
    app.config.from_prefixed_env("TIMELINE")
    if config:
        app.config.from_mapping(config)
    setup_logging(app.config["DEBUG"])

    service = TimelineService(EngineSettings.from_mapping(app.config))

    def build_from_request(data):
        """Parse the request body, build the timeline and apply optional filters."""
        validate(instance=data, schema=REQUEST_SCHEMA)
        now = parse_datetime(data.get("now"), "now") or datetime.now(timezone.utc).replace(tzinfo=None)
        timeline = service.build_timeline(
            parse_tasks(data["tasks"]),
            parse_dependencies(data.get("dependencies") or []),
            data.get("project_id"),
            parse_date_range(data.get("date_range")),
            now=now,
            projects=parse_projects(data.get("projects") or []),
            allow_cycles=bool(data.get("allow_cycles", False)),
        )
        if isinstance(timeline, TimelineData) and data.get("filters"):
            timeline = service.filter_timeline(timeline, parse_filter_spec(data["filters"]), now=now)
        return timeline, now

    def cycle_response(error: CycleError):
        body = {"ok": False}
        body.update(cycle_error_to_dict(error))
        return jsonify(body), 400

    @app.get("/api/health")
    def health():
        return jsonify({"ok": True})

    @app.post("/api/timeline")
    def timeline():
        try:
            data = request.get_json(force=True) or {}
            result, _now = build_from_request(data)
        except ValidationError as e:
            return jsonify({"ok": False, "error": e.message}), 400
        except ValueError as e:
            return jsonify({"ok": False, "error": str(e)}), 400
        if isinstance(result, CycleError):
            return cycle_response(result)
        return jsonify({"ok": True, "result": timeline_to_dict(result)})

    @app.post("/api/critical-path")
    def critical_path():
        try:
            data = request.get_json(force=True) or {}
            result, now = build_from_request(data)
        except ValidationError as e:
            return jsonify({"ok": False, "error": e.message}), 400
        except ValueError as e:
            return jsonify({"ok": False, "error": str(e)}), 400
        if isinstance(result, CycleError):
            return cycle_response(result)
        analysis = service.analyze_critical_path(result, now=now)
        return jsonify({"ok": True, "result": analysis_to_dict(analysis)})

    logger.debug("Timeline service configured with %s", service.settings)
    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=app.config["DEBUG"])
