"""
Parsing of plain task/dependency records (as decoded from JSON) into the
engine's value types. Anything that cannot be interpreted raises
ScheduleInputError with a message naming the offending record.
"""
import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from .exceptions import ScheduleInputError
from .models import (
    DateRange,
    DependencyType,
    FilterSpec,
    PRIORITIES,
    Project,
    RecordedDependency,
    STATUS_ORDER,
    Task,
)

logger = logging.getLogger(__name__)

COMPLETION_BUCKETS = ("completed", "in_progress", "not_started")
# keeps estimated windows well inside the datetime range
MAX_HOURS = 1_000_000


def parse_datetime(value: Any, label: str = "date") -> Optional[datetime]:
    """
    Accepts datetime, date or ISO-8601 strings ("Z" suffix allowed).
    Aware values are converted to naive UTC so every instant compares cleanly.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            raise ScheduleInputError(f"{label}: '{value}' is not a valid ISO date.")
    else:
        raise ScheduleInputError(f"{label}: '{value}' is not a valid ISO date.")

    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def _parse_hours(value: Any, label: str) -> float:
    if value is None or value == "":
        return 0.0
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ScheduleInputError(f"{label} must be a number.")
    if not math.isfinite(hours):
        raise ScheduleInputError(f"{label} must be a number.")
    if abs(hours) > MAX_HOURS:
        raise ScheduleInputError(f"{label} must be at most {MAX_HOURS} hours.")
    return hours


def _parse_id_list(value: Any, label: str) -> List[str]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        # legacy records store inline dependencies as "A, B, C"
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, (list, tuple)):
        raise ScheduleInputError(f"{label} must be a list.")
    return [str(item).strip() for item in value if str(item).strip()]


def parse_task(record: Dict[str, Any], position: int = 1) -> Task:
    if not isinstance(record, dict):
        raise ScheduleInputError(f"Task #{position} must be an object.")
    if "id" not in record:
        raise ScheduleInputError(f"Task #{position} has no 'id'")
    task_id = record["id"]
    if not isinstance(task_id, str) or not task_id:
        raise ScheduleInputError(f"Task #{position} has invalid 'id' (must be non-empty string).")

    status = record.get("status") or "To Do"
    if status not in STATUS_ORDER:
        raise ScheduleInputError(f"Task {task_id}: unknown status '{status}'.")

    priority = record.get("priority") or "Medium"
    if priority not in PRIORITIES:
        raise ScheduleInputError(f"Task {task_id}: unknown priority '{priority}'.")

    dependencies = _parse_id_list(record.get("dependencies"), f"Task {task_id}: 'dependencies'")
    if task_id in dependencies:
        raise ScheduleInputError(f"Task {task_id}: cannot depend on itself.")

    labels = record.get("labels") or []
    if isinstance(labels, str):
        labels = [part.strip() for part in labels.split(",")]

    return Task(
        id=task_id,
        name=str(record.get("name") or task_id),
        project_id=record.get("project_id"),
        status=status,
        priority=priority,
        assignee=record.get("assignee") or None,
        start_date=parse_datetime(record.get("start_date"), f"Task {task_id}: 'start_date'"),
        due_date=parse_datetime(record.get("due_date"), f"Task {task_id}: 'due_date'"),
        estimated_hours=_parse_hours(record.get("estimated_hours"), f"Task {task_id}: 'estimated_hours'"),
        actual_hours=_parse_hours(record.get("actual_hours"), f"Task {task_id}: 'actual_hours'"),
        labels=frozenset(str(label) for label in labels if label),
        parent_id=record.get("parent_id") or None,
        task_type=record.get("type") or record.get("task_type") or None,
        created_at=parse_datetime(record.get("created_at"), f"Task {task_id}: 'created_at'"),
        dependencies=tuple(dependencies),
    )


def parse_tasks(records: Iterable[Dict[str, Any]]) -> List[Task]:
    """
    Validate and convert task records:
      - Each task must have a unique string 'id'
      - dates must be ISO-8601, hours numeric
      - a task cannot list itself as a dependency
    Dependencies on unknown ids are kept; the graph builder drops them.
    """
    tasks = [parse_task(record, i) for i, record in enumerate(records, start=1)]

    seen: Set[str] = set()
    dups: Set[str] = set()
    for task in tasks:
        if task.id in seen:
            dups.add(task.id)
        seen.add(task.id)
    if dups:
        raise ScheduleInputError(f"Duplicate task ids found: {', '.join(sorted(dups))}")

    logger.debug("Parsed %d task records", len(tasks))
    return tasks


def parse_dependency(record: Dict[str, Any], position: int = 1) -> RecordedDependency:
    if not isinstance(record, dict):
        raise ScheduleInputError(f"Dependency #{position} must be an object.")
    dep_id = str(record.get("id") or f"dep-{position}")
    predecessor = record.get("predecessor_id")
    successor = record.get("successor_id")
    if not predecessor or not successor:
        raise ScheduleInputError(f"Dependency {dep_id}: 'predecessor_id' and 'successor_id' are required.")

    raw_type = record.get("type") or DependencyType.FINISH_TO_START.value
    try:
        dep_type = DependencyType(str(raw_type).upper())
    except ValueError:
        raise ScheduleInputError(f"Dependency {dep_id}: unknown type '{raw_type}'.")

    raw_lag = record.get("lag", 0)
    try:
        lag = int(raw_lag or 0)
    except (TypeError, ValueError):
        raise ScheduleInputError(f"Dependency {dep_id}: 'lag' must be an integer.")

    return RecordedDependency(
        id=dep_id,
        predecessor_id=str(predecessor),
        successor_id=str(successor),
        type=dep_type,
        lag=lag,
    )


def parse_dependencies(records: Iterable[Dict[str, Any]]) -> List[RecordedDependency]:
    return [parse_dependency(record, i) for i, record in enumerate(records or [], start=1)]


def parse_projects(records: Iterable[Dict[str, Any]]) -> List[Project]:
    projects: List[Project] = []
    for i, record in enumerate(records or [], start=1):
        if not isinstance(record, dict) or not record.get("id"):
            raise ScheduleInputError(f"Project #{i} has no 'id'")
        projects.append(Project(
            id=str(record["id"]),
            name=str(record.get("name") or record["id"]),
            end_date=parse_datetime(record.get("end_date"), f"Project {record['id']}: 'end_date'"),
        ))
    return projects


def parse_date_range(record: Optional[Dict[str, Any]], label: str = "date_range") -> Optional[DateRange]:
    if not record:
        return None
    start = parse_datetime(record.get("start"), f"{label}: 'start'")
    end = parse_datetime(record.get("end"), f"{label}: 'end'")
    if start is None or end is None:
        raise ScheduleInputError(f"{label}: both 'start' and 'end' are required.")
    if end < start:
        raise ScheduleInputError(f"{label}: 'end' must not be before 'start'.")
    return DateRange(start, end)


def parse_filter_spec(record: Optional[Dict[str, Any]]) -> FilterSpec:
    record = record or {}
    completion = record.get("completion") or None
    if completion is not None and completion not in COMPLETION_BUCKETS:
        raise ScheduleInputError(f"filters: unknown completion bucket '{completion}'.")
    return FilterSpec(
        assignee=record.get("assignee") or None,
        status=record.get("status") or None,
        priority=record.get("priority") or None,
        task_type=record.get("type") or record.get("task_type") or None,
        search=record.get("search") or None,
        overdue_only=bool(record.get("overdue_only", False)),
        date_range=parse_date_range(record.get("date_range"), "filters.date_range"),
        completion=completion,
    )
