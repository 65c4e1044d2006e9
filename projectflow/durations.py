import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import NOT_STARTED_STATUSES, Task, TERMINAL_STATUS
from .settings import DEFAULT_SETTINGS, EngineSettings

DAY_SECONDS = 86400.0


@dataclass(frozen=True)
class ResolvedWindow:
    start: datetime
    end: datetime
    duration_days: int


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / DAY_SECONDS


def estimate_days(task: Task, settings: EngineSettings = DEFAULT_SETTINGS) -> int:
    hours = max(task.estimated_hours, settings.min_estimated_hours)
    return max(1, math.ceil(hours / settings.hours_per_day))


def resolve_window(task: Task, now: datetime, settings: EngineSettings = DEFAULT_SETTINGS) -> ResolvedWindow:
    """
    Give every task a usable [start, end] window with start <= end.

    Explicit dates win; a missing side is estimated from effort
    (8h per day, at least one day). Tasks with no dates at all start at
    their creation time, or at `now` when that is unknown as well.
    """
    start, due = task.start_date, task.due_date

    if start is not None and due is not None:
        duration = max(1, math.ceil(days_between(start, due)))
        end = due if due > start else start + timedelta(days=duration)
        return ResolvedWindow(start, end, duration)

    duration = estimate_days(task, settings)
    if due is not None:
        return ResolvedWindow(due - timedelta(days=duration), due, duration)

    anchor = start if start is not None else (task.created_at or now)
    return ResolvedWindow(anchor, anchor + timedelta(days=duration), duration)


def compute_progress(task: Task, settings: EngineSettings = DEFAULT_SETTINGS) -> float:
    if task.status == TERMINAL_STATUS:
        return 100.0
    if task.status in NOT_STARTED_STATUSES:
        return 0.0
    if task.estimated_hours > 0:
        ratio = task.actual_hours / task.estimated_hours * 100
        return max(0.0, min(settings.max_in_flight_progress, ratio))
    return settings.default_in_flight_progress
