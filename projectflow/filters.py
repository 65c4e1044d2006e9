"""
Post-hoc filtering of an assembled timeline.

The critical set of a filtered view is recomputed over the induced subgraph;
it is not a subset of the unfiltered critical set.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from .graph import find_cycles
from .models import (
    IN_FLIGHT_STATUSES,
    FilterSpec,
    FilterStats,
    ScheduledTask,
    TimelineData,
)
from .scheduling import critical_chains
from .settings import DEFAULT_SETTINGS, EngineSettings
from .timeline import apply_cpm, effective_range, induced_graph, order_milestones, sorted_edges

logger = logging.getLogger(__name__)

Predicate = Callable[[ScheduledTask], bool]


def _is_set(value: Optional[str]) -> bool:
    return value is not None and value != "" and value.lower() != "all"


def is_overdue(item: ScheduledTask, now: datetime) -> bool:
    return item.end < now and not (item.task is not None and item.task.is_done)


def completion_bucket(item: ScheduledTask) -> str:
    status = item.task.status if item.task is not None else ""
    if item.task is not None and item.task.is_done:
        return "completed"
    if status in IN_FLIGHT_STATUSES:
        return "in_progress"
    return "not_started"


def matches_search(item: ScheduledTask, needle: str) -> bool:
    needle = needle.strip().lower()
    task = item.task
    haystack = [item.task_id]
    if task is not None:
        haystack.append(task.name)
        if task.assignee:
            haystack.append(task.assignee)
        haystack.extend(task.labels)
    return any(needle in value.lower() for value in haystack)


def build_predicates(spec: FilterSpec, now: datetime) -> List[Predicate]:
    predicates: List[Predicate] = []

    def attribute(name: str, wanted: str) -> Predicate:
        return lambda item: item.task is not None and getattr(item.task, name) == wanted

    if _is_set(spec.assignee):
        predicates.append(attribute("assignee", spec.assignee))
    if _is_set(spec.status):
        predicates.append(attribute("status", spec.status))
    if _is_set(spec.priority):
        predicates.append(attribute("priority", spec.priority))
    if _is_set(spec.task_type):
        predicates.append(attribute("task_type", spec.task_type))
    if spec.search and spec.search.strip():
        predicates.append(lambda item: matches_search(item, spec.search))
    if spec.overdue_only:
        predicates.append(lambda item: is_overdue(item, now))
    if spec.date_range is not None:
        predicates.append(lambda item: spec.date_range.overlaps(item.start, item.end))
    if _is_set(spec.completion):
        predicates.append(lambda item: completion_bucket(item) == spec.completion)
    return predicates


def filter_timeline(
    timeline: TimelineData,
    spec: FilterSpec,
    *,
    now: datetime,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> TimelineData:
    predicates = build_predicates(spec, now)
    survivors = [item for item in timeline.tasks if all(p(item) for p in predicates)]
    survivor_ids = [item.task_id for item in survivors]

    graph = induced_graph(survivor_ids, timeline.dependencies)
    report = find_cycles(graph)
    scheduled, result = apply_cpm(survivors, graph, settings)

    keep = set(survivor_ids)
    milestones = [m for m in timeline.milestones if m.task_id is None or m.task_id in keep]
    stats = FilterStats(
        total_tasks=len(timeline.tasks),
        filtered_tasks=len(scheduled),
        overdue_tasks=sum(1 for item in scheduled if is_overdue(item, now)),
        completed_tasks=sum(1 for item in scheduled if completion_bucket(item) == "completed"),
        critical_tasks=len(result.critical),
    )
    logger.info("Filtered timeline: %d of %d tasks kept, %d critical", stats.filtered_tasks, stats.total_tasks, stats.critical_tasks)

    return TimelineData(
        tasks=tuple(scheduled),
        dependencies=sorted_edges(graph.edges),
        critical_path=result.critical,
        milestones=order_milestones(milestones),
        date_range=effective_range(scheduled, now, settings),
        project_duration=result.project_duration,
        cycles=report.cycles,
        stats=stats,
        critical_chains=tuple(critical_chains(graph, result, settings)),
    )
