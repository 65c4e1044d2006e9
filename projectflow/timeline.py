"""
Timeline assembly: selection, duration resolution and CPM stitched into one
TimelineData value for presentation layers.
"""
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from .durations import compute_progress, resolve_window
from .graph import DependencyGraph, build_dependency_graph, build_graph, find_cycles, select_tasks
from .models import (
    CycleError,
    DateRange,
    Edge,
    Milestone,
    Project,
    RecordedDependency,
    ScheduledTask,
    Task,
    TimelineData,
    TimelineResult,
)
from .scheduling import CpmResult, critical_chains, run_cpm
from .settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)


def task_stubs(tasks: Iterable[Task], now: datetime, settings: EngineSettings = DEFAULT_SETTINGS) -> List[ScheduledTask]:
    """Duration-resolved ScheduledTask values with no CPM fields yet."""
    stubs = []
    for task in tasks:
        window = resolve_window(task, now, settings)
        stubs.append(ScheduledTask(
            task_id=task.id,
            start=window.start,
            end=window.end,
            duration_days=window.duration_days,
            progress=compute_progress(task, settings),
            task=task,
        ))
    return stubs


def apply_cpm(
    stubs: Sequence[ScheduledTask],
    graph: DependencyGraph,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> Tuple[List[ScheduledTask], CpmResult]:
    """Run the CPM pass and return the stubs with timing fields filled in, ordered by start then id."""
    by_id = {stub.task_id: stub for stub in stubs}
    result = run_cpm(graph, [by_id[task_id].duration_days for task_id in graph.task_ids], settings)

    scheduled = [
        replace(
            stub,
            earliest_start=result.es[stub.task_id],
            earliest_finish=result.ef[stub.task_id],
            latest_start=result.ls[stub.task_id],
            latest_finish=result.lf[stub.task_id],
            total_float=result.slack[stub.task_id],
            is_critical=stub.task_id in result.critical,
        )
        for stub in stubs
    ]
    scheduled.sort(key=lambda s: (s.start, s.task_id))
    return scheduled, result


def sorted_edges(edges: Iterable[Edge]) -> Tuple[Edge, ...]:
    return tuple(sorted(edges, key=lambda e: (e.predecessor_id, e.successor_id)))


def induced_graph(task_ids: Sequence[str], edges: Iterable[Edge]) -> DependencyGraph:
    keep = set(task_ids)
    return build_graph(task_ids, [e for e in edges if e.predecessor_id in keep and e.successor_id in keep])


def task_milestones(scheduled: Iterable[ScheduledTask]) -> List[Milestone]:
    milestones = []
    for item in scheduled:
        if item.task is None or not item.task.is_done:
            continue
        milestones.append(Milestone(
            id=f"task-{item.task_id}",
            label=f"{item.task.name} completed",
            date=item.end,
            source="task_completion",
            task_id=item.task_id,
            project_id=item.task.project_id,
        ))
    return milestones


def project_milestones(
    projects: Iterable[Project],
    project_ids: Iterable[Optional[str]],
    date_range: Optional[DateRange] = None,
) -> List[Milestone]:
    wanted = set(project_ids)
    milestones = []
    for project in projects:
        if project.id not in wanted or project.end_date is None:
            continue
        if date_range is not None and not date_range.contains(project.end_date):
            continue
        milestones.append(Milestone(
            id=f"project-{project.id}",
            label=f"{project.name or project.id} deadline",
            date=project.end_date,
            source="project_deadline",
            project_id=project.id,
        ))
    return milestones


def order_milestones(milestones: Iterable[Milestone]) -> Tuple[Milestone, ...]:
    return tuple(sorted(milestones, key=lambda m: (m.date, m.id)))


def effective_range(
    scheduled: Sequence[ScheduledTask],
    now: datetime,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> DateRange:
    if not scheduled:
        return DateRange(now, now + timedelta(days=settings.default_window_days))
    padding = timedelta(days=settings.range_padding_days)
    return DateRange(
        min(s.start for s in scheduled) - padding,
        max(s.end for s in scheduled) + padding,
    )


def schedule_anchor(timeline: TimelineData) -> Optional[datetime]:
    """The instant that CPM day 0 stands for: the earliest resolved start."""
    if not timeline.tasks:
        return None
    return min(t.start for t in timeline.tasks)


def build_timeline(
    tasks: Iterable[Task],
    dependencies: Iterable[RecordedDependency],
    project_id: Optional[str] = None,
    date_range: Optional[DateRange] = None,
    *,
    now: datetime,
    projects: Iterable[Project] = (),
    allow_cycles: bool = False,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> TimelineResult:
    """
    Build the timeline view for the selected tasks.

    Returns CycleError when the dependency graph is cyclic, unless
    `allow_cycles` asks for a best-effort schedule; in that case the cycles
    are reported on the returned TimelineData and float values on the cycle
    carry no meaning.
    """
    selected = select_tasks(tasks, project_id, date_range)
    graph = build_dependency_graph(selected, dependencies)

    report = find_cycles(graph)
    if not report.is_acyclic and not allow_cycles:
        logger.info("Timeline not scheduled: %d dependency cycles", len(report.cycles))
        return CycleError(cycles=report.cycles)

    scheduled, result = apply_cpm(task_stubs(selected, now, settings), graph, settings)

    owner_ids = {t.project_id for t in selected}
    if project_id is not None:
        owner_ids.add(project_id)
    milestones = task_milestones(scheduled) + project_milestones(projects, owner_ids, date_range)

    timeline = TimelineData(
        tasks=tuple(scheduled),
        dependencies=sorted_edges(graph.edges),
        critical_path=result.critical,
        milestones=order_milestones(milestones),
        date_range=effective_range(scheduled, now, settings),
        project_duration=result.project_duration,
        cycles=report.cycles,
        critical_chains=tuple(critical_chains(graph, result, settings)),
    )
    logger.info(
        "Built timeline: %d tasks, %d dependencies, %d critical, %d milestones",
        len(timeline.tasks), len(timeline.dependencies), len(timeline.critical_path), len(timeline.milestones),
    )
    return timeline
