"""
Impact, risk and completion-scenario analysis of a timeline's critical set.

Impact score for a critical task (unitless, higher means more disruptive if delayed):

    10 + min(20, 2 * duration) + 0.3 * (100 - progress) + 5 * overdue_days + 3 * dependents

A critical task is a bottleneck when its score exceeds 30 while it is less
than half done (both thresholds come from EngineSettings).
"""
import logging
import math
from collections import Counter
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from .durations import days_between
from .filters import is_overdue
from .models import (
    CompletionScenario,
    CriticalPathAnalysis,
    CriticalTaskDetail,
    Recommendation,
    RiskAssessment,
    RiskFactor,
    ScheduledTask,
    TimelineData,
)
from .settings import DEFAULT_SETTINGS, EngineSettings
from .timeline import schedule_anchor

logger = logging.getLogger(__name__)

PRIORITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}

SCENARIO_ASSUMPTIONS = {
    "best_case": (
        "All critical tasks finish exactly on their estimated durations",
        "No new dependencies or scope are added",
        "Resources are available as soon as predecessors complete",
    ),
    "current_trajectory": (
        "The team keeps its current rate of progress on critical tasks",
        "Remaining work is spread evenly across critical tasks",
    ),
    "worst_case": (
        "Critical tasks overrun their estimates by about 20%",
        "Delays on one critical task propagate to its successors",
    ),
}
SCENARIO_PROBABILITY = {
    "best_case": "low",
    "current_trajectory": "moderate",
    "worst_case": "high",
}


def overdue_days(item: ScheduledTask, now: datetime) -> int:
    if not is_overdue(item, now):
        return 0
    return max(1, math.ceil(days_between(item.end, now)))


def impact_score(duration_days: float, progress: float, late_days: int, dependents: int) -> float:
    score = 10 + min(20, 2 * duration_days) + 0.3 * (100 - progress) + 5 * late_days + 3 * dependents
    return round(score, 2)


def critical_task_details(
    timeline: TimelineData,
    now: datetime,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> List[CriticalTaskDetail]:
    fan_out = Counter(edge.predecessor_id for edge in timeline.dependencies)
    details = []
    for item in timeline.tasks:
        if item.task_id not in timeline.critical_path:
            continue
        late = overdue_days(item, now)
        score = impact_score(item.duration_days, item.progress, late, fan_out[item.task_id])
        details.append(CriticalTaskDetail(
            task_id=item.task_id,
            name=item.task.name if item.task is not None else item.task_id,
            duration_days=item.duration_days,
            progress=item.progress,
            overdue_days=late,
            dependents=fan_out[item.task_id],
            impact_score=score,
            is_bottleneck=score > settings.bottleneck_min_score and item.progress < settings.bottleneck_max_progress,
            assignee=item.task.assignee if item.task is not None else None,
        ))
    details.sort(key=lambda d: (-d.impact_score, d.task_id))
    return details


def assess_risk(
    timeline: TimelineData,
    critical: Sequence[ScheduledTask],
    now: datetime,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> RiskAssessment:
    factors: List[RiskFactor] = []

    overdue = [c.task_id for c in critical if is_overdue(c, now)]
    if overdue:
        factors.append(RiskFactor(
            "overdue_critical_tasks", "high", 15.0 * len(overdue),
            f"{len(overdue)} critical task(s) are overdue", tuple(overdue),
        ))

    lagging = [c.task_id for c in critical if c.progress < 25]
    if lagging:
        factors.append(RiskFactor(
            "low_progress", "medium", 8.0 * len(lagging),
            f"{len(lagging)} critical task(s) are below 25% progress", tuple(lagging),
        ))

    unassigned = [c.task_id for c in critical if c.task is None or not c.task.assignee]
    if unassigned:
        factors.append(RiskFactor(
            "unassigned_critical_tasks", "medium", 10.0 * len(unassigned),
            f"{len(unassigned)} critical task(s) have no assignee", tuple(unassigned),
        ))

    if timeline.tasks and len(critical) / len(timeline.tasks) > 0.6:
        share = round(100 * len(critical) / len(timeline.tasks))
        factors.append(RiskFactor(
            "long_critical_path", "medium", 20.0,
            f"{share}% of all tasks are on the critical path",
        ))

    if critical and sum(c.duration_days for c in critical) / len(critical) < 2:
        factors.append(RiskFactor(
            "short_critical_tasks", "low", 5.0,
            "Critical tasks average under 2 days, leaving little room to absorb delays",
        ))

    score = sum(f.points for f in factors)
    if score > settings.high_risk_score:
        level = "high"
    elif score > settings.medium_risk_score:
        level = "medium"
    else:
        level = "low"
    return RiskAssessment(score=score, level=level, factors=tuple(factors))


def projected_remaining_days(critical: Sequence[ScheduledTask], now: datetime) -> float:
    """
    Remaining days at the observed rate of progress. Falls back to the
    unfinished share of total critical duration when no rate can be derived.
    """
    average = sum(c.progress for c in critical) / len(critical)
    if average >= 100:
        return 0.0
    total = sum(c.duration_days for c in critical)
    elapsed = days_between(min(c.start for c in critical), now)
    if average > 0 and elapsed > 0:
        rate = average / elapsed
        remaining = (100 - average) / rate
        if math.isfinite(remaining):
            return max(0.0, remaining)
    return total * (100 - average) / 100


def completion_scenarios(
    timeline: TimelineData,
    critical: Sequence[ScheduledTask],
    now: datetime,
) -> Optional[Tuple[CompletionScenario, ...]]:
    anchor = schedule_anchor(timeline)
    if not critical or anchor is None:
        return None

    best = anchor + timedelta(days=max(c.earliest_finish for c in critical))
    projected = now + timedelta(days=math.ceil(projected_remaining_days(critical, now)))
    buffer_days = math.ceil(0.2 * sum(c.duration_days for c in critical))
    # the trajectory never beats the unconstrained ideal; worst case covers the trajectory
    current = max(best, projected)
    worst = max(best + timedelta(days=buffer_days), current)

    return tuple(
        CompletionScenario(kind, date, SCENARIO_PROBABILITY[kind], SCENARIO_ASSUMPTIONS[kind])
        for kind, date in (("best_case", best), ("current_trajectory", current), ("worst_case", worst))
    )


def recommendations(risk: RiskAssessment, details: Sequence[CriticalTaskDetail]) -> List[Recommendation]:
    found: List[Recommendation] = []
    for factor in risk.factors:
        if factor.type == "overdue_critical_tasks":
            found.append(Recommendation(
                "overdue_recovery", "critical", "Recover overdue critical tasks",
                "Re-plan or add capacity to overdue critical tasks; each day late moves the project end.",
                factor.task_ids,
            ))
        elif factor.type == "unassigned_critical_tasks":
            found.append(Recommendation(
                "assignment_needed", "high", "Assign owners to critical tasks",
                "Critical tasks without an assignee are unlikely to start on time.",
                factor.task_ids,
            ))
        elif factor.type == "low_progress":
            found.append(Recommendation(
                "progress_acceleration", "medium", "Accelerate low-progress critical tasks",
                "Check blockers on critical tasks that are below 25% progress.",
                factor.task_ids,
            ))
        elif factor.type == "long_critical_path":
            found.append(Recommendation(
                "parallel_execution", "medium", "Parallelize the critical path",
                "Most tasks are critical; split work or relax dependencies so tasks can run in parallel.",
            ))
        elif factor.type == "short_critical_tasks":
            found.append(Recommendation(
                "task_consolidation", "low", "Review very short critical tasks",
                "Many short critical tasks add hand-offs; consider merging adjacent ones.",
            ))

    bottlenecks = tuple(d.task_id for d in details if d.is_bottleneck)
    if bottlenecks:
        found.append(Recommendation(
            "bottleneck_focus", "high", "Focus on bottleneck tasks",
            "These critical tasks have high impact and are less than half done.",
            bottlenecks,
        ))

    found.sort(key=lambda r: PRIORITY_RANK[r.priority])
    return found


def analyze_critical_path(
    timeline: TimelineData,
    *,
    now: datetime,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> CriticalPathAnalysis:
    critical = [t for t in timeline.tasks if t.task_id in timeline.critical_path]
    details = critical_task_details(timeline, now, settings)
    risk = assess_risk(timeline, critical, now, settings)
    advice = recommendations(risk, details)
    scenarios = completion_scenarios(timeline, critical, now)

    logger.info(
        "Critical path analysis: %d critical tasks, risk %s (%.1f), %d recommendations",
        len(critical), risk.level, risk.score, len(advice),
    )
    return CriticalPathAnalysis(
        critical_task_details=tuple(details),
        risk_assessment=risk,
        recommendations=tuple(advice),
        scenarios=scenarios,
        bottlenecks=tuple(d.task_id for d in details if d.is_bottleneck),
    )
