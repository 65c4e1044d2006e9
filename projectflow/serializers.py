"""
Plain-dict views of engine results for JSON hosts.
Output is deterministic: sets are emitted sorted and instants as ISO strings.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from .models import (
    CompletionScenario,
    CriticalPathAnalysis,
    CycleError,
    Edge,
    FilterStats,
    Milestone,
    ScheduledTask,
    TimelineData,
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _days(value: float) -> float:
    # trims float noise from date arithmetic
    return round(value, 4)


def scheduled_task_to_dict(item: ScheduledTask) -> Dict[str, Any]:
    task = item.task
    return {
        "id": item.task_id,
        "name": task.name if task is not None else item.task_id,
        "project_id": task.project_id if task is not None else None,
        "parent_id": task.parent_id if task is not None else None,
        "status": task.status if task is not None else None,
        "priority": task.priority if task is not None else None,
        "assignee": task.assignee if task is not None else None,
        "type": task.task_type if task is not None else None,
        "labels": sorted(task.labels) if task is not None else [],
        "start": _iso(item.start),
        "end": _iso(item.end),
        "duration": item.duration_days,
        "progress": round(item.progress, 2),
        "es": _days(item.earliest_start),
        "ef": _days(item.earliest_finish),
        "ls": _days(item.latest_start),
        "lf": _days(item.latest_finish),
        "slack": _days(item.total_float),
        "critical": item.is_critical,
    }


def edge_to_dict(edge: Edge) -> Dict[str, Any]:
    return {
        "id": edge.dependency_id,
        "predecessor_id": edge.predecessor_id,
        "successor_id": edge.successor_id,
        "type": edge.type.value,
        "lag": edge.lag,
        "source": edge.source,
    }


def milestone_to_dict(milestone: Milestone) -> Dict[str, Any]:
    return {
        "id": milestone.id,
        "label": milestone.label,
        "date": _iso(milestone.date),
        "source": milestone.source,
        "task_id": milestone.task_id,
        "project_id": milestone.project_id,
    }


def stats_to_dict(stats: FilterStats) -> Dict[str, int]:
    return {
        "total": stats.total_tasks,
        "filtered": stats.filtered_tasks,
        "overdue": stats.overdue_tasks,
        "completed": stats.completed_tasks,
        "critical": stats.critical_tasks,
    }


def timeline_to_dict(timeline: TimelineData) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "tasks": [scheduled_task_to_dict(t) for t in timeline.tasks],
        "dependencies": [edge_to_dict(e) for e in timeline.dependencies],
        "critical_path": sorted(timeline.critical_path),
        "critical_chains": [list(c) for c in timeline.critical_chains],
        "milestones": [milestone_to_dict(m) for m in timeline.milestones],
        "date_range": {"start": _iso(timeline.date_range.start), "end": _iso(timeline.date_range.end)},
        "project_duration": _days(timeline.project_duration),
    }
    if timeline.cycles:
        result["cycles"] = [list(c) for c in timeline.cycles]
    if timeline.stats is not None:
        result["stats"] = stats_to_dict(timeline.stats)
    return result


def cycle_error_to_dict(error: CycleError) -> Dict[str, Any]:
    return {"error": error.message, "cycles": [list(c) for c in error.cycles]}


def scenario_to_dict(scenario: CompletionScenario) -> Dict[str, Any]:
    return {
        "date": _iso(scenario.date),
        "probability": scenario.probability,
        "assumptions": list(scenario.assumptions),
    }


def analysis_to_dict(analysis: CriticalPathAnalysis) -> Dict[str, Any]:
    risk = analysis.risk_assessment
    scenarios: Optional[Dict[str, Any]] = None
    if analysis.scenarios is not None:
        scenarios = {s.kind: scenario_to_dict(s) for s in analysis.scenarios}
    details: List[Dict[str, Any]] = [
        {
            "id": d.task_id,
            "name": d.name,
            "assignee": d.assignee,
            "duration": d.duration_days,
            "progress": round(d.progress, 2),
            "overdue_days": d.overdue_days,
            "dependents": d.dependents,
            "impact_score": d.impact_score,
            "bottleneck": d.is_bottleneck,
        }
        for d in analysis.critical_task_details
    ]
    return {
        "critical_task_details": details,
        "bottlenecks": list(analysis.bottlenecks),
        "risk_assessment": {
            "score": risk.score,
            "level": risk.level,
            "factors": [
                {
                    "type": f.type,
                    "severity": f.severity,
                    "points": f.points,
                    "description": f.description,
                    "task_ids": list(f.task_ids),
                }
                for f in risk.factors
            ],
        },
        "recommendations": [
            {
                "type": r.type,
                "priority": r.priority,
                "title": r.title,
                "description": r.description,
                "task_ids": list(r.task_ids),
            }
            for r in analysis.recommendations
        ],
        "scenarios": scenarios,
    }
