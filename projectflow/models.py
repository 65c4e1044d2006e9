"""
Value types shared by every stage of the timeline engine.

Input records (Task, RecordedDependency, Project) are owned by the caller.
Everything else is derived and rebuilt on each call.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union


STATUS_ORDER: Tuple[str, ...] = ("Backlog", "To Do", "In Progress", "Review", "Testing", "Blocked", "Done")
TERMINAL_STATUS = "Done"
NOT_STARTED_STATUSES: FrozenSet[str] = frozenset({"Backlog", "To Do"})
IN_FLIGHT_STATUSES: FrozenSet[str] = frozenset({"In Progress", "Review", "Testing", "Blocked"})

PRIORITIES: Tuple[str, ...] = ("Low", "Medium", "High", "Critical")


class DependencyType(str, Enum):
    FINISH_TO_START = "FS"
    START_TO_START = "SS"
    FINISH_TO_FINISH = "FF"
    START_TO_FINISH = "SF"


@dataclass(frozen=True)
class Task:
    id: str
    name: str
    project_id: Optional[str] = None
    status: str = "To Do"
    priority: str = "Medium"
    assignee: Optional[str] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    estimated_hours: float = 0.0
    actual_hours: float = 0.0
    labels: FrozenSet[str] = frozenset()
    parent_id: Optional[str] = None
    task_type: Optional[str] = None
    created_at: Optional[datetime] = None
    # legacy inline predecessor ids
    dependencies: Tuple[str, ...] = ()

    @property
    def is_done(self) -> bool:
        return self.status == TERMINAL_STATUS


@dataclass(frozen=True)
class RecordedDependency:
    id: str
    predecessor_id: str
    successor_id: str
    type: DependencyType = DependencyType.FINISH_TO_START
    lag: int = 0


@dataclass(frozen=True)
class InlineDependency:
    predecessor_id: str
    successor_id: str


DependencyRecord = Union[InlineDependency, RecordedDependency]


@dataclass(frozen=True)
class Edge:
    predecessor_id: str
    successor_id: str
    type: DependencyType = DependencyType.FINISH_TO_START
    lag: int = 0
    source: str = "recorded"
    dependency_id: Optional[str] = None

    @property
    def applied_lag(self) -> int:
        # only finish-to-start lag is propagated; other types use finish with no offset
        return self.lag if self.type is DependencyType.FINISH_TO_START else 0


@dataclass(frozen=True)
class Project:
    id: str
    name: str = ""
    end_date: Optional[datetime] = None


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start <= self.end and end >= self.start


@dataclass(frozen=True)
class ScheduledTask:
    task_id: str
    start: datetime
    end: datetime
    duration_days: int
    progress: float
    earliest_start: float = 0.0
    earliest_finish: float = 0.0
    latest_start: float = 0.0
    latest_finish: float = 0.0
    total_float: float = 0.0
    is_critical: bool = False
    task: Optional[Task] = field(default=None, compare=False)


@dataclass(frozen=True)
class CycleReport:
    is_acyclic: bool
    cycles: Tuple[Tuple[str, ...], ...] = ()


@dataclass(frozen=True)
class CycleError:
    """Returned instead of a timeline when the dependency graph has cycles."""
    cycles: Tuple[Tuple[str, ...], ...]
    message: str = "Cycle detected in dependencies"


@dataclass(frozen=True)
class Milestone:
    id: str
    label: str
    date: datetime
    source: str
    task_id: Optional[str] = None
    project_id: Optional[str] = None


@dataclass(frozen=True)
class FilterSpec:
    assignee: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    task_type: Optional[str] = None
    search: Optional[str] = None
    overdue_only: bool = False
    date_range: Optional[DateRange] = None
    # one of "completed", "in_progress", "not_started"
    completion: Optional[str] = None


@dataclass(frozen=True)
class FilterStats:
    total_tasks: int
    filtered_tasks: int
    overdue_tasks: int
    completed_tasks: int
    critical_tasks: int


@dataclass(frozen=True)
class TimelineData:
    tasks: Tuple[ScheduledTask, ...]
    dependencies: Tuple[Edge, ...]
    critical_path: FrozenSet[str]
    milestones: Tuple[Milestone, ...]
    date_range: DateRange
    project_duration: float = 0.0
    cycles: Tuple[Tuple[str, ...], ...] = ()
    stats: Optional[FilterStats] = None
    # ordered chains through critical_path, for display
    critical_chains: Tuple[Tuple[str, ...], ...] = ()

    def task_map(self):
        return {t.task_id: t for t in self.tasks}


@dataclass(frozen=True)
class CriticalTaskDetail:
    task_id: str
    name: str
    duration_days: int
    progress: float
    overdue_days: int
    dependents: int
    impact_score: float
    is_bottleneck: bool
    assignee: Optional[str] = None


@dataclass(frozen=True)
class RiskFactor:
    type: str
    severity: str
    points: float
    description: str
    task_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RiskAssessment:
    score: float
    level: str
    factors: Tuple[RiskFactor, ...] = ()


@dataclass(frozen=True)
class Recommendation:
    type: str
    priority: str
    title: str
    description: str
    task_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CompletionScenario:
    kind: str
    date: datetime
    probability: str
    assumptions: Tuple[str, ...]


@dataclass(frozen=True)
class CriticalPathAnalysis:
    critical_task_details: Tuple[CriticalTaskDetail, ...]
    risk_assessment: RiskAssessment
    recommendations: Tuple[Recommendation, ...]
    scenarios: Optional[Tuple[CompletionScenario, ...]] = None
    bottlenecks: Tuple[str, ...] = ()


TimelineResult = Union[TimelineData, CycleError]
