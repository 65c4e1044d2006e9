from .exceptions import ScheduleInputError
from .filters import filter_timeline
from .impact import analyze_critical_path
from .models import (
    CriticalPathAnalysis,
    CycleError,
    DateRange,
    DependencyType,
    FilterSpec,
    Project,
    RecordedDependency,
    ScheduledTask,
    Task,
    TimelineData,
)
from .service import TimelineService
from .settings import EngineSettings
from .timeline import build_timeline

__all__ = [
    "CriticalPathAnalysis",
    "CycleError",
    "DateRange",
    "DependencyType",
    "EngineSettings",
    "FilterSpec",
    "Project",
    "RecordedDependency",
    "ScheduleInputError",
    "ScheduledTask",
    "Task",
    "TimelineData",
    "TimelineService",
    "analyze_critical_path",
    "build_timeline",
    "filter_timeline",
]
