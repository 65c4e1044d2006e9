from datetime import datetime
from typing import Iterable, Optional

from . import filters, impact, timeline
from .models import (
    CriticalPathAnalysis,
    DateRange,
    FilterSpec,
    Project,
    RecordedDependency,
    Task,
    TimelineData,
    TimelineResult,
)
from .settings import DEFAULT_SETTINGS, EngineSettings


class TimelineService:
    """
    Entry point for hosts. Holds only its (immutable) settings, so one
    instance can serve concurrent requests; every call takes its data and
    the current time as arguments.
    """

    def __init__(self, settings: EngineSettings = DEFAULT_SETTINGS):
        self.settings = settings

    def build_timeline(
        self,
        tasks: Iterable[Task],
        dependencies: Iterable[RecordedDependency],
        project_id: Optional[str] = None,
        date_range: Optional[DateRange] = None,
        *,
        now: datetime,
        projects: Iterable[Project] = (),
        allow_cycles: bool = False,
    ) -> TimelineResult:
        return timeline.build_timeline(
            tasks, dependencies, project_id, date_range,
            now=now, projects=projects, allow_cycles=allow_cycles, settings=self.settings,
        )

    def filter_timeline(self, data: TimelineData, spec: FilterSpec, *, now: datetime) -> TimelineData:
        return filters.filter_timeline(data, spec, now=now, settings=self.settings)

    def analyze_critical_path(self, data: TimelineData, *, now: datetime) -> CriticalPathAnalysis:
        return impact.analyze_critical_path(data, now=now, settings=self.settings)
