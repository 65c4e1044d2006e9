from dataclasses import dataclass, fields
from typing import Any, Dict


@dataclass(frozen=True)
class EngineSettings:
    """
    Tunables for the scheduling engine.
    Defaults reproduce the documented behaviour; hosts may override any of them.
    """
    critical_epsilon: float = 0.01
    hours_per_day: float = 8.0
    min_estimated_hours: float = 8.0
    default_in_flight_progress: float = 50.0
    max_in_flight_progress: float = 90.0
    range_padding_days: int = 7
    default_window_days: int = 30
    bottleneck_min_score: float = 30.0
    bottleneck_max_progress: float = 50.0
    high_risk_score: float = 50.0
    medium_risk_score: float = 25.0

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "EngineSettings":
        """
        Build settings from a flat mapping such as Flask's app.config.
        Keys are matched case-insensitively; unknown keys are ignored.
        """
        lowered = {str(k).lower(): v for k, v in mapping.items()}
        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name in lowered and lowered[f.name] is not None:
                values[f.name] = f.type(lowered[f.name]) if callable(f.type) else lowered[f.name]
        return cls(**values)


DEFAULT_SETTINGS = EngineSettings()
