"""Gait metric records shared by the analysis modules."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class SessionMetrics:
    """Aggregated metrics for one walking session."""

    cadence_spm: float
    ml_sway_rms: float  # g
    avg_step_time: Optional[float] = None  # seconds
    cv_step_time: Optional[float] = None  # 0-1

    def to_dict(self) -> dict[str, Optional[float]]:
        return {
            "cadence_spm": self.cadence_spm,
            "ml_sway_rms": self.ml_sway_rms,
            "avg_step_time": self.avg_step_time,
            "cv_step_time": self.cv_step_time,
        }


@dataclass(frozen=True)
class Baseline:
    """Reference gait metrics. Updates replace the whole record."""

    date: datetime
    avg_step_time: float  # seconds
    cv_step_time: float  # 0-1 (0.08 = 8%)
    ml_sway_rms: float  # g
    asym_step_time_pct: float  # %

    def interpolate(self, other: Baseline, fraction: float, date: datetime | None = None) -> Baseline:
        """Linear blend toward ``other``; fraction 0 is self, 1 is other."""
        t = fraction

        def lerp(a: float, b: float) -> float:
            # exact at both ends
            return a * (1.0 - t) + b * t

        return Baseline(
            date=date or datetime.now(),
            avg_step_time=lerp(self.avg_step_time, other.avg_step_time),
            cv_step_time=lerp(self.cv_step_time, other.cv_step_time),
            ml_sway_rms=lerp(self.ml_sway_rms, other.ml_sway_rms),
            asym_step_time_pct=lerp(self.asym_step_time_pct, other.asym_step_time_pct),
        )

    def with_date(self, date: datetime) -> Baseline:
        return replace(self, date=date)


@dataclass(frozen=True)
class SessionSummary:
    """Outcome of one recorded walk."""

    date: datetime
    steps: int
    cadence_spm: float
    ml_sway_rms: float
    score: int
    tags: tuple[str, ...]
    avg_step_time: float
    cv_step_time: float
    asym_step_time_pct: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "steps": self.steps,
            "cadence_spm": self.cadence_spm,
            "ml_sway_rms": self.ml_sway_rms,
            "score": self.score,
            "tags": list(self.tags),
            "avg_step_time": self.avg_step_time,
            "cv_step_time": self.cv_step_time,
            "asym_step_time_pct": self.asym_step_time_pct,
        }
