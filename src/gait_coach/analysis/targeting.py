"""
Baseline Targeting
==================

Resolve which reference a session is compared against (population norms,
the personal baseline, or a ramp between them) and track longitudinal
progress toward it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from .models import Baseline, SessionSummary

logger = logging.getLogger(__name__)


class TargetPolicy(Enum):
    """Where to aim."""

    NORMS = "norms"  # always use typical adult norms
    PERSONAL = "personal"  # the saved personal baseline as-is
    RAMPED = "ramped"  # move gradually from personal toward norms


# Typical adult values. Dated at the epoch: not user-specific.
DEFAULT_NORMS = Baseline(
    date=datetime(1970, 1, 1),
    avg_step_time=0.26,  # seconds
    cv_step_time=0.006,  # 0.6 %
    ml_sway_rms=0.040,  # g
    asym_step_time_pct=0.0,
)

PROGRESS_WINDOW = 5
RATIO_FLOOR = 1e-4


@dataclass(frozen=True)
class ProgressReport:
    """Progress fractions in [0, 1]."""

    toward_typical: float
    baseline_consistency: float

    def to_dict(self) -> dict[str, float]:
        return {
            "toward_typical": self.toward_typical,
            "baseline_consistency": self.baseline_consistency,
        }


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def scaled_ratio(r: float) -> float:
    """Map a target/actual ratio to a 0-1 closeness score.

    At or above 1 decays as 1/r; below 1 falls off at half slope.
    """
    if r >= 1:
        return 1.0 / r
    return 1.0 - (1.0 - r) * 0.5


def session_score(session: SessionSummary, target: Baseline) -> float:
    """0-100 closeness of one session to a target."""
    r_step = target.avg_step_time / max(session.avg_step_time, RATIO_FLOOR)
    r_cv = (target.cv_step_time + RATIO_FLOOR) / max(session.cv_step_time, RATIO_FLOOR)
    r_sway = target.ml_sway_rms / max(session.ml_sway_rms, RATIO_FLOOR)

    c1 = _clamp01(scaled_ratio(r_step))
    c2 = _clamp01(scaled_ratio(r_cv))
    c3 = _clamp01(scaled_ratio(r_sway))
    return (c1 + c2 + c3) / 3.0 * 100.0


def progress_fraction(sessions: Sequence[SessionSummary], target: Baseline) -> float:
    """Average session score remapped so 50 -> 0 and 100 -> 1."""
    if not sessions:
        return 0.0
    avg = sum(session_score(s, target) for s in sessions) / len(sessions)
    return _clamp01((avg - 50.0) / 50.0)


class TargetResolver:
    """
    Owns the personal baseline and the target policy.

    Constructed explicitly and passed to whatever needs a comparison target.
    """

    def __init__(
        self,
        baseline: Optional[Baseline] = None,
        policy: TargetPolicy = TargetPolicy.NORMS,
        ramp_fraction: float = 0.0,
        norms: Baseline = DEFAULT_NORMS,
    ):
        self._baseline = baseline
        self.policy = policy
        self._ramp_fraction = _clamp01(ramp_fraction)
        self.norms = norms
        self.last_progress = ProgressReport(0.0, 0.0)

    @classmethod
    def from_settings(cls, config, baseline: Optional[Baseline] = None) -> TargetResolver:
        """Build from a ``TargetConfig``."""
        return cls(baseline=baseline, policy=TargetPolicy(config.policy), ramp_fraction=config.ramp_fraction)

    # ----------------------- Baseline -----------------------

    @property
    def baseline(self) -> Optional[Baseline]:
        return self._baseline

    def save_baseline(self, baseline: Baseline) -> None:
        """Replace the personal baseline wholesale."""
        self._baseline = baseline
        logger.info("Personal baseline saved (%s)", baseline.date.isoformat())

    def reset(self) -> None:
        self._baseline = None

    # ----------------------- Ramp -----------------------

    @property
    def ramp_fraction(self) -> float:
        """0 = personal baseline, 1 = norms."""
        return self._ramp_fraction

    @ramp_fraction.setter
    def ramp_fraction(self, value: float) -> None:
        self._ramp_fraction = _clamp01(value)

    def advance_ramp(self, delta: float) -> float:
        self.ramp_fraction = self._ramp_fraction + delta
        return self._ramp_fraction

    # ----------------------- Target -----------------------

    @property
    def target(self) -> Baseline:
        """Active comparison baseline. Norms until a personal baseline exists."""
        start = self._baseline
        if start is None or self.policy is TargetPolicy.NORMS:
            return self.norms
        if self.policy is TargetPolicy.PERSONAL:
            return start
        return start.interpolate(self.norms, self._ramp_fraction)

    # ----------------------- Progress -----------------------

    def progress(self, sessions: Sequence[SessionSummary]) -> ProgressReport:
        """Progress over the most recent sessions against norms and the personal baseline."""
        recent = list(sessions)[-PROGRESS_WINDOW:]
        toward = progress_fraction(recent, self.norms)
        start = self._baseline if self._baseline is not None else self.norms
        consistency = progress_fraction(recent, start)
        return ProgressReport(toward_typical=toward, baseline_consistency=consistency)

    def update_from_history(self, sessions: Sequence[SessionSummary]) -> ProgressReport:
        """Recompute progress and adopt progress-toward-typical as the ramp fraction."""
        report = self.progress(sessions)
        self.ramp_fraction = report.toward_typical
        self.last_progress = report
        return report
