"""
Calibration Walk Screening
==========================

Checks run on a short calibration walk before its metrics may be saved as
a personal baseline:

1. ``validate_walk``: is the step stream plausible at all (enough steps,
   walking-range cadence, stable timing, alternating ML sign)?
2. ``BaselineScreener``: does the walk look typical enough to become the
   personal reference?
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional, Sequence

from .models import Baseline
from .step_timing import StepTimingAnalyzer


@dataclass(frozen=True)
class WalkValidation:
    """Outcome of the step-stream plausibility check."""

    passed: bool
    reasons: List[str] = field(default_factory=list)
    cadence_spm: float = 0.0
    cv_step_time: float = 0.0
    flip_ratio: float = 0.0

    @property
    def message(self) -> Optional[str]:
        if self.passed:
            return None
        return "Validation checks failed:\n- " + "\n- ".join(self.reasons)


MIN_VALIDATION_STEPS = 20
CADENCE_RANGE = (50.0, 160.0)
VALIDATION_MAX_CV = 0.18
MIN_FLIP_RATIO = 0.6
ML_SIGN_DEADBAND = 0.01


def validate_walk(timestamps: Sequence[float], mls: Sequence[float]) -> WalkValidation:
    """
    Validate a short walk from its step events.

    Args:
        timestamps: Step times (seconds), in arrival order
        mls: ML acceleration at each step

    Returns:
        WalkValidation
    """
    if len(timestamps) < MIN_VALIDATION_STEPS:
        return WalkValidation(
            passed=False,
            reasons=["We didn't see enough steps. Please try again with 20-30 steady steps."],
        )

    intervals = [b - a for a, b in zip(timestamps, timestamps[1:])]
    mean = sum(intervals) / len(intervals)
    sd = math.sqrt(max(0.0, sum((x - mean) ** 2 for x in intervals) / len(intervals)))
    cv = sd / max(mean, 1e-6)
    cadence = 60.0 / max(mean, 1e-6)

    flips = pairs = 0
    last: Optional[float] = None
    for v in mls:
        if abs(v) <= ML_SIGN_DEADBAND:
            continue
        if last is not None:
            pairs += 1
            if last * v < 0:
                flips += 1
        last = v
    flip_ratio = flips / pairs if pairs else 0.0

    reasons = []
    lo, hi = CADENCE_RANGE
    if cadence < lo or cadence > hi:
        reasons.append(f"cadence {int(cadence)} spm out of range ({lo:.0f}-{hi:.0f})")
    if cv > VALIDATION_MAX_CV:
        reasons.append(f"step timing unstable (CV {cv * 100:.1f}%)")
    if flip_ratio < MIN_FLIP_RATIO:
        reasons.append("M/L sign didn't alternate reliably")

    return WalkValidation(
        passed=not reasons,
        reasons=reasons,
        cadence_spm=cadence,
        cv_step_time=cv,
        flip_ratio=flip_ratio,
    )


class ScreenOutcome(Enum):
    INSUFFICIENT = "insufficient"
    NORMAL = "normal"
    ATYPICAL = "atypical"


@dataclass(frozen=True)
class ScreenResult:
    outcome: ScreenOutcome
    reasons: List[str] = field(default_factory=list)


class BaselineScreener:
    """
    Accumulate a calibration walk and decide whether it can become a baseline.

    Step timing comes from a ``StepTimingAnalyzer`` windowed to the most
    recent 20 intervals (10 per side for asymmetry); sway averages the last
    40 samples.
    """

    TIMING_PAIRS = 10
    SWAY_WINDOW = 40

    def __init__(
        self,
        needed_steps: int = 30,
        min_interval_s: float = 0.25,
        max_interval_s: float = 1.6,
        ml_deadband: float = 0.01,
    ):
        self.needed_steps = needed_steps
        self.timing = StepTimingAnalyzer(
            min_interval_s=min_interval_s,
            max_interval_s=max_interval_s,
            ml_deadband=ml_deadband,
            max_pairs=self.TIMING_PAIRS,
            asym_window=self.TIMING_PAIRS,
        )
        self.sway_samples: Deque[float] = deque(maxlen=self.SWAY_WINDOW)
        self.outcome: Optional[ScreenResult] = None

    @property
    def steps_seen(self) -> int:
        return self.timing.step_count

    def add_step(self, timestamp: float, ml: float, ml_sway_rms: float) -> None:
        """Record a step with the live sway RMS at that moment."""
        self.sway_samples.append(ml_sway_rms)
        self.timing.ingest(timestamp, ml)

    def avg_step_time(self) -> Optional[float]:
        if not self.timing.snapshot().n_intervals:
            return None
        return self.timing.avg_step_time

    def cv_step_time(self) -> Optional[float]:
        if self.timing.snapshot().n_intervals < self.timing.min_cv_samples:
            return None
        return self.timing.step_time_cv

    def asym_pct(self) -> float:
        return self.timing.asym_pct

    def sway(self) -> float:
        return sum(self.sway_samples) / len(self.sway_samples) if self.sway_samples else 0.0

    def screen(self, cadence_spm: float) -> ScreenResult:
        """Classify the walk so far."""
        if self.steps_seen < self.needed_steps:
            self.outcome = ScreenResult(ScreenOutcome.INSUFFICIENT)
            return self.outcome

        reasons = []
        lo, hi = CADENCE_RANGE
        if cadence_spm < lo or cadence_spm > hi:
            reasons.append("Cadence outside expected walking range")
        cv = self.cv_step_time()
        if cv is not None and cv > 0.12:
            reasons.append(f"Step time CV high ({cv * 100:.1f}%)")
        if self.asym_pct() >= 12:
            reasons.append("Step-time asymmetry high (>=12%)")
        ml = self.sway()
        if ml > 0.10:
            reasons.append(f"M/L sway elevated ({ml:.3f} g)")

        self.outcome = ScreenResult(ScreenOutcome.ATYPICAL if reasons else ScreenOutcome.NORMAL, reasons)
        return self.outcome

    def build_baseline(self, orientation_good: bool, date: datetime | None = None) -> Optional[Baseline]:
        """A Baseline only after a normal screen with good orientation quality."""
        if not orientation_good:
            return None
        if self.outcome is None or self.outcome.outcome is not ScreenOutcome.NORMAL:
            return None
        avg = self.avg_step_time()
        cv = self.cv_step_time()
        if avg is None or cv is None:
            return None
        return Baseline(
            date=date or datetime.now(),
            avg_step_time=avg,
            cv_step_time=cv,
            ml_sway_rms=self.sway(),
            asym_step_time_pct=self.asym_pct(),
        )
