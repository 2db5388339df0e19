"""
Step Timing Analysis
====================

Labels steps left/right from the sign of the mediolateral acceleration at
each step and maintains rolling step-time variability and asymmetry.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Optional

from gait_coach.motion.models import StepEvent

logger = logging.getLogger(__name__)


class FootSide(Enum):
    """Foot a step is attributed to."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class StepTimingStats:
    """Rolling step timing outputs."""

    avg_step_time: float  # seconds
    step_time_cv: float  # 0-1
    asym_pct: float  # %
    n_intervals: int
    n_left: int
    n_right: int

    def to_dict(self) -> dict[str, float]:
        return {
            "avg_step_time": self.avg_step_time,
            "step_time_cv": self.step_time_cv,
            "asym_pct": self.asym_pct,
            "n_intervals": float(self.n_intervals),
            "n_left": float(self.n_left),
            "n_right": float(self.n_right),
        }


def _mean(xs) -> float:
    xs = list(xs)
    return sum(xs) / len(xs) if xs else 0.0


class StepTimingAnalyzer:
    """
    Consume step events in arrival order.

    Intervals outside ``[min_interval_s, max_interval_s]`` are detector
    glitches and are dropped without updating any window.
    """

    def __init__(
        self,
        min_interval_s: float = 0.25,
        max_interval_s: float = 1.6,
        ml_deadband: float = 0.01,
        max_pairs: int = 40,
        asym_window: int = 10,
        min_cv_samples: int = 5,
    ):
        """
        Initialize analyzer.

        Args:
            min_interval_s: Shortest accepted step interval
            max_interval_s: Longest accepted step interval
            ml_deadband: |ml| at or below this keeps the previous side label
            max_pairs: Per-side window size; the all-steps window holds twice this
            asym_window: Most recent intervals per side used for asymmetry
            min_cv_samples: Intervals needed before CV is reported
        """
        self.min_interval_s = min_interval_s
        self.max_interval_s = max_interval_s
        self.ml_deadband = ml_deadband
        self.max_pairs = max_pairs
        self.asym_window = asym_window
        self.min_cv_samples = min_cv_samples

        self._all: Deque[float] = deque(maxlen=max_pairs * 2)
        self._left: Deque[float] = deque(maxlen=max_pairs)
        self._right: Deque[float] = deque(maxlen=max_pairs)
        self.reset()

    @classmethod
    def from_settings(cls, config) -> StepTimingAnalyzer:
        """Build from a ``StepTimingConfig``."""
        return cls(
            min_interval_s=config.min_interval_s,
            max_interval_s=config.max_interval_s,
            ml_deadband=config.ml_deadband,
            max_pairs=config.max_pairs,
            asym_window=config.asym_window,
            min_cv_samples=config.min_cv_samples,
        )

    def reset(self) -> None:
        self._all.clear()
        self._left.clear()
        self._right.clear()
        self._last_time: Optional[float] = None
        self.last_side: Optional[FootSide] = None
        self.step_count = 0
        self.dropped_intervals = 0
        self.avg_step_time = 0.0
        self.step_time_cv = 0.0
        self.asym_pct = 0.0

    def ingest(self, timestamp: float, ml: float) -> bool:
        """Feed one step. Returns True if its interval was accepted."""
        self.step_count += 1

        if ml > self.ml_deadband:
            side = FootSide.LEFT
        elif ml < -self.ml_deadband:
            side = FootSide.RIGHT
        else:
            side = self.last_side or FootSide.LEFT
        self.last_side = side

        accepted = False
        if self._last_time is not None:
            dt = timestamp - self._last_time
            if self.min_interval_s <= dt <= self.max_interval_s:
                self._all.append(dt)
                (self._left if side is FootSide.LEFT else self._right).append(dt)
                self._recompute()
                accepted = True
            else:
                self.dropped_intervals += 1
                logger.debug("Dropped step interval %.3f s", dt)
        self._last_time = timestamp
        return accepted

    def ingest_event(self, event: StepEvent) -> bool:
        return self.ingest(event.timestamp, event.ml)

    __call__ = ingest_event

    def snapshot(self) -> StepTimingStats:
        return StepTimingStats(
            avg_step_time=self.avg_step_time,
            step_time_cv=self.step_time_cv,
            asym_pct=self.asym_pct,
            n_intervals=len(self._all),
            n_left=len(self._left),
            n_right=len(self._right),
        )

    def _recompute(self) -> None:
        n = len(self._all)
        m = _mean(self._all)
        self.avg_step_time = m

        if n >= self.min_cv_samples and m > 0:
            ss = sum((x - m) ** 2 for x in self._all)
            self.step_time_cv = math.sqrt(ss / (n - 1)) / m
        else:
            self.step_time_cv = 0.0

        if len(self._left) >= 2 and len(self._right) >= 2:
            left = _mean(list(self._left)[-self.asym_window:])
            right = _mean(list(self._right)[-self.asym_window:])
            denom = max(1e-4, (left + right) / 2.0)
            self.asym_pct = abs(left - right) / denom * 100.0
        else:
            self.asym_pct = 0.0
