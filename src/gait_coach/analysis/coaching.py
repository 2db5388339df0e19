"""
Live Coaching Decisions
=======================

Decide when a walker should be nudged. Delivery (haptics, sound,
notifications) is left to the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .models import Baseline


class NudgeKind(Enum):
    DOUBLE_TAP = "double_tap"  # caution
    WARNING = "warning"  # high asymmetry


class NudgeAdvisor:
    """Rate-limited asymmetry nudges during a walk."""

    def __init__(
        self,
        min_gap_s: float = 12.0,
        min_cadence_spm: float = 55.0,
        max_cadence_spm: float = 170.0,
        caution_asym_pct: float = 7.0,
        high_asym_pct: float = 12.0,
    ):
        self.min_gap_s = min_gap_s
        self.min_cadence_spm = min_cadence_spm
        self.max_cadence_spm = max_cadence_spm
        self.caution_asym_pct = caution_asym_pct
        self.high_asym_pct = high_asym_pct
        self._last_nudge: Optional[float] = None

    def consider(self, now: float, asym_pct: float, cadence_spm: float, enabled: bool = True) -> Optional[NudgeKind]:
        """Return the nudge to deliver at ``now`` (seconds), if any."""
        if not enabled:
            return None
        # idle or running
        if not self.min_cadence_spm <= cadence_spm <= self.max_cadence_spm:
            return None
        if self._last_nudge is not None and now - self._last_nudge < self.min_gap_s:
            return None

        if asym_pct >= self.high_asym_pct:
            kind = NudgeKind.WARNING
        elif asym_pct >= self.caution_asym_pct:
            kind = NudgeKind.DOUBLE_TAP
        else:
            return None
        self._last_nudge = now
        return kind


ASYM_WARN_PCT = 12.0
ML_WARN_ABS_G = 0.10
BASELINE_ALERT_FACTOR = 1.5


def deviation_alert(
    asym_pct: float,
    ml_sway_rms: float,
    baseline: Optional[Baseline] = None,
    ml_warn_abs: float = ML_WARN_ABS_G,
) -> bool:
    """True when live asymmetry or sway breaches absolute or baseline-relative limits."""
    if asym_pct >= ASYM_WARN_PCT or ml_sway_rms >= ml_warn_abs:
        return True
    if baseline is None:
        return False
    if baseline.asym_step_time_pct > 0 and asym_pct >= max(
        ASYM_WARN_PCT, baseline.asym_step_time_pct * BASELINE_ALERT_FACTOR
    ):
        return True
    if baseline.ml_sway_rms > 0 and ml_sway_rms >= max(ml_warn_abs, baseline.ml_sway_rms * BASELINE_ALERT_FACTOR):
        return True
    return False


class DeviationMonitor:
    """Live deviation alerts with a cooldown between alerts."""

    def __init__(self, baseline: Optional[Baseline] = None, cooldown_s: float = 30.0):
        self.baseline = baseline
        self.cooldown_s = cooldown_s
        self._last_alert: Optional[float] = None

    def check(self, now: float, asym_pct: float, ml_sway_rms: float) -> bool:
        """True if an alert should fire at ``now`` (seconds)."""
        if not deviation_alert(asym_pct, ml_sway_rms, self.baseline):
            return False
        if self._last_alert is not None and now - self._last_alert <= self.cooldown_s:
            return False
        self._last_alert = now
        return True
