"""Conservative red-flag screen over recent sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .models import Baseline, SessionSummary

RECENT_SESSIONS = 7
HIGH_ASYM_PCT = 12.0
VERY_HIGH_ASYM_PCT = 18.0
SWAY_BASELINE_FACTOR = 1.4
MIN_FLAGGED_SESSIONS = 3


@dataclass(frozen=True)
class RedFlag:
    title: str
    lines: List[str]
    severity: str  # "high" or "caution"


def red_flag(sessions: Sequence[SessionSummary], baseline: Optional[Baseline] = None) -> Optional[RedFlag]:
    """Flag sustained asymmetry or sway elevation in the last seven sessions."""
    if not sessions:
        return None
    recent = list(sessions)[-RECENT_SESSIONS:]

    very_high_asym = any(s.asym_step_time_pct >= VERY_HIGH_ASYM_PCT for s in recent)
    high_asym = sum(s.asym_step_time_pct >= HIGH_ASYM_PCT for s in recent) >= MIN_FLAGGED_SESSIONS
    base_ml = baseline.ml_sway_rms if baseline is not None else 0.0
    high_sway = (
        base_ml > 0
        and sum(s.ml_sway_rms >= base_ml * SWAY_BASELINE_FACTOR for s in recent) >= MIN_FLAGGED_SESSIONS
    )

    if very_high_asym:
        return RedFlag(
            title="High asymmetry detected",
            lines=[
                "Several walks show >=18% step-time asymmetry.",
                "Consider pausing training and contacting your clinician.",
            ],
            severity="high",
        )
    if high_asym or high_sway:
        return RedFlag(
            title="Ongoing gait irregularity",
            lines=[
                "Recent walks show elevated asymmetry and/or sway vs baseline.",
                "Re-calibrate and share your weekly report with a clinician.",
            ],
            severity="caution",
        )
    return None
