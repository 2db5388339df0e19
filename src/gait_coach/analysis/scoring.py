"""
Gait Scoring
============

0-100 session score with explainable component penalties:

- asymmetry (max 40): 0 at <= 4 %, full at >= 20 %
- M/L sway (max 35): ramps from a reference (0.06 g, or 1.25x a personal
  baseline capped at 0.08 g) to 0.14 g
- cadence (max 25): 0 inside 90-120 spm, full at 50 / 160 spm
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


def _clamp(x: float, lo: float, hi: float) -> float:
    return min(max(x, lo), hi)


def _round_half_up(x: float) -> int:
    # Python's round() is banker's rounding; scores round half away from zero.
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)


@dataclass(frozen=True)
class GaitScoreResult:
    """Score with per-component penalties and human-readable notes."""

    total: int
    component_penalties: Dict[str, int] = field(default_factory=dict)  # "asym", "sway", "cadence"
    notes: List[str] = field(default_factory=list)

    @property
    def band(self) -> ScoreBand:
        return ScoreBand.from_score(self.total)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "component_penalties": dict(self.component_penalties),
            "notes": list(self.notes),
        }


class ScoreBand(Enum):
    """Traffic-light band for a score."""

    GOOD = "good"
    CAUTION = "caution"
    LOW = "low"

    @classmethod
    def from_score(cls, score: int) -> ScoreBand:
        if 85 <= score <= 100:
            return cls.GOOD
        if 70 <= score < 85:
            return cls.CAUTION
        return cls.LOW

    @property
    def label(self) -> str:
        return self.value.capitalize()


ASYM_START_PCT = 4.0
ASYM_SEVERE_PCT = 20.0
ASYM_MAX_PENALTY = 40.0

SWAY_DEFAULT_REF_G = 0.06
SWAY_BASELINE_CAP_G = 0.08
SWAY_BASELINE_HEADROOM = 1.25
SWAY_SEVERE_G = 0.14
SWAY_MAX_PENALTY = 35.0

CADENCE_BAND = (90.0, 120.0)
CADENCE_HARD = (50.0, 160.0)
CADENCE_MAX_PENALTY = 25.0


def sway_reference(baseline_ml_sway: Optional[float]) -> float:
    """Sway level where penalties start."""
    if baseline_ml_sway is not None and baseline_ml_sway > 0:
        return min(SWAY_BASELINE_CAP_G, baseline_ml_sway * SWAY_BASELINE_HEADROOM)
    return SWAY_DEFAULT_REF_G


def compute_gait_score(
    asym_pct: float,
    ml_rms: float,
    cadence_spm: float,
    baseline_asym: Optional[float] = None,
    baseline_ml_sway: Optional[float] = None,
) -> GaitScoreResult:
    """
    Compute the session score.

    Args:
        asym_pct: Step-time asymmetry (%)
        ml_rms: Body M/L RMS acceleration (g)
        cadence_spm: Steps per minute
        baseline_asym: Baseline asymmetry (%); accepted for interface
            compatibility, the asymmetry ramp is absolute
        baseline_ml_sway: Baseline M/L RMS (g)

    Returns:
        GaitScoreResult
    """
    asym_unit = _clamp((asym_pct - ASYM_START_PCT) / (ASYM_SEVERE_PCT - ASYM_START_PCT), 0.0, 1.0)
    asym_penalty = ASYM_MAX_PENALTY * asym_unit

    ref = sway_reference(baseline_ml_sway)
    sway_unit = _clamp((ml_rms - ref) / max(1e-6, SWAY_SEVERE_G - ref), 0.0, 1.0)
    sway_penalty = SWAY_MAX_PENALTY * sway_unit

    band_lo, band_hi = CADENCE_BAND
    hard_lo, hard_hi = CADENCE_HARD
    if cadence_spm < band_lo:
        cad_unit = _clamp((band_lo - cadence_spm) / (band_lo - hard_lo), 0.0, 1.0)
    elif cadence_spm > band_hi:
        cad_unit = _clamp((cadence_spm - band_hi) / (hard_hi - band_hi), 0.0, 1.0)
    else:
        cad_unit = 0.0
    cadence_penalty = CADENCE_MAX_PENALTY * cad_unit

    raw = 100.0 - (asym_penalty + sway_penalty + cadence_penalty)
    total = _round_half_up(_clamp(raw, 0.0, 100.0))

    notes = []
    if asym_penalty > 0:
        notes.append(f"Asymmetry {asym_pct:.1f}%")
    if sway_penalty > 0:
        notes.append(f"M/L sway {ml_rms:.3f} g")
    if cadence_penalty > 0:
        notes.append(f"Cadence {cadence_spm:.0f} spm")

    return GaitScoreResult(
        total=total,
        component_penalties={
            "asym": _round_half_up(asym_penalty),
            "sway": _round_half_up(sway_penalty),
            "cadence": _round_half_up(cadence_penalty),
        },
        notes=notes,
    )
