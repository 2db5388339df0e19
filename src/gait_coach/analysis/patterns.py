"""
Gait Pattern Classification
===========================

Rule-based mapping from aggregated session metrics to semantic gait tags.

Two independently thresholded rule sets exist for overlapping inputs and are
deliberately kept apart:

- ``make_pattern_tags``: session tagging, optionally relative to a baseline.
- ``GaitPatternDetector``: live coaching context, asymmetry driven.

Thresholds are exact and must not drift; downstream exercise plans key off
these tags.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional

from .models import Baseline, SessionMetrics


class MuscleGroup(Enum):
    """Muscle groups targeted by coaching plans."""

    GLUTE_MED = "gluteMed"
    HIP_ABDUCTORS = "hipAbductors"
    GLUTE_MAX = "gluteMax"
    QUADS = "quads"
    CORE = "core"


class GaitTag(Enum):
    """Canonical gait pattern tags."""

    TRENDELENBURG_LIKE = "trendelenburgLike"
    ANTALGIC = "antalgic"
    ATAXIC_WIDE_BASED = "ataxicWideBased"
    SHUFFLING_SHORT_STEPS = "shufflingShortSteps"
    IRREGULAR_RHYTHM = "irregularRhythm"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def title(self) -> str:
        """Coaching headline for the tag."""
        return _TITLES[self]

    @property
    def muscles(self) -> List[MuscleGroup]:
        return list(_MUSCLES[self])


_DISPLAY_NAMES = {
    GaitTag.TRENDELENBURG_LIKE: "Trendelenburg-like",
    GaitTag.ANTALGIC: "Antalgic",
    GaitTag.ATAXIC_WIDE_BASED: "Ataxic / Wide-based",
    GaitTag.SHUFFLING_SHORT_STEPS: "Shuffling / Short steps",
    GaitTag.IRREGULAR_RHYTHM: "Irregular rhythm",
}

_TITLES = {
    GaitTag.TRENDELENBURG_LIKE: "Possible Trendelenburg-like pattern",
    GaitTag.ANTALGIC: "Possible antalgic (pain-avoidance) pattern",
    GaitTag.ATAXIC_WIDE_BASED: "Possible wide-based/ataxic pattern",
    GaitTag.SHUFFLING_SHORT_STEPS: "Possible shuffling/short steps",
    GaitTag.IRREGULAR_RHYTHM: "Irregular step rhythm",
}

_MUSCLES = {
    GaitTag.TRENDELENBURG_LIKE: (MuscleGroup.GLUTE_MED, MuscleGroup.HIP_ABDUCTORS, MuscleGroup.CORE),
    GaitTag.ANTALGIC: (MuscleGroup.QUADS, MuscleGroup.GLUTE_MAX, MuscleGroup.CORE),
    GaitTag.ATAXIC_WIDE_BASED: (MuscleGroup.GLUTE_MED, MuscleGroup.HIP_ABDUCTORS, MuscleGroup.CORE),
    GaitTag.SHUFFLING_SHORT_STEPS: (MuscleGroup.GLUTE_MAX, MuscleGroup.CORE),
    GaitTag.IRREGULAR_RHYTHM: (MuscleGroup.CORE,),
}


def _dedupe(tags: Iterable[GaitTag]) -> List[GaitTag]:
    seen = set()
    out = []
    for tag in tags:
        if tag not in seen:
            seen.add(tag)
            out.append(tag)
    return out


# Session rule set thresholds
MIN_CADENCE_SPM = 60.0
CV_HIGH_ABS = 0.12
CV_CAUTION_ABS = 0.07
ML_ABS_CAUTION = 0.07
ML_ABS_HIGH = 0.10
SHUFFLE_CADENCE_SPM = 110.0


def is_elevated(value: float, base: Optional[float], percent: float, floor: Optional[float] = None) -> bool:
    """True when ``value`` is at least ``percent`` above a positive baseline.

    A missing or non-positive baseline never counts as elevated.
    """
    if floor is not None and value < floor:
        return False
    if base is None or base <= 0:
        return False
    return value >= base * (1.0 + percent / 100.0)


def make_pattern_tags(metrics: SessionMetrics, baseline: Optional[Baseline] = None) -> List[GaitTag]:
    """
    Tag a session.

    Args:
        metrics: Aggregated session metrics (missing CV counts as 0)
        baseline: Comparison target, if any

    Returns:
        De-duplicated tags in rule order. Sessions slower than 60 spm are
        not classified.
    """
    tags: List[GaitTag] = []
    if metrics.cadence_spm < MIN_CADENCE_SPM:
        return tags

    base_ml = baseline.ml_sway_rms if baseline is not None else None
    cv = metrics.cv_step_time or 0.0
    ml = metrics.ml_sway_rms
    cadence = metrics.cadence_spm

    if ml >= ML_ABS_HIGH or is_elevated(ml, base_ml, 25, floor=ML_ABS_CAUTION):
        tags.append(GaitTag.TRENDELENBURG_LIKE)
    if cv >= CV_CAUTION_ABS and cadence <= SHUFFLE_CADENCE_SPM:
        tags.append(GaitTag.ANTALGIC)
    if (ml >= ML_ABS_HIGH or is_elevated(ml, base_ml, 40)) and cv >= CV_HIGH_ABS:
        tags.append(GaitTag.ATAXIC_WIDE_BASED)
    if cadence >= SHUFFLE_CADENCE_SPM and (cv >= CV_CAUTION_ABS or is_elevated(ml, base_ml, 25)):
        tags.append(GaitTag.SHUFFLING_SHORT_STEPS)
    if cv >= CV_HIGH_ABS and GaitTag.IRREGULAR_RHYTHM not in tags:
        tags.append(GaitTag.IRREGULAR_RHYTHM)

    return _dedupe(tags)


class GaitPatternDetector:
    """
    Coaching-context rule set driven by step-time asymmetry.

    Thresholds are independent of ``make_pattern_tags``.
    """

    ASYM_ANTALGIC_PCT = 12.0
    ML_TRENDELENBURG = 0.10
    CV_TRENDELENBURG_MAX = 0.18
    ML_ATAXIC = 0.14
    ML_ATAXIC_WITH_CV = 0.10
    CV_ATAXIC = 0.16
    CV_IRREGULAR = 0.18
    SHUFFLE_CADENCE_SPM = 115.0
    SHUFFLE_ML_MAX = 0.12

    def detect(
        self,
        asym_pct: float,
        ml_rms: float,
        cadence_spm: float,
        cv_step_time: float,
    ) -> List[GaitTag]:
        out: List[GaitTag] = []

        if ml_rms >= self.ML_TRENDELENBURG and cv_step_time <= self.CV_TRENDELENBURG_MAX:
            out.append(GaitTag.TRENDELENBURG_LIKE)
        if asym_pct >= self.ASYM_ANTALGIC_PCT:
            out.append(GaitTag.ANTALGIC)
        if ml_rms >= self.ML_ATAXIC or (ml_rms >= self.ML_ATAXIC_WITH_CV and cv_step_time >= self.CV_ATAXIC):
            out.append(GaitTag.ATAXIC_WIDE_BASED)
        if cv_step_time >= self.CV_IRREGULAR:
            out.append(GaitTag.IRREGULAR_RHYTHM)
        if (
            cadence_spm >= self.SHUFFLE_CADENCE_SPM
            and asym_pct < self.ASYM_ANTALGIC_PCT
            and ml_rms < self.SHUFFLE_ML_MAX
        ):
            out.append(GaitTag.SHUFFLING_SHORT_STEPS)

        return _dedupe(out)


def best_pattern_suggestion(tags: List[GaitTag]) -> Optional[str]:
    """Headline for the first tag, if any."""
    if not tags:
        return None
    return tags[0].title
