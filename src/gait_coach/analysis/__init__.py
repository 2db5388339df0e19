"""Gait analysis modules organized by stages.

Execution order:
1) step timing per detected step
2) pattern tags and score per session
3) targeting and progress across sessions
"""

from .coaching import DeviationMonitor, NudgeAdvisor, NudgeKind, deviation_alert
from .models import Baseline, SessionMetrics, SessionSummary
from .patterns import (
    GaitPatternDetector,
    GaitTag,
    MuscleGroup,
    best_pattern_suggestion,
    make_pattern_tags,
)
from .safety import RedFlag, red_flag
from .scoring import GaitScoreResult, ScoreBand, compute_gait_score
from .screening import BaselineScreener, ScreenOutcome, ScreenResult, WalkValidation, validate_walk
from .step_timing import FootSide, StepTimingAnalyzer, StepTimingStats
from .targeting import DEFAULT_NORMS, ProgressReport, TargetPolicy, TargetResolver

__all__ = [
    "Baseline",
    "SessionMetrics",
    "SessionSummary",
    "FootSide",
    "StepTimingAnalyzer",
    "StepTimingStats",
    "GaitPatternDetector",
    "GaitTag",
    "MuscleGroup",
    "best_pattern_suggestion",
    "make_pattern_tags",
    "GaitScoreResult",
    "ScoreBand",
    "compute_gait_score",
    "DEFAULT_NORMS",
    "ProgressReport",
    "TargetPolicy",
    "TargetResolver",
    "BaselineScreener",
    "ScreenOutcome",
    "ScreenResult",
    "WalkValidation",
    "validate_walk",
    "RedFlag",
    "red_flag",
    "DeviationMonitor",
    "NudgeAdvisor",
    "NudgeKind",
    "deviation_alert",
]
