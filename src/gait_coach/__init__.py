"""GaitCoach: walking metrics from phone motion.

Turns a live stream of phone gravity/acceleration samples into a calibrated
body frame, per-step timing, sway, cadence, symmetry, a 0-100 session score
and rule-based gait pattern tags for coaching.
"""

__version__ = "0.1.0"

from gait_coach.analysis import (
    Baseline,
    GaitPatternDetector,
    GaitScoreResult,
    GaitTag,
    SessionMetrics,
    SessionSummary,
    StepTimingAnalyzer,
    TargetPolicy,
    TargetResolver,
    compute_gait_score,
    make_pattern_tags,
)
from gait_coach.core import Settings, load_settings
from gait_coach.motion import (
    BodyTransform,
    MotionSample,
    MotionStreamProcessor,
    OrientationCalibrator,
    OrientationQuality,
    PocketSide,
    StepEvent,
)
from gait_coach.session import GaitSession, SessionResult

__all__ = [
    "Baseline",
    "BodyTransform",
    "GaitPatternDetector",
    "GaitScoreResult",
    "GaitSession",
    "GaitTag",
    "MotionSample",
    "MotionStreamProcessor",
    "OrientationCalibrator",
    "OrientationQuality",
    "PocketSide",
    "SessionMetrics",
    "SessionResult",
    "SessionSummary",
    "Settings",
    "StepEvent",
    "StepTimingAnalyzer",
    "TargetPolicy",
    "TargetResolver",
    "__version__",
    "compute_gait_score",
    "load_settings",
    "make_pattern_tags",
]
