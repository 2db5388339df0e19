"""Motion ingestion: body axes, calibration and live stream processing.

Execution order:
1) orientation calibration (one-shot capture)
2) stream processing (continuous, single writer)
"""

from .body_axes import BodyTransform, OrientationQuality, PocketSide
from .calibrator import CalibrationResult, OrientationCalibrator, principal_axis_2x2
from .models import MotionSample, MotionSnapshot, StepEvent
from .sources import MotionSource, ReplaySource, SimulatedWalkSource
from .stream import MotionStreamProcessor, MotionStreamRunner

__all__ = [
    "BodyTransform",
    "OrientationQuality",
    "PocketSide",
    "CalibrationResult",
    "OrientationCalibrator",
    "principal_axis_2x2",
    "MotionSample",
    "MotionSnapshot",
    "StepEvent",
    "MotionSource",
    "ReplaySource",
    "SimulatedWalkSource",
    "MotionStreamProcessor",
    "MotionStreamRunner",
]
