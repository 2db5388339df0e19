"""
Persisted record shapes.

Storage itself belongs to the host application; these are the serialized
forms it reads and writes. Keys use the camelCase wire names.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Tuple

import numpy as np

from gait_coach.analysis.models import Baseline
from gait_coach.motion.body_axes import BodyTransform, OrientationQuality

from .errors import GaitCoachError


class RecordError(GaitCoachError, ValueError):
    """A persisted record is missing fields or malformed."""


@dataclass(frozen=True)
class TransformRecord:
    """Row-major 3x3 device-to-body matrix with rows (forward, ml, up)."""

    m00: float
    m01: float
    m02: float
    m10: float
    m11: float
    m12: float
    m20: float
    m21: float
    m22: float

    @classmethod
    def from_transform(cls, transform: BodyTransform) -> TransformRecord:
        return cls(*(float(x) for x in transform.as_matrix().ravel()))

    def to_transform(self) -> BodyTransform:
        """Rebuild the transform (re-orthonormalized)."""
        return BodyTransform.from_matrix(self.as_matrix())

    def as_matrix(self) -> np.ndarray:
        return np.array(
            [
                [self.m00, self.m01, self.m02],
                [self.m10, self.m11, self.m12],
                [self.m20, self.m21, self.m22],
            ]
        )

    def apply(self, v) -> Tuple[float, float, float]:
        """Project a device-frame vector onto (forward, ml, up)."""
        fwd, ml, up = self.as_matrix() @ np.asarray(v, dtype=np.float64).reshape(3)
        return float(fwd), float(ml), float(up)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransformRecord:
        try:
            return cls(**{f"m{r}{c}": float(data[f"m{r}{c}"]) for r in range(3) for c in range(3)})
        except (KeyError, TypeError, ValueError) as e:
            raise RecordError(f"Invalid transform record: {e}") from e


@dataclass(frozen=True)
class QualityRecord:
    """Calibration quality as persisted."""

    confidence: float  # 0-1
    hz: float
    duration_sec: float

    MIN_CONFIDENCE = 0.7
    MIN_HZ = 80.0
    MIN_DURATION_SEC = 8.0

    @classmethod
    def from_quality(cls, quality: OrientationQuality, hz: float) -> QualityRecord:
        """Confidence is the weaker of up stability and forward dominance."""
        confidence = max(0.0, min(1.0, min(quality.up_stability, quality.forward_dominance)))
        return cls(confidence=confidence, hz=hz, duration_sec=quality.duration_seconds)

    @property
    def is_good(self) -> bool:
        return (
            self.confidence >= self.MIN_CONFIDENCE
            and self.hz >= self.MIN_HZ
            and self.duration_sec >= self.MIN_DURATION_SEC
        )

    def to_dict(self) -> dict[str, float]:
        return {"confidence": self.confidence, "hz": self.hz, "durationSec": self.duration_sec}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QualityRecord:
        try:
            return cls(
                confidence=float(data["confidence"]),
                hz=float(data["hz"]),
                duration_sec=float(data["durationSec"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RecordError(f"Invalid quality record: {e}") from e


def baseline_to_dict(baseline: Baseline) -> dict[str, Any]:
    return {
        "date": baseline.date.isoformat(),
        "avgStepTime": baseline.avg_step_time,
        "cvStepTime": baseline.cv_step_time,
        "mlSwayRMS": baseline.ml_sway_rms,
        "asymStepTimePct": baseline.asym_step_time_pct,
    }


def baseline_from_dict(data: dict[str, Any]) -> Baseline:
    """Decode a baseline record. Records saved before asymmetry was tracked load with 0 %."""
    try:
        return Baseline(
            date=datetime.fromisoformat(str(data["date"])),
            avg_step_time=float(data["avgStepTime"]),
            cv_step_time=float(data["cvStepTime"]),
            ml_sway_rms=float(data["mlSwayRMS"]),
            asym_step_time_pct=float(data.get("asymStepTimePct", 0.0)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RecordError(f"Invalid baseline record: {e}") from e
