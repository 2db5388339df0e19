"""Motion data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class MotionSample:
    """Single device-frame motion sample.

    ``gravity`` and ``user_acceleration`` are in g, ``timestamp`` in seconds
    on a monotonic clock.
    """

    gravity: np.ndarray = field(compare=False)
    user_acceleration: np.ndarray = field(compare=False)
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "gravity", np.asarray(self.gravity, dtype=np.float64).reshape(3))
        object.__setattr__(
            self, "user_acceleration", np.asarray(self.user_acceleration, dtype=np.float64).reshape(3)
        )

    @classmethod
    def from_row(cls, row) -> MotionSample:
        """Build from ``[t, gx, gy, gz, ax, ay, az]``."""
        return cls(gravity=row[1:4], user_acceleration=row[4:7], timestamp=float(row[0]))


@dataclass(frozen=True)
class StepEvent:
    """A detected step and the body-frame ML acceleration at that instant."""

    timestamp: float
    ml: float


@dataclass(frozen=True)
class MotionSnapshot:
    """Immutable view of the stream processor's published outputs."""

    timestamp: float = 0.0
    step_count: int = 0
    cadence_spm: float = 0.0
    ml_sway_rms: float = 0.0
    tilt_deg: float = 0.0
    calibration_ok: bool = False
    body_sample: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    def to_dict(self) -> dict[str, float]:
        return {
            "timestamp": self.timestamp,
            "step_count": float(self.step_count),
            "cadence_spm": self.cadence_spm,
            "ml_sway_rms": self.ml_sway_rms,
            "tilt_deg": self.tilt_deg,
            "calibration_ok": float(self.calibration_ok),
        }
