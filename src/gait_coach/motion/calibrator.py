"""
Orientation Calibration
=======================

One-shot estimation of the body axes from a short walking capture.

Up comes from the mean gravity direction. Forward is the principal axis of
user acceleration in the horizontal plane, since forward/backward
acceleration dominates horizontal variance while walking. The 2x2
covariance is solved in closed form.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import numpy as np

from gait_coach.core.errors import CalibrationFailure

from .body_axes import BodyTransform, OrientationQuality, PocketSide, horizontal_reference, normalize
from .models import MotionSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationResult:
    """Outcome of a calibration capture."""

    transform: Optional[BodyTransform]
    quality: OrientationQuality
    error: Optional[CalibrationFailure] = None

    @property
    def ok(self) -> bool:
        return self.transform is not None and self.error is None

    @property
    def is_good(self) -> bool:
        return self.ok and self.quality.is_good


def principal_axis_2x2(sxx: float, sxy: float, syy: float) -> tuple[float, float, np.ndarray]:
    """
    Closed-form eigen-decomposition of a symmetric 2x2 matrix.

    Returns:
        (lambda1, lambda2, v) with lambda1 >= lambda2 and v the unit
        eigenvector of lambda1. A vanishing eigenvector (isotropic or zero
        matrix) falls back to (1, 0).
    """
    tr = sxx + syy
    det = sxx * syy - sxy * sxy
    root = math.sqrt(max(0.0, tr * tr / 4.0 - det))
    lambda1 = tr / 2.0 + root
    lambda2 = tr / 2.0 - root

    v = np.array([sxy, lambda1 - sxx])
    if np.linalg.norm(v) < 1e-9:
        v = np.array([1.0, 0.0])
    return lambda1, lambda2, normalize(v)


class OrientationCalibrator:
    """
    Accumulates a bounded capture and produces a BodyTransform.

    Usage:
        calibrator = OrientationCalibrator(PocketSide.LEFT, hz=100, seconds=10)
        result = calibrator.calibrate(samples)
        if result.is_good:
            processor.set_calibration(result.transform, result.quality)
    """

    def __init__(
        self,
        side: PocketSide = PocketSide.LEFT,
        hz: float = 100.0,
        seconds: float = 10.0,
        min_samples: int = 10,
    ):
        """
        Initialize calibrator.

        Args:
            side: Pocket side; right flips the ML axis so +ML is subject-left
            hz: Sampling rate of the capture
            seconds: Capture duration
            min_samples: Captures with this many samples or fewer fail
        """
        self.side = side
        self.hz = hz
        self.seconds = seconds
        self.min_samples = min_samples
        self.target_samples = int(round(hz * seconds))

        self._g_sum = np.zeros(3)
        self._up = np.array([0.0, 0.0, 1.0])
        self._h1 = np.array([1.0, 0.0, 0.0])
        self._h2 = np.array([0.0, 1.0, 0.0])
        self._sxx = 0.0
        self._sxy = 0.0
        self._syy = 0.0
        self._skew = np.zeros(4)  # sums of ax^3, ax^2 ay, ax ay^2, ay^3
        self._n = 0
        self._accepting = True
        self._result: Optional[CalibrationResult] = None

    @property
    def sample_count(self) -> int:
        return self._n

    @property
    def is_complete(self) -> bool:
        return not self._accepting

    def add_sample(self, sample: MotionSample) -> bool:
        """Accumulate one sample. Returns True once the capture is complete."""
        if not self._accepting:
            return True

        g = sample.gravity
        self._g_sum += g
        up = normalize(-g)
        if up.any() and np.all(np.isfinite(up)):
            self._up = up

        self._h1 = horizontal_reference(self._up)
        self._h2 = normalize(np.cross(self._up, self._h1))

        a = sample.user_acceleration
        ax = float(np.dot(a, self._h1))
        ay = float(np.dot(a, self._h2))
        self._sxx += ax * ax
        self._sxy += ax * ay
        self._syy += ay * ay
        self._skew += (ax * ax * ax, ax * ax * ay, ax * ay * ay, ay * ay * ay)
        self._n += 1

        if self._n >= self.target_samples:
            self._accepting = False
        return not self._accepting

    def cancel(self) -> None:
        """Stop accepting samples; ``finish`` uses what was accumulated."""
        self._accepting = False

    def finish(self) -> CalibrationResult:
        """Solve the accumulated capture. Computed once, then cached."""
        self._accepting = False
        if self._result is None:
            self._result = self._solve()
        return self._result

    def calibrate(self, samples: Iterable[MotionSample]) -> CalibrationResult:
        """Feed samples until the capture is complete or the input ends."""
        for sample in samples:
            if self.add_sample(sample):
                break
        return self.finish()

    def run(
        self,
        samples: Iterable[MotionSample],
        on_complete: Callable[[Optional[BodyTransform], OrientationQuality], None],
    ) -> CalibrationResult:
        """Run a capture and invoke ``on_complete`` exactly once."""
        result = self.calibrate(samples)
        on_complete(result.transform, result.quality)
        return result

    def _orient_forward(self, v: np.ndarray) -> np.ndarray:
        """Pick the eigenvector sign whose projected acceleration is positively skewed.

        Step pulses are sharp forward peaks, so the third moment along the
        true forward direction is positive. Ties keep the solver's sign.
        """
        vx, vy = float(v[0]), float(v[1])
        basis = np.array([vx ** 3, 3 * vx * vx * vy, 3 * vx * vy * vy, vy ** 3])
        if float(np.dot(basis, self._skew)) < 0:
            return -v
        return v

    def _solve(self) -> CalibrationResult:
        n = self._n
        if n <= self.min_samples:
            logger.warning("Calibration aborted: only %d samples captured", n)
            return CalibrationResult(
                transform=None,
                quality=OrientationQuality.empty(n),
                error=CalibrationFailure.INSUFFICIENT_SAMPLES,
            )

        lambda1, lambda2, v = principal_axis_2x2(self._sxx / n, self._sxy / n, self._syy / n)

        v = self._orient_forward(v)
        forward = normalize(v[0] * self._h1 + v[1] * self._h2)
        ml = np.cross(self._up, forward)
        if self.side is PocketSide.RIGHT:
            ml = -ml
        transform = BodyTransform(forward=forward, mediolateral=ml, up=self._up)

        mean_g = self._g_sum / n
        up_stability = min(1.0, max(0.0, float(np.linalg.norm(mean_g))))
        denom = max(1e-9, lambda1 + max(lambda2, 0.0))
        forward_dominance = max(0.0, min(1.0, lambda1 / denom))

        quality = OrientationQuality(
            duration_seconds=n / self.hz,
            sample_count=n,
            up_stability=up_stability,
            forward_dominance=forward_dominance,
        )
        logger.info(
            "Calibration finished: %d samples, up_stability=%.3f, forward_dominance=%.3f, good=%s",
            n,
            up_stability,
            forward_dominance,
            quality.is_good,
        )
        return CalibrationResult(transform=transform, quality=quality)
