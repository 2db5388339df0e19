"""
Body Axes
=========

Body-relative orthonormal basis (forward, mediolateral, up) and the quality
record produced alongside it by orientation calibration.

Positive mediolateral always points to the subject's left.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np

EPS = 1e-12


def as_vec3(v) -> np.ndarray:
    """Coerce a 3-sequence into a float64 vector."""
    arr = np.asarray(v, dtype=np.float64).reshape(3)
    return arr


def normalize(v: np.ndarray) -> np.ndarray:
    """Unit vector in the direction of ``v`` (zero vector stays zero)."""
    n = float(np.linalg.norm(v))
    if n < EPS:
        return np.zeros(3)
    return v / n


X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])


def horizontal_reference(up: np.ndarray, min_norm: float = 1e-3) -> np.ndarray:
    """Unit vector orthogonal to ``up``.

    Crosses ``up`` with the device x axis, falling back to the y axis when
    ``up`` is nearly parallel to x.
    """
    h = np.cross(up, X_AXIS)
    if np.linalg.norm(h) < min_norm:
        h = np.cross(up, Y_AXIS)
    return normalize(h)


class PocketSide(Enum):
    """Which pocket the phone is carried in."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True, eq=False)
class BodyTransform:
    """
    Orthonormal body basis expressed in device coordinates.

    Re-orthonormalized on construction: ``up`` is normalized, ``forward`` is
    Gram-Schmidt projected against ``up`` (so it equals
    ``mediolateral x up``) and ``mediolateral = up x forward``. The
    mediolateral passed in only contributes its sign: when it opposes
    ``up x forward`` the basis is mirrored, which is how the pocket side
    sets the final handedness. Left-pocket bases are right-handed.
    """

    forward: np.ndarray
    mediolateral: np.ndarray
    up: np.ndarray

    def __post_init__(self) -> None:
        u = normalize(as_vec3(self.up))
        if not u.any():
            u = np.array([0.0, 0.0, 1.0])
        f = as_vec3(self.forward)
        f = normalize(f - float(np.dot(f, u)) * u)
        if not f.any():
            # forward missing or parallel to up
            f = horizontal_reference(u)
        m = normalize(np.cross(u, f))
        # A mediolateral given opposite to up x forward mirrors the basis
        # (right-pocket calibration keeps +ML on the subject's left).
        if float(np.dot(as_vec3(self.mediolateral), m)) < 0:
            m = -m
        for name, vec in (("forward", f), ("mediolateral", m), ("up", u)):
            vec.setflags(write=False)
            object.__setattr__(self, name, vec)

    @classmethod
    def identity(cls) -> BodyTransform:
        return cls(
            forward=np.array([1.0, 0.0, 0.0]),
            mediolateral=np.array([0.0, 1.0, 0.0]),
            up=np.array([0.0, 0.0, 1.0]),
        )

    @classmethod
    def from_matrix(cls, matrix) -> BodyTransform:
        """Build from a row-major 3x3 matrix with rows (forward, ml, up)."""
        m = np.asarray(matrix, dtype=np.float64).reshape(3, 3)
        return cls(forward=m[0], mediolateral=m[1], up=m[2])

    def as_matrix(self) -> np.ndarray:
        """Row-major 3x3 matrix with rows (forward, mediolateral, up)."""
        return np.vstack([self.forward, self.mediolateral, self.up])

    def orthonormalized(self) -> BodyTransform:
        return BodyTransform(self.forward, self.mediolateral, self.up)

    @property
    def is_right_handed(self) -> bool:
        return float(np.dot(np.cross(self.forward, self.mediolateral), self.up)) > 0

    def apply(self, v) -> Tuple[float, float, float]:
        """Project a device-frame vector onto (forward, mediolateral, up)."""
        vec = as_vec3(v)
        return (
            float(np.dot(self.forward, vec)),
            float(np.dot(self.mediolateral, vec)),
            float(np.dot(self.up, vec)),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BodyTransform):
            return NotImplemented
        return bool(np.allclose(self.as_matrix(), other.as_matrix(), atol=1e-12))

    def to_dict(self) -> dict[str, list[float]]:
        return {
            "forward": self.forward.tolist(),
            "mediolateral": self.mediolateral.tolist(),
            "up": self.up.tolist(),
        }


@dataclass(frozen=True)
class OrientationQuality:
    """Quality metrics paired 1:1 with a BodyTransform."""

    duration_seconds: float
    sample_count: int
    up_stability: float  # 0-1, 1 = steady gravity direction
    forward_dominance: float  # 0-1, variance share along forward axis

    GOOD_UP_STABILITY = 0.90
    GOOD_FORWARD_DOMINANCE = 0.60
    GOOD_MIN_SAMPLES = 300

    @classmethod
    def empty(cls, sample_count: int = 0) -> OrientationQuality:
        return cls(duration_seconds=0.0, sample_count=sample_count, up_stability=0.0, forward_dominance=0.0)

    @property
    def is_good(self) -> bool:
        return (
            self.up_stability > self.GOOD_UP_STABILITY
            and self.forward_dominance > self.GOOD_FORWARD_DOMINANCE
            and self.sample_count >= self.GOOD_MIN_SAMPLES
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "duration_seconds": self.duration_seconds,
            "sample_count": float(self.sample_count),
            "up_stability": self.up_stability,
            "forward_dominance": self.forward_dominance,
        }
