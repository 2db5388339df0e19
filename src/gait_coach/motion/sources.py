"""
Motion Sources
==============

Anything that yields timestamped ``MotionSample`` objects can feed the
calibrator and the stream processor. Platform sensor bindings live outside
this package; here are a recorded-trace replay and a synthetic walker.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Iterator, Protocol

import numpy as np

from gait_coach.core.errors import ReplayFormatError

from .models import MotionSample

TRACE_COLUMNS = ("t", "gx", "gy", "gz", "ax", "ay", "az")


class MotionSource(Protocol):
    """Produces a sequence of timestamped device-frame motion samples."""

    def __iter__(self) -> Iterator[MotionSample]: ...


class ReplaySource:
    """Replay a recorded (N, 7) trace ``[t, gx, gy, gz, ax, ay, az]``."""

    def __init__(self, data: np.ndarray):
        data = np.asarray(data, dtype=np.float64)
        if data.ndim == 1 and data.size == len(TRACE_COLUMNS):
            data = data.reshape(1, -1)
        if data.ndim != 2 or data.shape[1] != len(TRACE_COLUMNS):
            raise ReplayFormatError(
                f"Expected an (N, {len(TRACE_COLUMNS)}) trace, got shape {data.shape}"
            )
        self.data = data

    @classmethod
    def from_csv(cls, path: str | Path, delimiter: str = ",") -> ReplaySource:
        """Load a trace from CSV. A header row naming the columns is skipped."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        with open(path) as f:
            first = f.readline()
        skip = 1 if first and not _is_numeric_row(first, delimiter) else 0
        try:
            data = np.loadtxt(path, delimiter=delimiter, skiprows=skip, ndmin=2)
        except ValueError as e:
            raise ReplayFormatError(f"Could not parse {path}: {e}") from e
        return cls(data)

    def to_csv(self, path: str | Path) -> Path:
        path = Path(path)
        np.savetxt(path, self.data, delimiter=",", header=",".join(TRACE_COLUMNS), comments="")
        return path

    @property
    def duration(self) -> float:
        if len(self.data) < 2:
            return 0.0
        return float(self.data[-1, 0] - self.data[0, 0])

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self) -> Iterator[MotionSample]:
        for row in self.data:
            yield MotionSample.from_row(row)


def _is_numeric_row(line: str, delimiter: str) -> bool:
    try:
        [float(x) for x in line.strip().split(delimiter)]
    except ValueError:
        return False
    return True


class SimulatedWalkSource:
    """
    Deterministic synthetic walk.

    Gravity points along ``-up_axis`` in the device frame. Each step is a
    short forward acceleration pulse peaking at ``step_peak_g``, with a
    mediolateral swing whose sign alternates left/right. Noise is added with
    a seeded generator so traces are reproducible.
    """

    def __init__(
        self,
        seconds: float = 30.0,
        hz: float = 100.0,
        cadence_spm: float = 100.0,
        ml_amplitude_g: float = 0.08,
        step_peak_g: float = 1.2,
        left_right_ratio: float = 1.0,
        noise_g: float = 0.01,
        forward_axis=(1.0, 0.0, 0.0),
        up_axis=(0.0, 0.0, 1.0),
        seed: int = 0,
    ):
        """
        Initialize synthetic walker.

        Args:
            seconds: Trace length
            hz: Sampling rate
            cadence_spm: Mean steps per minute
            ml_amplitude_g: Peak mediolateral swing
            step_peak_g: Peak forward acceleration per step
            left_right_ratio: Left step time / right step time (1.0 = symmetric)
            noise_g: Gaussian noise standard deviation
            forward_axis: Walking direction in device coordinates
            up_axis: Vertical direction in device coordinates
            seed: RNG seed
        """
        self.seconds = seconds
        self.hz = hz
        self.cadence_spm = cadence_spm
        self.ml_amplitude_g = ml_amplitude_g
        self.step_peak_g = step_peak_g
        self.left_right_ratio = left_right_ratio
        self.noise_g = noise_g
        self.forward_axis = _unit(forward_axis)
        self.up_axis = _unit(up_axis)
        self.ml_axis = np.cross(self.up_axis, self.forward_axis)
        self.seed = seed

    def step_times(self) -> np.ndarray:
        """Step onset times, alternating left then right."""
        mean_dt = 60.0 / self.cadence_spm
        # Split a left+right stride so that left/right == left_right_ratio.
        right_dt = 2.0 * mean_dt / (1.0 + self.left_right_ratio)
        left_dt = right_dt * self.left_right_ratio
        times = []
        t = 0.5
        i = 0
        while t < self.seconds - 0.1:
            times.append(t)
            t += left_dt if i % 2 == 0 else right_dt
            i += 1
        return np.array(times)

    def to_array(self) -> np.ndarray:
        """Render the trace as an (N, 7) array."""
        rng = np.random.default_rng(self.seed)
        n = int(round(self.seconds * self.hz))
        t = np.arange(n) / self.hz

        fwd = np.zeros(n)
        ml = np.zeros(n)
        pulse_width = 0.08  # seconds
        for k, onset in enumerate(self.step_times()):
            # Left steps (even k) swing to +ML.
            sign = 1.0 if k % 2 == 0 else -1.0
            phase = (t - onset) / pulse_width
            window = (phase >= 0) & (phase <= 1)
            fwd[window] += self.step_peak_g * np.sin(math.pi * phase[window])
            ml[window] += sign * self.ml_amplitude_g

        fwd += rng.normal(0.0, self.noise_g, n)
        ml += rng.normal(0.0, self.noise_g, n)
        vert = rng.normal(0.0, self.noise_g, n)

        accel = (
            np.outer(fwd, self.forward_axis)
            + np.outer(ml, self.ml_axis)
            + np.outer(vert, self.up_axis)
        )
        gravity = np.tile(-self.up_axis, (n, 1))
        return np.column_stack([t, gravity, accel])

    def __iter__(self) -> Iterator[MotionSample]:
        return iter(ReplaySource(self.to_array()))


def _unit(v) -> np.ndarray:
    arr = np.asarray(v, dtype=np.float64)
    return arr / np.linalg.norm(arr)
