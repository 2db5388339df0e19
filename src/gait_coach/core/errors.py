"""Error taxonomy."""

from __future__ import annotations

from enum import Enum


class GaitCoachError(Exception):
    """Base class for errors raised at the package boundary."""


class ConfigError(GaitCoachError):
    """Invalid configuration value or file."""


class ReplayFormatError(GaitCoachError, ValueError):
    """A recorded motion trace does not have the expected shape."""


class CalibrationFailure(Enum):
    """Reasons a calibration capture produced no transform.

    Failures are reported in the result rather than raised.
    """

    INSUFFICIENT_SAMPLES = "insufficient_samples"
