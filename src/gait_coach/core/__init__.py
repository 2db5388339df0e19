"""Core infrastructure modules."""

from .config import (
    CalibrationConfig,
    LoggingConfig,
    Settings,
    StepTimingConfig,
    StreamConfig,
    TargetConfig,
    load_settings,
)
from .errors import CalibrationFailure, ConfigError, GaitCoachError, ReplayFormatError

__all__ = [
    "CalibrationConfig",
    "CalibrationFailure",
    "ConfigError",
    "GaitCoachError",
    "LoggingConfig",
    "ReplayFormatError",
    "Settings",
    "StepTimingConfig",
    "StreamConfig",
    "TargetConfig",
    "load_settings",
]
