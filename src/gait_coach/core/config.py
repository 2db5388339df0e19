"""Configuration management with dataclasses and YAML loading."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class CalibrationConfig:
    """Orientation calibration capture."""

    hz: float = 100.0
    seconds: float = 10.0
    min_samples: int = 10  # capture must exceed this count
    pocket_side: str = "left"

    def __post_init__(self) -> None:
        if self.pocket_side not in ("left", "right"):
            raise ConfigError(f"pocket_side must be 'left' or 'right', got {self.pocket_side!r}")
        if self.hz <= 0 or self.seconds <= 0:
            raise ConfigError("calibration hz and seconds must be positive")


@dataclass
class StreamConfig:
    """Live motion stream processing."""

    ml_window: int = 300  # ~3 s at 100 Hz
    tilt_alpha: float = 0.02
    step_threshold_g: float = 0.9
    refractory_s: float = 0.25
    cadence_min_interval_s: float = 0.25
    cadence_max_interval_s: float = 2.0
    max_cadence_spm: float = 200.0
    step_queue_size: int = 256  # pending step events held for the consumer


@dataclass
class StepTimingConfig:
    """Step timing analyzer windows and gates."""

    min_interval_s: float = 0.25
    max_interval_s: float = 1.6
    ml_deadband: float = 0.01
    max_pairs: int = 40
    asym_window: int = 10
    min_cv_samples: int = 5


@dataclass
class TargetConfig:
    """Comparison target policy."""

    policy: str = "norms"
    ramp_fraction: float = 0.0

    def __post_init__(self) -> None:
        if self.policy not in ("norms", "personal", "ramped"):
            raise ConfigError(f"Unknown target policy: {self.policy!r}")
        self.ramp_fraction = max(0.0, min(1.0, float(self.ramp_fraction)))


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class Settings:
    """Main application settings."""

    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    step_timing: StepTimingConfig = field(default_factory=StepTimingConfig)
    target: TargetConfig = field(default_factory=TargetConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from YAML file."""
        path = Path(path)
        if not path.exists():
            logger.debug("No settings file at %s, using defaults", path)
            return cls()

        with open(path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping")
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create Settings from dictionary."""
        try:
            return cls(
                calibration=CalibrationConfig(**data.get("calibration", {})),
                stream=StreamConfig(**data.get("stream", {})),
                step_timing=StepTimingConfig(**data.get("step_timing", {})),
                target=TargetConfig(**data.get("target", {})),
                logging=LoggingConfig(**data.get("logging", {})),
            )
        except TypeError as e:
            raise ConfigError(f"Unknown settings key: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""
        return asdict(self)

    def to_yaml(self, path: str | Path) -> Path:
        """Write settings to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        return path


DEFAULT_CONFIG_PATHS = (
    Path("config/settings.yaml"),
    Path.home() / ".config/gait-coach/settings.yaml",
)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from an explicit path or the first default path found."""
    if config_path is None:
        for candidate in DEFAULT_CONFIG_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is None:
        return Settings()

    logger.debug("Loading settings from %s", config_path)
    return Settings.from_yaml(config_path)
