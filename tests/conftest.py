"""Pytest fixtures for gait-coach tests."""

from __future__ import annotations

import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from gait_coach.core.config import Settings


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings() -> Settings:
    """Default settings."""
    return Settings()


@pytest.fixture
def walker():
    """Symmetric 30 s synthetic walk at 100 spm."""
    from gait_coach.motion.sources import SimulatedWalkSource

    return SimulatedWalkSource(seconds=30.0, hz=100.0, cadence_spm=100.0, seed=7)


@pytest.fixture
def calibration(walker):
    """Left-pocket calibration result computed on the synthetic walk."""
    from gait_coach.motion.body_axes import PocketSide
    from gait_coach.motion.calibrator import OrientationCalibrator

    return OrientationCalibrator(PocketSide.LEFT, hz=100.0, seconds=10.0).calibrate(walker)


@pytest.fixture
def sample_baseline():
    """A typical personal baseline."""
    from gait_coach.analysis.models import Baseline

    return Baseline(
        date=datetime(2024, 3, 1, 9, 30),
        avg_step_time=0.55,
        cv_step_time=0.04,
        ml_sway_rms=0.06,
        asym_step_time_pct=3.0,
    )


@pytest.fixture
def make_session():
    """Factory for session summaries."""
    from gait_coach.analysis.models import SessionSummary

    def _make(asym=2.0, ml=0.05, avg=0.55, cv=0.04, cadence=105.0, score=95):
        return SessionSummary(
            date=datetime(2024, 3, 2),
            steps=200,
            cadence_spm=cadence,
            ml_sway_rms=ml,
            score=score,
            tags=(),
            avg_step_time=avg,
            cv_step_time=cv,
            asym_step_time_pct=asym,
        )

    return _make

