"""Tests for motion module."""

from __future__ import annotations

import math

import numpy as np
import pytest


def _sample(t, accel=(0.0, 0.0, 0.0), gravity=(0.0, 0.0, -1.0)):
    from gait_coach.motion.models import MotionSample

    return MotionSample(gravity=np.array(gravity), user_acceleration=np.array(accel), timestamp=t)


def _pulse_train(step_times, hz=100.0, seconds=None, peak=1.2, ml=0.0):
    """Device-frame samples with a forward spike at each step time."""
    seconds = seconds or (max(step_times) + 0.5)
    samples = []
    for i in range(int(seconds * hz)):
        t = i / hz
        fwd = peak if any(0.0 <= t - s < 0.03 for s in step_times) else 0.0
        samples.append(_sample(t, accel=(fwd, ml, 0.0)))
    return samples


class TestBodyTransform:
    """Tests for BodyTransform."""

    @pytest.mark.parametrize(
        "forward,ml,up",
        [
            ((1, 0, 0), (0, 1, 0), (0, 0, 1)),
            ((0.9, 0.2, 0.3), (0.1, 1.0, 0.0), (0.1, -0.2, 2.0)),
            ((0, 0, 1), (0, 1, 0), (0, 0, 3)),
            ((0, 0, 0), (0, 0, 0), (0, 0, 0)),
        ],
    )
    def test_orthonormal(self, forward, ml, up):
        """Test axes are unit length and mutually orthogonal."""
        from gait_coach.motion.body_axes import BodyTransform

        tr = BodyTransform(forward=np.array(forward, float), mediolateral=np.array(ml, float), up=np.array(up, float))

        for v in (tr.forward, tr.mediolateral, tr.up):
            assert abs(np.linalg.norm(v) - 1.0) < 1e-9
        assert abs(np.dot(tr.forward, tr.mediolateral)) < 1e-9
        assert abs(np.dot(tr.forward, tr.up)) < 1e-9
        assert abs(np.dot(tr.mediolateral, tr.up)) < 1e-9

    def test_orthonormalize_idempotent(self):
        """Test re-orthonormalizing changes nothing."""
        from gait_coach.motion.body_axes import BodyTransform

        tr = BodyTransform(
            forward=np.array([0.7, 0.3, 0.2]),
            mediolateral=np.array([-0.2, 0.9, 0.1]),
            up=np.array([0.05, 0.1, 0.99]),
        )

        again = tr.orthonormalized()

        assert again == tr
        assert np.allclose(again.as_matrix(), tr.as_matrix(), atol=1e-12)

    def test_mirrored_mediolateral(self):
        """Test an opposing mediolateral mirrors the basis."""
        from gait_coach.motion.body_axes import BodyTransform

        tr = BodyTransform(
            forward=np.array([1.0, 0.0, 0.0]),
            mediolateral=np.array([0.0, -1.0, 0.0]),
            up=np.array([0.0, 0.0, 1.0]),
        )

        assert np.allclose(tr.mediolateral, [0.0, -1.0, 0.0])
        assert not tr.is_right_handed

    def test_apply(self):
        """Test projection onto body axes."""
        from gait_coach.motion.body_axes import BodyTransform

        assert BodyTransform.identity().apply([0.1, 0.2, 0.3]) == pytest.approx((0.1, 0.2, 0.3))

    def test_axes_read_only(self):
        """Test stored axes cannot be mutated in place."""
        from gait_coach.motion.body_axes import BodyTransform

        tr = BodyTransform.identity()

        with pytest.raises(ValueError):
            tr.forward[0] = 2.0


class TestOrientationCalibrator:
    """Tests for OrientationCalibrator."""

    def test_constant_gravity(self):
        """Test a motionless capture still yields a transform."""
        from gait_coach.motion.body_axes import PocketSide
        from gait_coach.motion.calibrator import OrientationCalibrator

        samples = [_sample(i / 100.0) for i in range(250)]
        calibrator = OrientationCalibrator(PocketSide.LEFT, hz=100.0, seconds=10.0)

        result = calibrator.calibrate(samples)

        assert result.ok
        assert result.quality.sample_count == 250
        assert result.quality.up_stability == pytest.approx(1.0)
        assert np.allclose(result.transform.up, [0.0, 0.0, 1.0])
        assert np.all(np.isfinite(result.transform.forward))
        assert abs(np.dot(result.transform.forward, result.transform.up)) < 1e-9
        assert not result.is_good

    def test_insufficient_samples(self):
        """Test a capture at the sample floor fails."""
        from gait_coach.core.errors import CalibrationFailure
        from gait_coach.motion.calibrator import OrientationCalibrator

        result = OrientationCalibrator().calibrate(_sample(i / 100.0) for i in range(10))

        assert not result.ok
        assert result.transform is None
        assert result.error is CalibrationFailure.INSUFFICIENT_SAMPLES
        assert result.quality.sample_count == 10
        assert result.quality.up_stability == 0.0

    def test_stops_at_target(self):
        """Test the capture stops after hz * seconds samples."""
        from gait_coach.motion.calibrator import OrientationCalibrator

        calibrator = OrientationCalibrator(hz=10.0, seconds=2.0)
        result = calibrator.calibrate(_sample(i / 10.0) for i in range(100))

        assert calibrator.is_complete
        assert result.quality.sample_count == 20
        assert result.quality.duration_seconds == pytest.approx(2.0)

    def test_synthetic_walk(self, calibration):
        """Test forward and up are recovered from a walk."""
        assert calibration.is_good
        assert np.allclose(calibration.transform.up, [0.0, 0.0, 1.0], atol=1e-6)
        assert np.dot(calibration.transform.forward, [1.0, 0.0, 0.0]) > 0.99
        assert np.dot(calibration.transform.mediolateral, [0.0, 1.0, 0.0]) > 0.99
        assert calibration.quality.forward_dominance > 0.9

    def test_rotated_device(self):
        """Test a phone rotated about the vertical still finds walking direction."""
        from gait_coach.motion.calibrator import OrientationCalibrator
        from gait_coach.motion.sources import SimulatedWalkSource

        heading = np.array([math.cos(0.6), math.sin(0.6), 0.0])
        walk = SimulatedWalkSource(seconds=12.0, forward_axis=heading, seed=3)

        result = OrientationCalibrator().calibrate(walk)

        assert np.dot(result.transform.forward, heading) > 0.99

    def test_right_pocket_mirrors_ml(self, walker):
        """Test the right pocket flips the mediolateral axis."""
        from gait_coach.motion.body_axes import PocketSide
        from gait_coach.motion.calibrator import OrientationCalibrator

        left = OrientationCalibrator(PocketSide.LEFT).calibrate(walker)
        right = OrientationCalibrator(PocketSide.RIGHT).calibrate(walker)

        assert np.allclose(left.transform.forward, right.transform.forward)
        assert np.allclose(left.transform.mediolateral, -right.transform.mediolateral)

    def test_run_invokes_callback_once(self):
        """Test completion callback fires exactly once."""
        from gait_coach.motion.calibrator import OrientationCalibrator

        calls = []
        OrientationCalibrator().run([_sample(0.0)] * 3, lambda tr, q: calls.append((tr, q)))

        assert len(calls) == 1
        assert calls[0][0] is None

    def test_principal_axis(self):
        """Test closed-form eigen solution."""
        from gait_coach.motion.calibrator import principal_axis_2x2

        l1, l2, v = principal_axis_2x2(1.0, 0.0, 4.0)
        assert (l1, l2) == pytest.approx((4.0, 1.0))
        assert abs(v[1]) == pytest.approx(1.0)

        l1, l2, v = principal_axis_2x2(0.0, 0.0, 0.0)
        assert l1 == 0.0
        assert np.allclose(v, [1.0, 0.0])


class TestMotionStreamProcessor:
    """Tests for MotionStreamProcessor."""

    def test_degraded_mode_uses_device_axes(self):
        """Test processing without a calibration."""
        from gait_coach.motion.stream import MotionStreamProcessor

        processor = MotionStreamProcessor()
        snap = processor.ingest(_sample(0.0, accel=(0.1, 0.2, 0.3)))

        assert not snap.calibration_ok
        assert snap.body_sample == pytest.approx((0.1, 0.2, 0.3))
        assert snap.tilt_deg == 0.0

    def test_ml_sway_rms(self):
        """Test RMS over the ML ring buffer."""
        from gait_coach.motion.stream import MotionStreamProcessor

        processor = MotionStreamProcessor(ml_window=4)
        for i, ml in enumerate([3.0, 3.0, 4.0, 4.0, 4.0, 4.0]):
            snap = processor.ingest(_sample(i / 100.0, accel=(0.0, ml, 0.0)))

        assert snap.ml_sway_rms == pytest.approx(4.0)

    def test_step_detection_and_cadence(self):
        """Test rising-edge steps and cadence from their interval."""
        from gait_coach.motion.stream import MotionStreamProcessor

        processor = MotionStreamProcessor()
        steps = [0.5, 1.1, 1.7, 2.3]
        snap = processor.process(_pulse_train(steps))

        assert snap.step_count == 4
        assert snap.cadence_spm == pytest.approx(100.0, rel=1e-6)

    def test_refractory_period(self):
        """Test steps closer than the refractory period are ignored."""
        from gait_coach.motion.stream import MotionStreamProcessor

        processor = MotionStreamProcessor()
        snap = processor.process(_pulse_train([0.5, 0.7, 1.2]))

        assert snap.step_count == 2

    def test_cadence_ignores_long_gaps(self):
        """Test intervals outside the cadence window leave cadence untouched."""
        from gait_coach.motion.stream import MotionStreamProcessor

        processor = MotionStreamProcessor()
        snap = processor.process(_pulse_train([0.5, 3.0]))

        assert snap.step_count == 2
        assert snap.cadence_spm == 0.0

    def test_observers_order(self):
        """Test step observers run before the snapshot observer and exactly once."""
        from gait_coach.motion.stream import MotionStreamProcessor

        processor = MotionStreamProcessor()
        events = []
        processor.subscribe_steps(lambda e: events.append(("step", e.timestamp)))
        unsubscribe = processor.subscribe_snapshots(lambda s: events.append(("snap", s.step_count)))

        processor.process(_pulse_train([0.5]))
        unsubscribe()
        seen = len(events)
        processor.ingest(_sample(5.0))

        step_index = events.index(("step", 0.5))
        assert events[step_index + 1] == ("snap", 1)
        assert sum(1 for kind, _ in events if kind == "step") == 1
        assert len(events) == seen

    def test_tilt_seeded_by_first_value(self, calibration):
        """Test tilt EMA starts from the first measurement."""
        from gait_coach.motion.stream import MotionStreamProcessor

        processor = MotionStreamProcessor(calibration.transform, calibration.quality)
        gravity = (math.sin(math.radians(30)), 0.0, -math.cos(math.radians(30)))

        snap = processor.ingest(_sample(0.0, gravity=gravity))

        assert snap.calibration_ok
        assert snap.tilt_deg == pytest.approx(30.0, abs=0.5)

    def test_reset(self):
        """Test reset clears counters."""
        from gait_coach.motion.stream import MotionStreamProcessor

        processor = MotionStreamProcessor()
        processor.process(_pulse_train([0.5, 1.1]))
        processor.reset()

        assert processor.snapshot.step_count == 0
        assert processor.snapshot.cadence_spm == 0.0


class TestMotionStreamRunner:
    """Tests for the threaded runner."""

    def test_runner_drains_steps(self, walker):
        """Test steps arrive in order through the queue."""
        from gait_coach.motion.stream import MotionStreamProcessor, MotionStreamRunner

        runner = MotionStreamRunner(MotionStreamProcessor(), list(walker))
        runner.start()
        runner.join(timeout=10.0)

        steps = runner.drain_steps()
        assert not runner.running
        assert runner.error is None
        assert len(steps) == runner.latest.step_count
        assert [s.timestamp for s in steps] == sorted(s.timestamp for s in steps)

    def test_runner_records_errors(self):
        """Test a failing source is reported, not raised on the caller."""
        from gait_coach.motion.stream import MotionStreamProcessor, MotionStreamRunner

        def broken():
            yield _sample(0.0)
            raise OSError("sensor gone")

        runner = MotionStreamRunner(MotionStreamProcessor(), broken())
        runner.start()
        runner.join(timeout=5.0)

        assert isinstance(runner.error, OSError)

    def test_undrained_queue_keeps_ingesting(self):
        """Test a consumer that never drains does not stall ingestion."""
        from gait_coach.motion.sources import SimulatedWalkSource
        from gait_coach.motion.stream import MotionStreamProcessor, MotionStreamRunner

        walk = SimulatedWalkSource(seconds=60.0, cadence_spm=100.0, seed=3)
        runner = MotionStreamRunner(MotionStreamProcessor(), list(walk), max_pending_steps=8)
        runner.start()
        runner.join(timeout=10.0)

        total = runner.latest.step_count
        steps = runner.drain_steps()
        assert not runner.is_alive()
        assert total == len(walk.step_times())
        assert len(steps) == 8
        assert runner.dropped_steps == total - 8
        assert [s.timestamp for s in steps] == sorted(s.timestamp for s in steps)

    def test_stop_ends_endless_source(self):
        """Test stop() ends the thread even with a full step queue."""
        from gait_coach.motion.stream import MotionStreamProcessor, MotionStreamRunner

        def endless():
            i = 0
            while True:
                t = i / 100.0
                yield _sample(t, accel=(1.2 if i % 50 < 3 else 0.0, 0.0, 0.0))
                i += 1

        runner = MotionStreamRunner(MotionStreamProcessor(), endless(), max_pending_steps=4)
        runner.start()
        runner.join(timeout=0.5)
        runner.stop()
        runner.join(timeout=2.0)

        assert not runner.is_alive()
        assert runner.error is None
        assert len(runner.drain_steps()) == 4
        assert runner.dropped_steps > 0

    def test_unsubscribes_when_done(self, walker):
        """Test a finished runner no longer receives processor events."""
        from gait_coach.motion.stream import MotionStreamProcessor, MotionStreamRunner

        processor = MotionStreamProcessor()
        runner = MotionStreamRunner(processor, list(walker))
        runner.start()
        runner.join(timeout=10.0)
        runner.drain_steps()
        latest = runner.latest

        processor.reset()
        processor.process(_pulse_train([0.5, 1.1, 1.7]))

        assert processor.snapshot.step_count == 3
        assert runner.drain_steps() == []
        assert runner.latest is latest

    def test_from_settings(self, walker):
        """Test the step queue is sized from the stream settings."""
        from gait_coach.core.config import StreamConfig
        from gait_coach.motion.stream import MotionStreamProcessor, MotionStreamRunner

        runner = MotionStreamRunner.from_settings(
            StreamConfig(step_queue_size=5), MotionStreamProcessor(), list(walker)
        )
        runner.start()
        runner.join(timeout=10.0)

        assert len(runner.drain_steps()) == 5
        assert runner.dropped_steps == runner.latest.step_count - 5


class TestSources:
    """Tests for motion sources."""

    def test_csv_round_trip(self, temp_dir, walker):
        """Test a trace written to CSV replays identically."""
        from gait_coach.motion.sources import ReplaySource

        source = ReplaySource(walker.to_array())
        path = source.to_csv(temp_dir / "walk.csv")

        loaded = ReplaySource.from_csv(path)

        assert len(loaded) == len(source)
        assert np.allclose(loaded.data, source.data)
        assert loaded.duration == pytest.approx(29.99)

    def test_bad_shape(self):
        """Test a trace with the wrong column count is rejected."""
        from gait_coach.core.errors import ReplayFormatError
        from gait_coach.motion.sources import ReplaySource

        with pytest.raises(ReplayFormatError):
            ReplaySource(np.zeros((5, 4)))

    def test_missing_file(self, temp_dir):
        """Test a missing trace raises FileNotFoundError."""
        from gait_coach.motion.sources import ReplaySource

        with pytest.raises(FileNotFoundError):
            ReplaySource.from_csv(temp_dir / "nope.csv")

    def test_simulated_step_times(self):
        """Test asymmetric walk alternates left/right intervals."""
        from gait_coach.motion.sources import SimulatedWalkSource

        times = SimulatedWalkSource(seconds=10.0, cadence_spm=120.0, left_right_ratio=1.2).step_times()
        dts = np.diff(times)

        assert dts[0] / dts[1] == pytest.approx(1.2)
        assert np.mean(dts[:8]) == pytest.approx(0.5)
