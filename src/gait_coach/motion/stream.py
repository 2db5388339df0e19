"""
Motion Stream Processing
========================

Real-time transformation of live motion samples into body-frame signals,
step events, cadence, mediolateral sway and slow tilt.

The processor is a single-writer state machine: only the thread calling
``ingest`` touches its buffers. Observers receive immutable snapshots and
step events, never references into live state.
"""

from __future__ import annotations

import logging
import math
import queue
import threading
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional, Protocol

from .body_axes import BodyTransform
from .models import MotionSample, MotionSnapshot, StepEvent

logger = logging.getLogger(__name__)

StepObserver = Callable[[StepEvent], None]
SnapshotObserver = Callable[[MotionSnapshot], None]


class QualityLike(Protocol):
    """Anything that can vouch for a calibration."""

    @property
    def is_good(self) -> bool: ...


class MotionStreamProcessor:
    """
    Consume motion samples one at a time and publish walking signals.

    Step detection is a rising-edge crossing of the forward acceleration over
    ``step_threshold_g``, gated by a refractory period. Cadence comes from the
    interval between consecutive detected steps.
    """

    def __init__(
        self,
        transform: Optional[BodyTransform] = None,
        quality: Optional[QualityLike] = None,
        ml_window: int = 300,
        tilt_alpha: float = 0.02,
        step_threshold_g: float = 0.9,
        refractory_s: float = 0.25,
        cadence_min_interval_s: float = 0.25,
        cadence_max_interval_s: float = 2.0,
        max_cadence_spm: float = 200.0,
    ):
        """
        Initialize stream processor.

        Args:
            transform: Calibrated body transform, if any
            quality: Quality paired with the transform
            ml_window: Samples kept for the ML sway RMS (~3 s at 100 Hz)
            tilt_alpha: EMA smoothing factor for tilt
            step_threshold_g: Forward acceleration threshold for a step
            refractory_s: Minimum time between detected steps
            cadence_min_interval_s: Shortest step interval used for cadence
            cadence_max_interval_s: Longest step interval used for cadence
            max_cadence_spm: Cadence ceiling
        """
        self.ml_window = ml_window
        self.tilt_alpha = tilt_alpha
        self.step_threshold_g = step_threshold_g
        self.refractory_s = refractory_s
        self.cadence_min_interval_s = cadence_min_interval_s
        self.cadence_max_interval_s = cadence_max_interval_s
        self.max_cadence_spm = max_cadence_spm

        self._transform = transform
        self._quality = quality
        self._step_observers: List[StepObserver] = []
        self._snapshot_observers: List[SnapshotObserver] = []

        self._ml_buffer: Deque[float] = deque(maxlen=ml_window)
        self.reset()

    @classmethod
    def from_settings(cls, stream_config, transform=None, quality=None) -> MotionStreamProcessor:
        """Build from a ``StreamConfig``."""
        return cls(
            transform=transform,
            quality=quality,
            ml_window=stream_config.ml_window,
            tilt_alpha=stream_config.tilt_alpha,
            step_threshold_g=stream_config.step_threshold_g,
            refractory_s=stream_config.refractory_s,
            cadence_min_interval_s=stream_config.cadence_min_interval_s,
            cadence_max_interval_s=stream_config.cadence_max_interval_s,
            max_cadence_spm=stream_config.max_cadence_spm,
        )

    # ----------------------- Calibration -----------------------

    @property
    def calibration_ok(self) -> bool:
        """True only with a stored transform whose quality is good."""
        return self._transform is not None and self._quality is not None and bool(self._quality.is_good)

    def set_calibration(self, transform: Optional[BodyTransform], quality: Optional[QualityLike]) -> None:
        """Replace the calibration wholesale."""
        self._transform = transform
        self._quality = quality
        if not self.calibration_ok:
            logger.info("No good calibration; processing in device axes")

    # ----------------------- Observers -----------------------

    def subscribe_steps(self, observer: StepObserver) -> Callable[[], None]:
        """Register a step observer. Returns an unsubscribe callable."""
        self._step_observers.append(observer)
        return lambda: self._remove(self._step_observers, observer)

    def subscribe_snapshots(self, observer: SnapshotObserver) -> Callable[[], None]:
        """Register a snapshot observer. Returns an unsubscribe callable."""
        self._snapshot_observers.append(observer)
        return lambda: self._remove(self._snapshot_observers, observer)

    @staticmethod
    def _remove(observers: list, observer) -> None:
        if observer in observers:
            observers.remove(observer)

    # ----------------------- Processing -----------------------

    def reset(self) -> None:
        """Clear counters, buffers and detector state."""
        self._ml_buffer.clear()
        self._step_count = 0
        self._cadence_spm = 0.0
        self._ml_sway_rms = 0.0
        self._tilt_ema: Optional[float] = None
        self._fwd_prev = 0.0
        self._last_step_ts = -math.inf
        self._last_cadence_ts: Optional[float] = None
        self._snapshot = MotionSnapshot(calibration_ok=self.calibration_ok)

    @property
    def snapshot(self) -> MotionSnapshot:
        return self._snapshot

    def ingest(self, sample: MotionSample) -> MotionSnapshot:
        """Process one sample and publish the resulting snapshot."""
        cal_ok = self.calibration_ok
        if cal_ok:
            fwd, ml, up = self._transform.apply(sample.user_acceleration)
        else:
            fwd, ml, up = (float(v) for v in sample.user_acceleration)

        self._ml_buffer.append(ml)
        self._ml_sway_rms = math.sqrt(sum(v * v for v in self._ml_buffer) / max(1, len(self._ml_buffer)))

        if cal_ok:
            self._update_tilt(sample.gravity)

        now = sample.timestamp
        step = None
        if (
            self._fwd_prev <= self.step_threshold_g
            and fwd > self.step_threshold_g
            and now - self._last_step_ts > self.refractory_s
        ):
            self._last_step_ts = now
            step = StepEvent(timestamp=now, ml=ml)
            self._on_step(now)
        self._fwd_prev = fwd

        self._snapshot = MotionSnapshot(
            timestamp=now,
            step_count=self._step_count,
            cadence_spm=self._cadence_spm,
            ml_sway_rms=self._ml_sway_rms,
            tilt_deg=self._tilt_ema if self._tilt_ema is not None else 0.0,
            calibration_ok=cal_ok,
            body_sample=(fwd, ml, up),
        )

        if step is not None:
            for observer in list(self._step_observers):
                observer(step)
        for observer in list(self._snapshot_observers):
            observer(self._snapshot)
        return self._snapshot

    def process(self, samples: Iterable[MotionSample]) -> MotionSnapshot:
        """Ingest a finite sequence and return the final snapshot."""
        for sample in samples:
            self.ingest(sample)
        return self._snapshot

    def _update_tilt(self, gravity) -> None:
        gf, gml, gup = self._transform.apply(gravity)
        new_tilt = math.degrees(math.atan2(math.hypot(gf, gml), abs(gup)))
        if self._tilt_ema is None:
            self._tilt_ema = new_tilt
        else:
            self._tilt_ema = self.tilt_alpha * new_tilt + (1.0 - self.tilt_alpha) * self._tilt_ema

    def _on_step(self, now: float) -> None:
        self._step_count += 1
        if self._last_cadence_ts is not None:
            dt = now - self._last_cadence_ts
            if self.cadence_min_interval_s < dt < self.cadence_max_interval_s:
                self._cadence_spm = min(self.max_cadence_spm, max(0.0, 60.0 / dt))
        self._last_cadence_ts = now


class MotionStreamRunner:
    """
    Drive a processor from a motion source on a dedicated ingestion thread.

    The ingestion thread is the only writer of processor state and never
    waits on a consumer. Consumers read ``latest`` (an immutable snapshot
    swapped by reference) and drain step events from a bounded queue on
    their own thread. When the queue is full the oldest pending event is
    evicted and counted in ``dropped_steps``.
    """

    def __init__(
        self,
        processor: MotionStreamProcessor,
        source: Iterable[MotionSample],
        max_pending_steps: int = 256,
    ):
        self.processor = processor
        self.source = source
        self.dropped_steps = 0
        self._steps: "queue.Queue[StepEvent]" = queue.Queue(maxsize=max_pending_steps)
        self._latest = processor.snapshot
        self._running = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None
        self._unsubscribers: List[Callable[[], None]] = []

    @classmethod
    def from_settings(cls, stream_config, processor, source) -> MotionStreamRunner:
        """Build from a ``StreamConfig``."""
        return cls(processor, source, max_pending_steps=stream_config.step_queue_size)

    @property
    def latest(self) -> MotionSnapshot:
        return self._latest

    @property
    def running(self) -> bool:
        return self._running.is_set()

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Subscribe to the processor and start the ingestion thread."""
        if self._thread is not None:
            raise RuntimeError("Runner already started")
        self._unsubscribers = [
            self.processor.subscribe_steps(self._enqueue_step),
            self.processor.subscribe_snapshots(self._publish),
        ]
        self._running.set()
        self._thread = threading.Thread(target=self._read_loop, name="motion-ingest", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop feeding samples; the thread exits after the current one."""
        self._running.clear()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def drain_steps(self) -> List[StepEvent]:
        """Return pending step events in arrival order."""
        events = []
        while True:
            try:
                events.append(self._steps.get_nowait())
            except queue.Empty:
                return events

    def _enqueue_step(self, event: StepEvent) -> None:
        # Only this thread puts, so a freed slot stays free until the retry.
        while True:
            try:
                self._steps.put_nowait(event)
                return
            except queue.Full:
                try:
                    self._steps.get_nowait()
                except queue.Empty:
                    continue
                self.dropped_steps += 1
                if self.dropped_steps == 1:
                    logger.warning("Step queue full; dropping oldest pending events")

    def _publish(self, snapshot: MotionSnapshot) -> None:
        self._latest = snapshot

    def _read_loop(self) -> None:
        try:
            for sample in self.source:
                if not self._running.is_set():
                    break
                self.processor.ingest(sample)
        except Exception as e:
            logger.exception("Motion ingestion failed")
            self._error = e
        finally:
            for unsubscribe in self._unsubscribers:
                unsubscribe()
            self._unsubscribers = []
            self._running.clear()
