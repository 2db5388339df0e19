"""
Walking Session
===============

Wires the live stream processor to the step timing analyzer and turns a
finished walk into metrics, a score and pattern tags.

Usage:
    session = GaitSession(processor, resolver)
    session.start()
    for sample in source:
        session.ingest(sample)
    summary = session.finish()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from gait_coach.analysis.coaching import NudgeAdvisor, NudgeKind
from gait_coach.analysis.models import SessionMetrics, SessionSummary
from gait_coach.analysis.patterns import GaitTag, make_pattern_tags
from gait_coach.analysis.scoring import GaitScoreResult, compute_gait_score
from gait_coach.analysis.step_timing import StepTimingAnalyzer
from gait_coach.analysis.targeting import TargetResolver
from gait_coach.core.config import Settings
from gait_coach.motion.models import MotionSample, MotionSnapshot, StepEvent
from gait_coach.motion.stream import MotionStreamProcessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionResult:
    """Everything produced by one finished session."""

    summary: SessionSummary
    metrics: SessionMetrics
    score: GaitScoreResult
    tags: List[GaitTag] = field(default_factory=list)


class GaitSession:
    """One walk: stream processor -> step timing -> score and tags."""

    def __init__(
        self,
        processor: MotionStreamProcessor,
        resolver: Optional[TargetResolver] = None,
        analyzer: Optional[StepTimingAnalyzer] = None,
        nudges: Optional[NudgeAdvisor] = None,
    ):
        self.processor = processor
        self.resolver = resolver or TargetResolver()
        self.analyzer = analyzer or StepTimingAnalyzer()
        self.nudges = nudges
        self.steps: List[StepEvent] = []
        self.nudge_log: List[tuple[float, NudgeKind]] = []
        self._unsubscribe = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        processor: MotionStreamProcessor,
        resolver: Optional[TargetResolver] = None,
    ) -> GaitSession:
        return cls(
            processor=processor,
            resolver=resolver or TargetResolver.from_settings(settings.target),
            analyzer=StepTimingAnalyzer.from_settings(settings.step_timing),
        )

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        """Reset state and start listening for steps."""
        if self.running:
            return
        self.processor.reset()
        self.analyzer.reset()
        self.steps = []
        self.nudge_log = []
        self._unsubscribe = self.processor.subscribe_steps(self._on_step)

    def ingest(self, sample: MotionSample) -> MotionSnapshot:
        return self.processor.ingest(sample)

    def run(self, samples: Iterable[MotionSample]) -> SessionResult:
        """Start, consume a finite source and finish."""
        self.start()
        for sample in samples:
            self.ingest(sample)
        return self.finish()

    def _on_step(self, event: StepEvent) -> None:
        self.steps.append(event)
        self.analyzer.ingest_event(event)
        if self.nudges is not None:
            kind = self.nudges.consider(event.timestamp, self.analyzer.asym_pct, self.processor.snapshot.cadence_spm)
            if kind is not None:
                self.nudge_log.append((event.timestamp, kind))

    def metrics(self) -> SessionMetrics:
        snap = self.processor.snapshot
        return SessionMetrics(
            cadence_spm=snap.cadence_spm,
            ml_sway_rms=snap.ml_sway_rms,
            avg_step_time=self.analyzer.avg_step_time,
            cv_step_time=self.analyzer.step_time_cv,
        )

    def finish(self, date: datetime | None = None) -> SessionResult:
        """Stop listening and build the session result."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        metrics = self.metrics()
        asym = self.analyzer.asym_pct
        baseline = self.resolver.baseline
        score = compute_gait_score(
            asym_pct=asym,
            ml_rms=metrics.ml_sway_rms,
            cadence_spm=metrics.cadence_spm,
            baseline_asym=baseline.asym_step_time_pct if baseline else None,
            baseline_ml_sway=baseline.ml_sway_rms if baseline else None,
        )
        tags = make_pattern_tags(metrics, self.resolver.target)

        summary = SessionSummary(
            date=date or datetime.now(),
            steps=self.processor.snapshot.step_count,
            cadence_spm=metrics.cadence_spm,
            ml_sway_rms=metrics.ml_sway_rms,
            score=score.total,
            tags=tuple(t.value for t in tags),
            avg_step_time=self.analyzer.avg_step_time,
            cv_step_time=self.analyzer.step_time_cv,
            asym_step_time_pct=asym,
        )
        logger.info(
            "Session finished: %d steps, cadence %.0f spm, score %d, tags=%s",
            summary.steps,
            summary.cadence_spm,
            score.total,
            ",".join(summary.tags) or "-",
        )
        return SessionResult(summary=summary, metrics=metrics, score=score, tags=tags)
