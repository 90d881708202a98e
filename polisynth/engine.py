"""Analytics engine facade driven by the host's timer.

Owns one instance of every analysis component, the session event log and
the lock that serializes passes. Each public method is one pass; the host
decides how often to call which.
"""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from polisynth.analysis.event_log import AnalysisEventLog, wall_clock_ms
from polisynth.analysis.relational import PairwiseRelationalAnalyzer, RelationalMetrics
from polisynth.analysis.scoring import clamp_percent
from polisynth.analysis.session import SessionAggregator, SessionReport
from polisynth.analysis.state import SystemStateAnalyzer
from polisynth.config import AnalyticsConfig
from polisynth.disruption.analysis import SystemAnalysis, analyze_system
from polisynth.disruption.engine import DisruptionDecisionEngine
from polisynth.disruption.templates import DisruptionImpact, predict_disruption_impact
from polisynth.emergence.events import (
    AnalysisEvent,
    EventCategory,
    new_event_id,
    severity_for_strength,
)
from polisynth.emergence.fields import FieldSynthesizer, ResonanceField, global_resonance
from polisynth.emergence.metrics import TelemetryCollector, TelemetrySample
from polisynth.emergence.patterns import (
    EmergenceMetrics,
    PatternDetector,
    PatternReport,
    ResonanceMetrics,
    emergence_metrics,
    global_intelligence,
    resonance_metrics,
)
from polisynth.simulation.entities import DisruptiveEvent, PopulationSnapshot

logger = logging.getLogger(__name__)


@dataclass
class PatternPassResult:
    """Fields, classified structure and summary metrics of one pattern pass."""

    fields: list[ResonanceField]
    report: PatternReport
    resonance: ResonanceMetrics
    emergence: EmergenceMetrics
    global_resonance: float = 0.0
    global_intelligence: float = 0.0


@dataclass
class StepResult:
    """Everything one full `step` produced."""

    timestamp: int
    telemetry: TelemetrySample
    relational: RelationalMetrics
    patterns: PatternPassResult
    state_events: list[AnalysisEvent] = field(default_factory=list)
    disruption: DisruptiveEvent | None = None

    @property
    def events(self) -> list[AnalysisEvent]:
        return self.patterns.report.events + self.state_events


class AnalyticsEngine:
    """Population analytics and adaptive disruption engine.

    Args:
        config: Engine settings; defaults are used when omitted
        rng: Random source shared by every component; seeded from
            `config.seed` when omitted
        clock: Millisecond clock used when a pass is called without `now`
    """

    def __init__(
        self,
        config: AnalyticsConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] = wall_clock_ms,
    ):
        self.config = config or AnalyticsConfig()
        self.rng = rng or random.Random(self.config.seed)
        self.clock = clock
        self._lock = threading.RLock()

        cfg = self.config
        self.relational = PairwiseRelationalAnalyzer(
            signal_resolution=cfg.signal_resolution,
            pair_cap=cfg.entangled_pair_cap,
            grid_size=cfg.influence_grid_size,
            world_size=(cfg.world_width, cfg.world_height),
            rng=self.rng,
        )
        self.fields = FieldSynthesizer(
            innovator_distance=cfg.innovator_group_distance,
            trust_distance=cfg.trust_group_distance,
            cooperation_distance=cfg.cooperation_group_distance,
            rng=self.rng,
        )
        self.patterns = PatternDetector(
            resonance_cap=cfg.resonance_pattern_cap,
            behavior_cap=cfg.emergent_behavior_cap,
            cluster_relationship=cfg.cluster_relationship_threshold,
            cluster_distance=cfg.cluster_distance,
            cluster_min_members=cfg.cluster_min_members,
            cluster_min_intelligence=cfg.cluster_min_intelligence,
        )
        self.decisions = DisruptionDecisionEngine.from_config(cfg, rng=self.rng)
        self.state_analyzer = SystemStateAnalyzer(
            cache_ttl_ms=cfg.state_cache_ttl_ms,
            anomaly_threshold=cfg.anomaly_threshold,
            recent_coalition_window_ms=cfg.recent_coalition_window_ms,
        )
        self.telemetry = TelemetryCollector(max_history=cfg.telemetry_history_max)
        self.log = AnalysisEventLog(capacity=cfg.event_log_capacity, clock=clock)
        self.aggregator = SessionAggregator(self.log, self.telemetry)

    def _now(self, now: int | None) -> int:
        return self.clock() if now is None else now

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def collect_telemetry(self, snapshot: PopulationSnapshot, now: int | None = None) -> TelemetrySample:
        with self._lock:
            return self.telemetry.collect(snapshot, self._now(now))

    def run_relational_pass(
        self, snapshot: PopulationSnapshot, now: int | None = None
    ) -> RelationalMetrics:
        """Relational scores for the snapshot; threshold events go to the log."""
        with self._lock:
            now = self._now(now)
            metrics = self.relational.analyze(snapshot)
            self.log.record_all(self.relational.relational_events(metrics, snapshot, now), now)
            return metrics

    def run_pattern_pass(
        self, snapshot: PopulationSnapshot, now: int | None = None
    ) -> PatternPassResult:
        """Synthesize fields, classify patterns and record their events."""
        with self._lock:
            now = self._now(now)
            fields = self.fields.synthesize(snapshot)
            report = self.patterns.detect(snapshot, fields, now)
            self.log.record_all(report.events, now)
            return PatternPassResult(
                fields=fields,
                report=report,
                resonance=resonance_metrics(fields, report.patterns),
                emergence=emergence_metrics(snapshot, report.clusters, report.behaviors),
                global_resonance=global_resonance(fields),
                global_intelligence=global_intelligence(
                    snapshot, report.clusters, report.behaviors
                ),
            )

    def run_state_analysis(
        self, snapshot: PopulationSnapshot, now: int | None = None
    ) -> list[AnalysisEvent]:
        """System-state events; cached results are returned but not re-recorded."""
        with self._lock:
            now = self._now(now)
            analysis = self.state_analyzer.analyze(snapshot, now, self.log.recent(50))
            if not analysis.from_cache:
                self.log.record_all(analysis.events, now)
            return list(analysis.events)

    def run_decision_pass(
        self, snapshot: PopulationSnapshot, now: int | None = None
    ) -> DisruptiveEvent | None:
        """One decision cycle. Returns the perturbation to inject, if any."""
        with self._lock:
            now = self._now(now)
            disruption = self.decisions.tick(now, snapshot)
            if disruption is not None:
                self._record_disruption(disruption, snapshot, now)
            return disruption

    def force_disruption(
        self, snapshot: PopulationSnapshot, now: int | None = None
    ) -> DisruptiveEvent:
        """Operator-triggered perturbation, bypassing cooldown and probability."""
        with self._lock:
            now = self._now(now)
            disruption = self.decisions.force_trigger(now, snapshot)
            self._record_disruption(disruption, snapshot, now)
            return disruption

    def step(self, snapshot: PopulationSnapshot, now: int | None = None) -> StepResult:
        """Run every pass once, in dependency order."""
        with self._lock:
            now = self._now(now)
            telemetry = self.collect_telemetry(snapshot, now)
            relational = self.run_relational_pass(snapshot, now)
            patterns = self.run_pattern_pass(snapshot, now)
            state_events = self.run_state_analysis(snapshot, now)
            disruption = self.run_decision_pass(snapshot, now)
            return StepResult(
                timestamp=now,
                telemetry=telemetry,
                relational=relational,
                patterns=patterns,
                state_events=state_events,
                disruption=disruption,
            )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def analyze_system(self, snapshot: PopulationSnapshot, now: int | None = None) -> SystemAnalysis:
        with self._lock:
            return analyze_system(
                snapshot,
                self._now(now),
                self.decisions.adaptive_interval(snapshot),
                self.telemetry,
            )

    def report(self, snapshot: PopulationSnapshot, now: int | None = None) -> SessionReport:
        with self._lock:
            return self.aggregator.report(snapshot, now)

    def reset_session(self, now: int | None = None) -> None:
        """Start a new session: empty log, fresh baselines and caches.

        Without `now` the new session opens at the next recorded pass.
        """
        with self._lock:
            self.log.reset(session_start=now)
            self.state_analyzer.reset()
            self.aggregator.invalidate()
            logger.info(f"Session reset (start {now if now is not None else 'at next pass'})")

    def predict_impact(self, disruption: DisruptiveEvent, snapshot: PopulationSnapshot) -> DisruptionImpact:
        """Expected effect of `disruption` on the snapshot, without applying it."""
        with self._lock:
            return predict_disruption_impact(disruption, snapshot)

    def _record_disruption(
        self, disruption: DisruptiveEvent, snapshot: PopulationSnapshot, now: int
    ) -> None:
        strength = clamp_percent(disruption.intensity * 10)
        impact = predict_disruption_impact(disruption, snapshot)
        self.log.record(
            AnalysisEvent(
                event_id=new_event_id("disruption"),
                timestamp=now,
                category=EventCategory.DISRUPTION_TRIGGER,
                severity=severity_for_strength(strength),
                strength=strength,
                description=f"Disruption triggered: {disruption.name}",
                data={**disruption.to_dict(), "predicted_impact": impact.to_dict()},
            ),
            now,
        )
