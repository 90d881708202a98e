"""Session-level aggregation of the event log into a report.

The report is a pure function of the log contents, the telemetry history
and the snapshot. Repeating a `report` call with the same arguments, without new log
activity in between, returns the same report object.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from polisynth.analysis.event_log import AnalysisEventLog
from polisynth.analysis.scoring import clamp, clamp_percent, mean
from polisynth.emergence.events import AnalysisEvent, EventCategory, Severity
from polisynth.emergence.metrics import TelemetryCollector
from polisynth.simulation.entities import DEFAULT_STABILITY, BehaviorType, PopulationSnapshot

logger = logging.getLogger(__name__)

VOLATILITY_WINDOW_MS = 30_000
_VOLATILE_CATEGORIES = (EventCategory.BEHAVIOR_SHIFT, EventCategory.ANOMALY_DETECTED)


@dataclass(frozen=True)
class VolatilityPeriod:
    start: int
    end: int
    cause: str


@dataclass(frozen=True)
class StabilityAnalysis:
    initial_stability: float
    final_stability: float
    volatility_periods: tuple[VolatilityPeriod, ...] = ()


@dataclass(frozen=True)
class CoalitionEvolution:
    formed: int = 0
    dissolved: int = 0
    merged: int = 0
    average_lifespan: float = 0.0  # seconds


@dataclass(frozen=True)
class BehavioralInsights:
    dominant_behaviors: tuple[str, ...] = ()
    adaptation_patterns: tuple[str, ...] = ()
    innovation_catalysts: tuple[str, ...] = ()


@dataclass(frozen=True)
class SessionReport:
    """Summary of one analysis session."""

    session_id: str
    start_time: int
    end_time: int
    total_events: int
    events_by_category: dict[str, int]
    events_by_severity: dict[str, int]
    key_findings: tuple[str, ...]
    emergent_patterns: tuple[str, ...]
    stability: StabilityAnalysis
    coalition_evolution: CoalitionEvolution
    behavioral_insights: BehavioralInsights
    recommendations: tuple[str, ...]
    telemetry_trends: dict[str, str] = field(default_factory=dict)
    rejected_events: int = 0
    data_quality: float = 0.0
    confidence_level: float = 60.0

    @property
    def duration_ms(self) -> int:
        return self.end_time - self.start_time

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict for the host application."""
        return {
            "session_id": self.session_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "total_events": self.total_events,
            "events_by_category": dict(self.events_by_category),
            "events_by_severity": dict(self.events_by_severity),
            "key_findings": list(self.key_findings),
            "emergent_patterns": list(self.emergent_patterns),
            "stability": {
                "initial_stability": self.stability.initial_stability,
                "final_stability": self.stability.final_stability,
                "volatility_periods": [
                    {"start": p.start, "end": p.end, "cause": p.cause}
                    for p in self.stability.volatility_periods
                ],
            },
            "coalition_evolution": {
                "formed": self.coalition_evolution.formed,
                "dissolved": self.coalition_evolution.dissolved,
                "merged": self.coalition_evolution.merged,
                "average_lifespan": self.coalition_evolution.average_lifespan,
            },
            "behavioral_insights": {
                "dominant_behaviors": list(self.behavioral_insights.dominant_behaviors),
                "adaptation_patterns": list(self.behavioral_insights.adaptation_patterns),
                "innovation_catalysts": list(self.behavioral_insights.innovation_catalysts),
            },
            "recommendations": list(self.recommendations),
            "telemetry_trends": dict(self.telemetry_trends),
            "rejected_events": self.rejected_events,
            "data_quality": self.data_quality,
            "confidence_level": self.confidence_level,
        }


def data_quality(snapshot: PopulationSnapshot, rejected: int, submitted: int) -> float:
    """Score in [0, 100] for how much the report can be trusted as input."""
    score = 100.0
    agents = snapshot.agents

    if not agents:
        score -= 50
    if not snapshot.metrics:
        score -= 20

    invalid = sum(
        1 for a in agents if any(v < 0 or v > 100 for v in a.core_attributes())
    )
    if invalid:
        score -= invalid / len(agents) * 30

    if submitted:
        score -= rejected / submitted * 20

    if snapshot.coalitions:
        score += 5
    if snapshot.global_knowledge:
        score += 5
    if snapshot.emergent_phenomena:
        score += 10

    return clamp_percent(score)


def confidence_level(
    snapshot: PopulationSnapshot, event_count: int, duration_ms: int, quality: float
) -> float:
    """Confidence in [60, 95], averaged with the data quality."""
    confidence = min(70, event_count * 3)

    if duration_ms > 60_000:
        confidence += 10
    if duration_ms > 300_000:
        confidence += 10

    if snapshot.population > 100:
        confidence += 5
    if snapshot.population > 200:
        confidence += 5

    if snapshot.coalitions:
        confidence += 5
    if snapshot.generation > 10:
        confidence += 5

    return clamp((confidence + quality) / 2, 60.0, 95.0)


class SessionAggregator:
    """Builds the session report from the event log.

    Args:
        log: Event log of the session
        telemetry: Optional telemetry history for trend reporting
    """

    def __init__(self, log: AnalysisEventLog, telemetry: TelemetryCollector | None = None):
        self.log = log
        self.telemetry = telemetry
        self._cache_key: tuple | None = None
        self._cached: SessionReport | None = None

    def invalidate(self) -> None:
        self._cache_key = None
        self._cached = None

    def report(self, snapshot: PopulationSnapshot, now: int | None = None) -> SessionReport:
        """Aggregate the session so far.

        Args:
            snapshot: Current population snapshot
            now: Report end time (ms); defaults to the log's clock

        Returns:
            SessionReport, the cached one when the call repeats the last one
            and nothing changed since
        """
        key = (
            now,
            self.log.version,
            self.log.session_start,
            id(snapshot),
            snapshot.fingerprint(),
            self.telemetry.sample_count if self.telemetry is not None else 0,
        )
        if self._cached is not None and key == self._cache_key:
            return self._cached

        end_time = self.log.clock() if now is None else now
        report = self._build(snapshot, end_time)
        self._cache_key = key
        self._cached = report
        logger.debug(f"Session report built: {report.total_events} events, quality {report.data_quality:.1f}")
        return report

    def _build(self, snapshot: PopulationSnapshot, end_time: int) -> SessionReport:
        events = self.log.all()
        start_time = self.log.session_start if self.log.session_start is not None else end_time
        by_category: dict[EventCategory, list[AnalysisEvent]] = {}
        for event in events:
            by_category.setdefault(event.category, []).append(event)

        quality = data_quality(snapshot, self.log.rejected_count, self.log.submitted_count)

        return SessionReport(
            session_id=f"session-{start_time}",
            start_time=start_time,
            end_time=end_time,
            total_events=len(events),
            events_by_category=dict(Counter(e.category.value for e in events)),
            events_by_severity=dict(Counter(e.severity.value for e in events)),
            key_findings=tuple(self._key_findings(events, by_category)),
            emergent_patterns=tuple(self._emergent_patterns(snapshot, by_category)),
            stability=StabilityAnalysis(
                initial_stability=DEFAULT_STABILITY,
                final_stability=snapshot.stability,
                volatility_periods=tuple(
                    VolatilityPeriod(e.timestamp, e.timestamp + VOLATILITY_WINDOW_MS, e.description)
                    for e in events
                    if e.category in _VOLATILE_CATEGORIES
                ),
            ),
            coalition_evolution=CoalitionEvolution(
                formed=len(by_category.get(EventCategory.COALITION_FORMATION, [])),
                average_lifespan=mean(
                    ((end_time - c.created) / 1000 for c in snapshot.coalitions), default=0.0
                ),
            ),
            behavioral_insights=self._behavioral_insights(snapshot, events),
            recommendations=tuple(self._recommendations(snapshot, by_category)),
            telemetry_trends=self.telemetry.trends() if self.telemetry is not None else {},
            rejected_events=self.log.rejected_count,
            data_quality=quality,
            confidence_level=confidence_level(
                snapshot, len(events), end_time - start_time, quality
            ),
        )

    def _key_findings(self, events, by_category) -> list[str]:
        findings = []
        critical = sum(1 for e in events if e.severity == Severity.CRITICAL)
        if critical:
            findings.append(f"{critical} critical events detected requiring attention")
        formations = len(by_category.get(EventCategory.COALITION_FORMATION, []))
        if formations > 5:
            findings.append(f"High coalition activity with {formations} formations")
        anomalies = len(by_category.get(EventCategory.ANOMALY_DETECTED, []))
        if anomalies:
            findings.append(f"{anomalies} significant anomalies detected")
        return findings

    def _emergent_patterns(self, snapshot: PopulationSnapshot, by_category) -> list[str]:
        patterns = []
        if mean((c.size for c in snapshot.coalitions), default=0.0) > 12:
            patterns.append("Trend toward mega-coalitions")

        leaders = sum(1 for a in snapshot.agents if a.behavior_type == BehaviorType.LEADER)
        followers = sum(1 for a in snapshot.agents if a.behavior_type == BehaviorType.FOLLOWER)
        if leaders and (followers == 0 or leaders / followers > 0.3):
            patterns.append("Distributed leadership is emerging")

        if len(by_category.get(EventCategory.ANOMALY_DETECTED, [])) > 2:
            patterns.append("High frequency of anomalous events")
        return patterns

    def _behavioral_insights(
        self, snapshot: PopulationSnapshot, events: list[AnalysisEvent]
    ) -> BehavioralInsights:
        counts = Counter(a.behavior_type.value for a in snapshot.agents)
        dominant = tuple(name for name, _ in counts.most_common(2))

        adaptation_events = [
            e
            for e in events
            if "adaptation" in e.description.lower()
            or "evolution" in e.description.lower()
            or e.category == EventCategory.ANOMALY_DETECTED
        ]
        adaptation = ()
        if len(adaptation_events) > 3:
            adaptation = ("Rapid adaptation to environmental change and anomalies",)

        top_innovators = sum(
            1
            for a in snapshot.agents
            if a.behavior_type == BehaviorType.INNOVATOR and a.innovation > 80
        )
        catalysts = ()
        if top_innovators:
            catalysts = (f"{top_innovators} high-level innovators identified",)

        return BehavioralInsights(
            dominant_behaviors=dominant,
            adaptation_patterns=adaptation,
            innovation_catalysts=catalysts,
        )

    def _recommendations(self, snapshot: PopulationSnapshot, by_category) -> list[str]:
        recommendations = []
        if snapshot.system_stability is not None and snapshot.system_stability < 60:
            recommendations.append("Prioritize stabilization: reduce stress factors")
        if snapshot.coalition_count < 3:
            recommendations.append("Encourage coalition formation to improve governance")
        if snapshot.agents and snapshot.mean_innovation > 75:
            recommendations.append("Capitalize on the high innovation potential")
        if by_category.get(EventCategory.ANOMALY_DETECTED):
            recommendations.append("Investigate detected anomalies to prevent instability")
        return recommendations
