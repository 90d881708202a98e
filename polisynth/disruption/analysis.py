"""Continuous system analysis read by the operator before a disruption.

Summarizes the stability trend, coalition dynamics and behavior mix of a
snapshot, lists emergent risks and opportunities, and phrases a prediction
of the next decision.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from polisynth.analysis.scoring import mean
from polisynth.emergence.metrics import TelemetryCollector
from polisynth.simulation.entities import PopulationSnapshot

_TREND_LABELS = {"increasing": "rising", "stable": "stable", "decreasing": "declining"}


@dataclass
class CoalitionDynamics:
    average_cohesion: float = 0.0
    large_coalitions: int = 0
    fragmentation_risk: str = "low"


@dataclass
class BehavioralPatterns:
    distribution: dict[str, int] = field(default_factory=dict)
    dominant_behavior: str | None = None
    diversity: int = 0


@dataclass
class SystemAnalysis:
    """Snapshot summary produced alongside each decision cycle."""

    timestamp: int
    stability_trend: str
    coalition_dynamics: CoalitionDynamics
    behavioral_patterns: BehavioralPatterns
    risks: list[str] = field(default_factory=list)
    opportunities: list[str] = field(default_factory=list)
    prediction: str = ""

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "stability_trend": self.stability_trend,
            "coalition_dynamics": {
                "average_cohesion": self.coalition_dynamics.average_cohesion,
                "large_coalitions": self.coalition_dynamics.large_coalitions,
                "fragmentation_risk": self.coalition_dynamics.fragmentation_risk,
            },
            "behavioral_patterns": {
                "distribution": dict(self.behavioral_patterns.distribution),
                "dominant_behavior": self.behavioral_patterns.dominant_behavior,
                "diversity": self.behavioral_patterns.diversity,
            },
            "risks": list(self.risks),
            "opportunities": list(self.opportunities),
            "prediction": self.prediction,
        }


def stability_trend(snapshot: PopulationSnapshot, telemetry: TelemetryCollector | None = None) -> str:
    """rising, stable or declining.

    Uses the telemetry history when it holds at least two samples, otherwise
    falls back to fixed stability thresholds.
    """
    if telemetry is not None and telemetry.sample_count >= 2:
        return _TREND_LABELS[telemetry.trend("stability")]

    stability = snapshot.stability
    if stability > 80:
        return "stable"
    if stability < 60:
        return "declining"
    return "rising"


def coalition_dynamics(snapshot: PopulationSnapshot) -> CoalitionDynamics:
    cohesion = mean((c.cohesion for c in snapshot.coalitions), default=0.0)
    if cohesion < 50:
        risk = "high"
    elif cohesion < 70:
        risk = "medium"
    else:
        risk = "low"
    return CoalitionDynamics(
        average_cohesion=cohesion,
        large_coalitions=sum(1 for c in snapshot.coalitions if c.size > 10),
        fragmentation_risk=risk,
    )


def behavioral_patterns(snapshot: PopulationSnapshot) -> BehavioralPatterns:
    counts = Counter(a.behavior_type.value for a in snapshot.agents)
    dominant = counts.most_common(1)[0][0] if counts else None
    return BehavioralPatterns(
        distribution=dict(counts),
        dominant_behavior=dominant,
        diversity=len(counts),
    )


def emergent_risks(snapshot: PopulationSnapshot) -> list[str]:
    risks = []
    if not snapshot.agents:
        return risks
    if snapshot.mean_stress > 60:
        risks.append("High collective stress")
    if sum(1 for c in snapshot.coalitions if c.cohesion < 40) > 1:
        risks.append("Coalition fragmentation")
    isolated = sum(1 for a in snapshot.agents if a.coalition_id is None)
    if isolated > snapshot.population * 0.3:
        risks.append("Growing social isolation")
    return risks


def opportunities(snapshot: PopulationSnapshot) -> list[str]:
    found = []
    if not snapshot.agents:
        return found
    if snapshot.mean_innovation > 75:
        found.append("High innovation potential")
    if sum(1 for c in snapshot.coalitions if c.cohesion > 80) > 2:
        found.append("Strong social structures")
    if snapshot.mean_cooperation > 70:
        found.append("Favorable collaborative climate")
    return found


def predict_next_event(analysis: SystemAnalysis, snapshot: PopulationSnapshot, interval_ms: float) -> str:
    """Operator-facing text describing what the engine is likely to do next."""
    seconds = round(interval_ms / 1000)
    stability = snapshot.stability

    if stability > 85 and snapshot.mean_stress < 20:
        return f"Resilience challenge recommended in {seconds}s: system is over-stable"
    if snapshot.mean_innovation > 80 and snapshot.coalition_count > 3:
        return "Optimal innovation catalyst detected: trigger imminent"
    if snapshot.coalition_count > 5 and stability < 60:
        return "Mediation intervention needed: fragmentation detected"
    if len(analysis.risks) > 2:
        return f"Stabilizing disruption in {seconds}s: {len(analysis.risks)} risks detected"
    if len(analysis.opportunities) > 2:
        return f"Growth catalyst in {seconds}s: {len(analysis.opportunities)} opportunities"
    if analysis.coalition_dynamics.fragmentation_risk == "high":
        return f"Urgent mediation in {seconds}s: high fragmentation risk"
    return f"System in equilibrium: next analysis in {seconds}s"


def analyze_system(
    snapshot: PopulationSnapshot,
    now: int,
    interval_ms: float,
    telemetry: TelemetryCollector | None = None,
) -> SystemAnalysis:
    """Build the full analysis for one decision cycle.

    Args:
        snapshot: Population snapshot
        now: Current time (ms)
        interval_ms: Current adaptive interval, quoted in the prediction
        telemetry: Optional history used for the stability trend
    """
    analysis = SystemAnalysis(
        timestamp=now,
        stability_trend=stability_trend(snapshot, telemetry),
        coalition_dynamics=coalition_dynamics(snapshot),
        behavioral_patterns=behavioral_patterns(snapshot),
        risks=emergent_risks(snapshot),
        opportunities=opportunities(snapshot),
    )
    analysis.prediction = predict_next_event(analysis, snapshot, interval_ms)
    return analysis
