"""System-state analysis: coalition formation, stress shifts, innovation
surges, anomalies against moving baselines, and a frequency-based
prediction of the next event category.

Results are cached per (generation, population size) for a short TTL so a
host polling faster than the simulation advances does not duplicate events.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from polisynth.analysis.scoring import clamp_percent, mean
from polisynth.emergence.events import AnalysisEvent, EventCategory, Severity, new_event_id
from polisynth.emergence.grouping import group_center
from polisynth.simulation.entities import Agent, BehaviorType, Coalition, PopulationSnapshot

logger = logging.getLogger(__name__)

BASELINE_DECAY = 0.9
PREDICTION_THRESHOLD = 0.3
HIGH_CONFIDENCE_PREDICTION = 0.7
INNOVATOR_TIE = 60.0


@dataclass(frozen=True)
class StateAnalysis:
    """Events from one state-analysis pass.

    `from_cache` is True when the events were already returned by an earlier
    call and must not be recorded again.
    """

    events: tuple[AnalysisEvent, ...]
    computed_at: int
    from_cache: bool = False


def leadership_strength(coalition: Coalition, index: dict[str, Agent]) -> float:
    """Mean of the leader's influence and the members' average trust."""
    leader = index.get(coalition.leader_id)
    if leader is None or not coalition.members:
        return 0.0
    member_trust = sum(index[m].trust for m in coalition.members if m in index) / coalition.size
    return (leader.effective_influence + member_trust) / 2


def territorial_overlap(
    coalition: Coalition, coalitions: Sequence[Coalition], index: dict[str, Agent]
) -> float:
    """Fraction of other coalitions whose territory circle intersects this one."""
    members = [index[m] for m in sorted(coalition.members) if m in index]
    if not members:
        return 0.0
    cx, cy = group_center(members)
    radius = math.sqrt(len(members)) * 40

    overlapping = 0
    for other in coalitions:
        if other.coalition_id == coalition.coalition_id:
            continue
        others = [index[m] for m in sorted(other.members) if m in index]
        if not others:
            continue
        ox, oy = group_center(others)
        if math.hypot(cx - ox, cy - oy) < radius + math.sqrt(len(others)) * 40:
            overlapping += 1

    return overlapping / max(1, len(coalitions) - 1)


def innovator_network_density(innovators: Sequence[Agent]) -> float:
    """Share of innovator pairs linked by a strong tie."""
    n = len(innovators)
    if n < 2:
        return 0.0
    links = sum(
        1
        for i in range(n)
        for j in range(i + 1, n)
        if innovators[i].relationship_to(innovators[j].agent_id) > INNOVATOR_TIE
    )
    return links / (n * (n - 1) / 2)


class SystemStateAnalyzer:
    """Stateful detectors over successive snapshots.

    Args:
        cache_ttl_ms: How long a result is reused for the same
            (generation, population size)
        anomaly_threshold: Deviation from baseline that counts as an anomaly
        recent_coalition_window_ms: Age below which a coalition counts as new
    """

    def __init__(
        self,
        cache_ttl_ms: int = 5000,
        anomaly_threshold: float = 30.0,
        recent_coalition_window_ms: int = 10_000,
    ):
        self.cache_ttl_ms = cache_ttl_ms
        self.anomaly_threshold = anomaly_threshold
        self.recent_coalition_window_ms = recent_coalition_window_ms
        self.baselines: dict[str, float] = {}
        self.prediction_counts: Counter[str] = Counter()
        self._cache: dict[tuple[int, int], StateAnalysis] = {}

    def reset(self) -> None:
        self.baselines.clear()
        self.prediction_counts.clear()
        self._cache.clear()

    def analyze(
        self, snapshot: PopulationSnapshot, now: int, recent_events: Sequence[AnalysisEvent] = ()
    ) -> StateAnalysis:
        key = (snapshot.generation, snapshot.population)
        cached = self._cache.get(key)
        if cached is not None and now < cached.computed_at + self.cache_ttl_ms:
            return StateAnalysis(events=cached.events, computed_at=cached.computed_at, from_cache=True)

        events: list[AnalysisEvent] = []
        if snapshot.agents:
            events += self.coalition_events(snapshot, now)
            events += self.behavior_shift_events(snapshot, now)
            events += self.innovation_events(snapshot, now)
            events += self.anomaly_events(snapshot, now)

        prediction = self.prediction_event(snapshot, now, recent_events)
        if prediction is not None:
            events.append(prediction)

        result = StateAnalysis(events=tuple(events), computed_at=now)
        self._cache = {k: v for k, v in self._cache.items() if now < v.computed_at + self.cache_ttl_ms}
        self._cache[key] = result
        logger.debug(f"State analysis at {now}: {len(events)} events")
        return result

    def coalition_events(self, snapshot: PopulationSnapshot, now: int) -> list[AnalysisEvent]:
        index = snapshot.agent_index()
        events = []
        for coalition in snapshot.coalitions:
            if now - coalition.created >= self.recent_coalition_window_ms:
                continue

            recommendations = []
            if coalition.cohesion < 50:
                recommendations.append("Watch for fragmentation: mediation recommended")
            if coalition.size > 20:
                recommendations.append("Large coalition: analyze emerging subgroups")
            if territorial_overlap(coalition, snapshot.coalitions, index) > 0.7:
                recommendations.append("Strong territorial overlap: potential conflict or merger")

            events.append(
                AnalysisEvent(
                    event_id=new_event_id(f"coalition-{coalition.coalition_id}"),
                    timestamp=now,
                    category=EventCategory.COALITION_FORMATION,
                    severity=Severity.HIGH if coalition.size > 10 else Severity.MEDIUM,
                    strength=clamp_percent(coalition.cohesion),
                    affected_ids=tuple(sorted(coalition.members)),
                    description=f'Coalition "{coalition.name}" formed with {coalition.size} members',
                    data={
                        "cohesion": coalition.cohesion,
                        "member_count": coalition.size,
                        "leadership_strength": leadership_strength(coalition, index),
                        "impact": {
                            "short_term": (
                                "Local stabilization and stronger internal ties"
                                if coalition.size > 8
                                else "Tactical micro-alliances"
                            ),
                            "medium_term": (
                                "Territorial expansion and influence over neighbors"
                                if coalition.cohesion > 75
                                else "Internal consolidation"
                            ),
                            "long_term": (
                                "Possible dominant social superstructure"
                                if coalition.size > 15 and coalition.cohesion > 80
                                else "Functional specialization or fragmentation"
                            ),
                        },
                        "recommendations": recommendations,
                    },
                )
            )
        return events

    def behavior_shift_events(self, snapshot: PopulationSnapshot, now: int) -> list[AnalysisEvent]:
        avg_stress = snapshot.mean_stress
        if avg_stress <= 60:
            return []

        stressed = [a.agent_id for a in snapshot.agents if a.stress > 70]
        return [
            AnalysisEvent(
                event_id=new_event_id("stress-spike"),
                timestamp=now,
                category=EventCategory.BEHAVIOR_SHIFT,
                severity=Severity.CRITICAL if avg_stress > 80 else Severity.HIGH,
                strength=clamp_percent(avg_stress),
                affected_ids=tuple(stressed),
                description=f"Collective stress spike ({avg_stress:.1f}%)",
                data={
                    "average_stress": avg_stress,
                    "affected_count": len(stressed),
                    "recommendations": [
                        "Identify primary stress sources",
                        "Activate mediation mechanisms",
                        "Monitor vulnerable coalitions",
                    ],
                },
            )
        ]

    def innovation_events(self, snapshot: PopulationSnapshot, now: int) -> list[AnalysisEvent]:
        innovators = [a for a in snapshot.agents if a.behavior_type == BehaviorType.INNOVATOR]
        avg_innovation = mean(a.innovation for a in innovators)
        if len(innovators) <= 5 or avg_innovation <= 85:
            return []

        return [
            AnalysisEvent(
                event_id=new_event_id("innovation-surge"),
                timestamp=now,
                category=EventCategory.INNOVATION_EMERGENCE,
                severity=Severity.HIGH,
                strength=clamp_percent(avg_innovation),
                affected_ids=tuple(a.agent_id for a in innovators),
                description=f"Innovation cluster emerging ({len(innovators)} active innovators)",
                data={
                    "innovation_level": avg_innovation,
                    "innovator_count": len(innovators),
                    "network_density": innovator_network_density(innovators),
                },
            )
        ]

    def anomaly_events(self, snapshot: PopulationSnapshot, now: int) -> list[AnalysisEvent]:
        """Compare current means against exponentially weighted baselines."""
        events = []
        readings = {
            "stress": (snapshot.mean_stress, lambda a: a.stress),
            "innovation": (snapshot.mean_innovation, lambda a: a.innovation),
        }
        for metric, (current, value_of) in readings.items():
            baseline = self.baselines.get(metric, current)
            self.baselines[metric] = baseline * BASELINE_DECAY + current * (1 - BASELINE_DECAY)

            deviation = current - baseline
            if abs(deviation) <= self.anomaly_threshold:
                continue

            affected = tuple(
                a.agent_id
                for a in snapshot.agents
                if abs(value_of(a) - baseline) > self.anomaly_threshold
            )
            events.append(
                AnalysisEvent(
                    event_id=new_event_id(f"anomaly-{metric}"),
                    timestamp=now,
                    category=EventCategory.ANOMALY_DETECTED,
                    severity=Severity.HIGH if deviation > 0 else Severity.MEDIUM,
                    strength=clamp_percent(abs(deviation)),
                    affected_ids=affected,
                    description=f"{metric.capitalize()} anomaly: {current:.1f}% vs baseline {baseline:.1f}%",
                    data={"metric": metric, "current": current, "baseline": baseline},
                )
            )
        return events

    def prediction_event(
        self, snapshot: PopulationSnapshot, now: int, recent_events: Sequence[AnalysisEvent]
    ) -> AnalysisEvent | None:
        """Predict the most frequent recent category when it dominates.

        Earlier forecasts are ignored. The forecast is logged under
        PREDICTION with the predicted category in `data`, so it never counts
        as an observed event of that category.
        """
        observed = [e for e in recent_events if e.category != EventCategory.PREDICTION]
        if not observed:
            return None

        counts = Counter(e.category for e in observed)
        category, count = counts.most_common(1)[0]
        probability = count / len(observed)
        self.prediction_counts[category.value] += 1
        if probability <= PREDICTION_THRESHOLD:
            return None

        return AnalysisEvent(
            event_id=new_event_id("prediction"),
            timestamp=now,
            category=EventCategory.PREDICTION,
            severity=Severity.HIGH if probability > HIGH_CONFIDENCE_PREDICTION else Severity.MEDIUM,
            strength=clamp_percent(probability * 100),
            description=f"Prediction: {category.value} ({probability * 100:.1f}% probability)",
            data={
                "predicted_category": category.value,
                "prediction_probability": probability,
                "impact": self._impact_of(category, snapshot),
            },
            probability=probability,
        )

    @staticmethod
    def _impact_of(category: EventCategory, snapshot: PopulationSnapshot) -> str:
        if category == EventCategory.COALITION_FORMATION:
            return "Strong social consolidation" if snapshot.coalition_count > 5 else "Local reinforcement"
        if category == EventCategory.BEHAVIOR_SHIFT:
            return "Significant behavioral changes"
        if category == EventCategory.INNOVATION_EMERGENCE:
            return "Accelerating systemic transformation"
        return "Moderate impact expected"
