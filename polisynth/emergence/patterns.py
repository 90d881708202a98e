"""Pattern classification over fields and emergent-structure detection over agents.

Patterns detected:
1. Resonance: synchronization, interference, amplification between field pairs
2. Intelligence clusters: anchored groups of capable, strongly tied agents
3. Emergent behaviors: collective problem solving, adaptive learning,
   creative synthesis

Classification is deterministic for fixed inputs; the only randomness in
this pipeline is the field phase drawn upstream.
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from polisynth.analysis.scoring import clamp_percent, mean
from polisynth.emergence.events import (
    AnalysisEvent,
    EventCategory,
    new_event_id,
    severity_for_strength,
)
from polisynth.emergence.fields import ResonanceField
from polisynth.emergence.grouping import group_around_seeds, group_by_relationship
from polisynth.simulation.entities import Agent, BehaviorType, PopulationSnapshot

logger = logging.getLogger(__name__)

SYNC_FREQUENCY_DELTA = 0.1
SYNC_PHASE_DELTA = math.pi / 4
INTERFERENCE_FREQUENCY_DELTA = 0.05
INTERFERENCE_PHASE_DELTA = 3 * math.pi / 4
HARMONIC_TOLERANCE = 0.1

BEHAVIOR_GROUP_DISTANCE = 120.0
BEHAVIOR_GROUP_TIE = 60.0
CREATIVE_TIE = 70.0


class EmergenceType(enum.Enum):
    HIERARCHICAL = "hierarchical"
    DISTRIBUTED = "distributed"
    COLLECTIVE = "collective"
    SWARM = "swarm"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class ResonancePattern:
    """A classified relationship between two fields."""

    category: EventCategory
    strength: float
    frequency: float
    field_ids: tuple[str, str]
    description: str


@dataclass(frozen=True)
class IntelligenceCluster:
    """An anchor agent plus the capable agents strongly tied to it."""

    cluster_id: str
    anchor_id: str
    members: tuple[str, ...]
    intelligence_level: float
    emergence_type: EmergenceType
    capabilities: tuple[str, ...]
    evolution_stage: int


@dataclass(frozen=True)
class EmergentBehavior:
    """A collective behavior recognized in a group of agents."""

    behavior_id: str
    category: EventCategory
    description: str
    complexity: float
    participants: tuple[str, ...]
    stability: float


@dataclass
class PatternReport:
    """Everything one pattern pass produced."""

    patterns: list[ResonancePattern] = field(default_factory=list)
    clusters: list[IntelligenceCluster] = field(default_factory=list)
    behaviors: list[EmergentBehavior] = field(default_factory=list)
    events: list[AnalysisEvent] = field(default_factory=list)


def emergence_type_for(members: Sequence[Agent]) -> EmergenceType:
    """Classify a cluster by its behavior-type composition.

    Checked in priority order, each against its own population fraction.
    """
    size = len(members)
    counts = {bt: 0 for bt in BehaviorType}
    for agent in members:
        counts[agent.behavior_type] += 1

    if counts[BehaviorType.LEADER] > size * 0.3:
        return EmergenceType.HIERARCHICAL
    if counts[BehaviorType.INNOVATOR] > size * 0.4:
        return EmergenceType.DISTRIBUTED
    if counts[BehaviorType.MEDIATOR] > size * 0.3:
        return EmergenceType.COLLECTIVE
    if size > 10:
        return EmergenceType.SWARM
    return EmergenceType.HYBRID


def cluster_capabilities(intelligence_level: float, member_count: int) -> list[str]:
    capabilities = []
    if intelligence_level > 80:
        capabilities += ["complex problem solving", "disruptive innovation"]
    if intelligence_level > 70:
        capabilities += ["adaptive learning", "pattern recognition"]
    if member_count > 8:
        capabilities += ["parallel processing", "distributed intelligence"]
    if intelligence_level > 75 and member_count > 5:
        capabilities += ["collective metacognition", "advanced self-organization"]
    return capabilities


def evolution_stage(intelligence_level: float, member_count: int) -> int:
    return min(5, int(intelligence_level // 20) + member_count // 5)


class PatternDetector:
    """Classifies field pairs and detects emergent structure in a snapshot."""

    def __init__(
        self,
        resonance_cap: int = 20,
        behavior_cap: int = 15,
        cluster_relationship: float = 60.0,
        cluster_distance: float = 150.0,
        cluster_min_members: int = 3,
        cluster_min_intelligence: float = 65.0,
    ):
        self.resonance_cap = resonance_cap
        self.behavior_cap = behavior_cap
        self.cluster_relationship = cluster_relationship
        self.cluster_distance = cluster_distance
        self.cluster_min_members = cluster_min_members
        self.cluster_min_intelligence = cluster_min_intelligence

    def detect(
        self, snapshot: PopulationSnapshot, fields: Sequence[ResonanceField], now: int
    ) -> PatternReport:
        """Run all detectors. Returns the structures found and their events."""
        report = PatternReport(
            patterns=self.classify_fields(fields),
            clusters=self.detect_clusters(snapshot),
            behaviors=self.detect_behaviors(snapshot),
        )
        report.events = (
            [self._pattern_event(p, now) for p in report.patterns]
            + [self._cluster_event(c, now) for c in report.clusters]
            + [self._behavior_event(b, now) for b in report.behaviors]
        )
        logger.debug(
            f"Pattern pass: {len(report.patterns)} resonance, {len(report.clusters)} clusters, "
            f"{len(report.behaviors)} behaviors"
        )
        return report

    # ------------------------------------------------------------------
    # Field pairs
    # ------------------------------------------------------------------

    def classify_fields(self, fields: Sequence[ResonanceField]) -> list[ResonancePattern]:
        """Classify every unordered field pair; one pair may match several rules."""
        patterns: list[ResonancePattern] = []

        for i in range(len(fields)):
            for j in range(i + 1, len(fields)):
                patterns.extend(self.classify_pair(fields[i], fields[j]))

        # Stable sort keeps generation order among equal strengths
        patterns.sort(key=lambda p: p.strength, reverse=True)
        return patterns[: self.resonance_cap]

    def classify_pair(self, f1: ResonanceField, f2: ResonanceField) -> list[ResonancePattern]:
        patterns = []
        freq_diff = abs(f1.frequency - f2.frequency)
        phase_diff = abs(f1.phase - f2.phase)
        ids = (f1.field_id, f2.field_id)
        kinds = f"{f1.kind.value} and {f2.kind.value}"

        if freq_diff < SYNC_FREQUENCY_DELTA and phase_diff < SYNC_PHASE_DELTA:
            patterns.append(
                ResonancePattern(
                    category=EventCategory.SYNCHRONIZATION,
                    strength=clamp_percent(100 - (freq_diff * 500 + phase_diff * 50)),
                    frequency=(f1.frequency + f2.frequency) / 2,
                    field_ids=ids,
                    description=f"Synchronization between {kinds} fields",
                )
            )

        if freq_diff < INTERFERENCE_FREQUENCY_DELTA and phase_diff > INTERFERENCE_PHASE_DELTA:
            patterns.append(
                ResonancePattern(
                    category=EventCategory.INTERFERENCE,
                    strength=clamp_percent(80 - freq_diff * 1000),
                    frequency=(f1.frequency + f2.frequency) / 2,
                    field_ids=ids,
                    description=f"Destructive interference between {kinds} fields",
                )
            )

        if f2.frequency != 0:
            ratio = f1.frequency / f2.frequency
            if abs(ratio - round(ratio)) < HARMONIC_TOLERANCE:
                patterns.append(
                    ResonancePattern(
                        category=EventCategory.AMPLIFICATION,
                        strength=clamp_percent((f1.amplitude + f2.amplitude) / 2),
                        frequency=max(f1.frequency, f2.frequency),
                        field_ids=ids,
                        description=f"Harmonic amplification between {kinds} fields",
                    )
                )

        return patterns

    # ------------------------------------------------------------------
    # Intelligence clusters
    # ------------------------------------------------------------------

    def detect_clusters(self, snapshot: PopulationSnapshot) -> list[IntelligenceCluster]:
        """Anchor-centered clusters forming a partition of the population."""
        assigned: set[str] = set()
        clusters: list[IntelligenceCluster] = []

        for anchor in snapshot.agents:
            if anchor.agent_id in assigned:
                continue

            connected = [
                other
                for other in snapshot.agents
                if other.agent_id != anchor.agent_id
                and other.agent_id not in assigned
                and anchor.relationship_to(other.agent_id) > self.cluster_relationship
                and anchor.distance_to(other) < self.cluster_distance
                and (other.innovation > 70 or other.cooperation > 75)
            ]
            if len(connected) < self.cluster_min_members:
                continue

            members = [anchor] + connected
            level = (mean(a.innovation for a in members) + mean(a.cooperation for a in members)) / 2
            if level <= self.cluster_min_intelligence:
                continue

            clusters.append(
                IntelligenceCluster(
                    cluster_id=new_event_id("cluster"),
                    anchor_id=anchor.agent_id,
                    members=tuple(a.agent_id for a in members),
                    intelligence_level=clamp_percent(level),
                    emergence_type=emergence_type_for(members),
                    capabilities=tuple(cluster_capabilities(level, len(members))),
                    evolution_stage=evolution_stage(level, len(members)),
                )
            )
            assigned.update(a.agent_id for a in members)

        clusters.sort(key=lambda c: c.intelligence_level, reverse=True)
        return clusters

    # ------------------------------------------------------------------
    # Emergent behaviors
    # ------------------------------------------------------------------

    def detect_behaviors(self, snapshot: PopulationSnapshot) -> list[EmergentBehavior]:
        behaviors = (
            self._detect_problem_solving(snapshot)
            + self._detect_adaptive_learning(snapshot)
            + self._detect_creative_synthesis(snapshot)
        )
        behaviors.sort(key=lambda b: b.complexity, reverse=True)
        return behaviors[: self.behavior_cap]

    def _detect_problem_solving(self, snapshot: PopulationSnapshot) -> list[EmergentBehavior]:
        """Cooperative groups holding together under stress."""
        stressed = [a for a in snapshot.agents if a.stress > 50]
        if len(stressed) <= 5:
            return []

        behaviors = []
        for group in group_around_seeds(stressed, BEHAVIOR_GROUP_DISTANCE, BEHAVIOR_GROUP_TIE):
            if len(group) < 4:
                continue
            avg_cooperation = mean(a.cooperation for a in group)
            if avg_cooperation > 70:
                behaviors.append(
                    EmergentBehavior(
                        behavior_id=new_event_id("problem-solving"),
                        category=EventCategory.PROBLEM_SOLVING,
                        description=f"Collective stress resolution by {len(group)} agents",
                        complexity=clamp_percent(avg_cooperation + len(group) * 5),
                        participants=tuple(a.agent_id for a in group),
                        stability=clamp_percent(avg_cooperation),
                    )
                )
        return behaviors

    def _detect_adaptive_learning(self, snapshot: PopulationSnapshot) -> list[EmergentBehavior]:
        adaptive = [a for a in snapshot.agents if a.adaptability > 75 and len(a.memories) > 10]
        if len(adaptive) <= 3:
            return []

        behaviors = []
        for group in group_around_seeds(adaptive, BEHAVIOR_GROUP_DISTANCE, BEHAVIOR_GROUP_TIE):
            if len(group) < 3:
                continue
            avg_adaptability = clamp_percent(mean(a.adaptability for a in group))
            behaviors.append(
                EmergentBehavior(
                    behavior_id=new_event_id("adaptive-learning"),
                    category=EventCategory.ADAPTIVE_LEARNING,
                    description=f"Collective adaptive learning by {len(group)} agents",
                    complexity=avg_adaptability,
                    participants=tuple(a.agent_id for a in group),
                    stability=avg_adaptability,
                )
            )
        return behaviors

    def _detect_creative_synthesis(self, snapshot: PopulationSnapshot) -> list[EmergentBehavior]:
        """Networks of top innovators linked by strong ties."""
        innovators = [
            a
            for a in snapshot.agents
            if a.behavior_type == BehaviorType.INNOVATOR and a.innovation > 80
        ]
        if len(innovators) <= 2:
            return []

        index = {a.agent_id: a for a in innovators}
        behaviors = []
        for ids in group_by_relationship(innovators, CREATIVE_TIE):
            if len(ids) < 3:
                continue
            network = [index[i] for i in sorted(ids)]
            avg_innovation = mean(a.innovation for a in network)
            behaviors.append(
                EmergentBehavior(
                    behavior_id=new_event_id("creative-synthesis"),
                    category=EventCategory.CREATIVE_SYNTHESIS,
                    description=f"Creative synthesis across a network of {len(network)} innovators",
                    complexity=clamp_percent(avg_innovation + len(network) * 3),
                    participants=tuple(a.agent_id for a in network),
                    stability=clamp_percent(avg_innovation),
                )
            )
        return behaviors

    # ------------------------------------------------------------------
    # Event conversion
    # ------------------------------------------------------------------

    def _pattern_event(self, pattern: ResonancePattern, now: int) -> AnalysisEvent:
        return AnalysisEvent(
            event_id=new_event_id(pattern.category.value),
            timestamp=now,
            category=pattern.category,
            severity=severity_for_strength(pattern.strength),
            strength=pattern.strength,
            affected_ids=pattern.field_ids,
            description=pattern.description,
            data={"frequency": pattern.frequency},
        )

    def _cluster_event(self, cluster: IntelligenceCluster, now: int) -> AnalysisEvent:
        return AnalysisEvent(
            event_id=cluster.cluster_id,
            timestamp=now,
            category=EventCategory.INTELLIGENCE_CLUSTER,
            severity=severity_for_strength(cluster.intelligence_level),
            strength=cluster.intelligence_level,
            affected_ids=cluster.members,
            description=(
                f"{cluster.emergence_type.value} intelligence cluster of "
                f"{len(cluster.members)} agents around {cluster.anchor_id}"
            ),
            data={
                "anchor_id": cluster.anchor_id,
                "emergence_type": cluster.emergence_type.value,
                "capabilities": list(cluster.capabilities),
                "evolution_stage": cluster.evolution_stage,
            },
        )

    def _behavior_event(self, behavior: EmergentBehavior, now: int) -> AnalysisEvent:
        return AnalysisEvent(
            event_id=behavior.behavior_id,
            timestamp=now,
            category=behavior.category,
            severity=severity_for_strength(behavior.complexity),
            strength=behavior.complexity,
            affected_ids=behavior.participants,
            description=behavior.description,
            data={"stability": behavior.stability},
        )


@dataclass(frozen=True)
class ResonanceMetrics:
    coherence_level: float = 0.0
    synchronization_index: float = 0.0
    interference_level: float = 0.0
    amplification_factor: float = 0.0
    cognitive_entropy: float = 0.0


def resonance_metrics(
    fields: Sequence[ResonanceField], patterns: Sequence[ResonancePattern]
) -> ResonanceMetrics:
    """Summary of the pattern mix for one pass."""
    by_category: dict[EventCategory, list[ResonancePattern]] = {}
    for pattern in patterns:
        by_category.setdefault(pattern.category, []).append(pattern)
    sync = by_category.get(EventCategory.SYNCHRONIZATION, [])
    interference = by_category.get(EventCategory.INTERFERENCE, [])
    amplification = by_category.get(EventCategory.AMPLIFICATION, [])
    denominator = max(1, len(patterns))

    unique_frequencies = {round(f.frequency, 1) for f in fields}

    return ResonanceMetrics(
        coherence_level=clamp_percent(len(sync) * 10),
        synchronization_index=clamp_percent(sum(p.strength for p in sync) / denominator),
        interference_level=clamp_percent(len(interference) * 15),
        amplification_factor=clamp_percent(sum(p.strength for p in amplification) / denominator),
        cognitive_entropy=clamp_percent(len(unique_frequencies) / max(1, len(fields)) * 100),
    )


@dataclass(frozen=True)
class EmergenceMetrics:
    collective_iq: float = 0.0
    adaptability_index: float = 0.0
    innovation_potential: float = 0.0
    learning_rate: float = 0.0
    problem_solving_capacity: float = 0.0


def emergence_metrics(
    snapshot: PopulationSnapshot,
    clusters: Sequence[IntelligenceCluster],
    behaviors: Sequence[EmergentBehavior],
) -> EmergenceMetrics:
    agents = snapshot.agents
    innovative = sum(1 for a in agents if a.innovation > 75)
    learning = sum(1 for b in behaviors if b.category == EventCategory.ADAPTIVE_LEARNING)
    solving = sum(1 for b in behaviors if b.category == EventCategory.PROBLEM_SOLVING)

    return EmergenceMetrics(
        collective_iq=clamp_percent(mean(c.intelligence_level for c in clusters)),
        adaptability_index=clamp_percent(mean(a.adaptability for a in agents)),
        innovation_potential=clamp_percent(innovative / len(agents) * 100) if agents else 0.0,
        learning_rate=clamp_percent(learning * 10),
        problem_solving_capacity=clamp_percent(solving * 15),
    )


def global_intelligence(
    snapshot: PopulationSnapshot,
    clusters: Sequence[IntelligenceCluster],
    behaviors: Sequence[EmergentBehavior],
) -> float:
    """Population-wide capability plus bonuses for detected structure."""
    agents = snapshot.agents
    base = 0.0
    if agents:
        base = (
            mean(a.innovation for a in agents)
            + mean(a.cooperation for a in agents)
            + mean(a.adaptability for a in agents)
        ) / 3
    return clamp_percent(base + len(clusters) * 5 + len(behaviors) * 3)
