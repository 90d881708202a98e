"""Pairwise relational analysis over a population snapshot.

Computes the five relational scores reported to operators under their
"quantum" labels (entanglement, coherence, superposition, decoherence,
tunneling), together with derived visualization inputs: a sampled signal
array, the strongest mutual pairs, and a coarse 2D influence field.

The scores are defined over every ordered agent pair. Pairs with no stored
relationship contribute zero to the entanglement sum, so only stored
relationships are visited while the divisor stays n(n-1).
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field

from polisynth.analysis.scoring import clamp_percent, mean, population_variance
from polisynth.emergence.events import (
    AnalysisEvent,
    EventCategory,
    new_event_id,
    severity_for_strength,
)
from polisynth.simulation.entities import CORE_ATTRIBUTES, BehaviorType, PopulationSnapshot

logger = logging.getLogger(__name__)

STRONG_TIE = 60.0
DISTANT_TIE = 200.0
INCOMPATIBLE = 40.0
MUTUAL_TIE = 70.0
DEFAULT_COMPATIBILITY = 50.0

_L = BehaviorType.LEADER
_F = BehaviorType.FOLLOWER
_I = BehaviorType.INNOVATOR
_M = BehaviorType.MEDIATOR
_E = BehaviorType.EXPLORER

COMPATIBILITY: dict[BehaviorType, dict[BehaviorType, float]] = {
    _L: {_L: 25, _F: 85, _I: 65, _M: 75, _E: 55},
    _F: {_L: 85, _F: 70, _I: 50, _M: 80, _E: 60},
    _I: {_L: 65, _F: 50, _I: 80, _M: 70, _E: 90},
    _M: {_L: 75, _F: 80, _I: 70, _M: 85, _E: 65},
    _E: {_L: 55, _F: 60, _I: 90, _M: 65, _E: 75},
}


def behavior_compatibility(a: BehaviorType, b: BehaviorType) -> float:
    """Lookup in the 5x5 behavior compatibility table."""
    return COMPATIBILITY.get(a, {}).get(b, DEFAULT_COMPATIBILITY)


@dataclass(frozen=True)
class EntangledPair:
    """Two agents whose relationships toward each other are both strong."""

    first_id: str
    second_id: str
    strength: float


@dataclass
class RelationalMetrics:
    """Scores from one relational pass. All scalars are within [0, 100]."""

    entanglement: float = 0.0
    coherence: float = 100.0
    superposition: float = 0.0
    decoherence: float = 0.0
    tunneling: float = 0.0
    wave_function: list[float] = field(default_factory=list)
    entangled_pairs: list[EntangledPair] = field(default_factory=list)
    influence_field: list[list[float]] = field(default_factory=list)

    def scores(self) -> dict[str, float]:
        return {
            "entanglement": self.entanglement,
            "coherence": self.coherence,
            "superposition": self.superposition,
            "decoherence": self.decoherence,
            "tunneling": self.tunneling,
        }


class PairwiseRelationalAnalyzer:
    """Computes RelationalMetrics from a snapshot.

    Args:
        signal_resolution: Number of samples in the wave function
        pair_cap: Maximum entangled pairs kept
        grid_size: Side of the square influence grid
        world_size: (width, height) used to map positions onto the grid
        rng: Random source for event emission sampling
    """

    def __init__(
        self,
        signal_resolution: int = 50,
        pair_cap: int = 10,
        grid_size: int = 20,
        world_size: tuple[float, float] = (1600.0, 900.0),
        rng: random.Random | None = None,
    ):
        self.signal_resolution = signal_resolution
        self.pair_cap = pair_cap
        self.grid_size = grid_size
        self.world_size = world_size
        self._rng = rng or random.Random()

    def analyze(self, snapshot: PopulationSnapshot) -> RelationalMetrics:
        entanglement = self.entanglement(snapshot)
        coherence = self.coherence(snapshot)
        superposition = self.superposition(snapshot)
        metrics = RelationalMetrics(
            entanglement=entanglement,
            coherence=coherence,
            superposition=superposition,
            decoherence=self.decoherence(snapshot),
            tunneling=self.tunneling(snapshot),
            wave_function=self.wave_function(coherence, entanglement, superposition),
            entangled_pairs=self.entangled_pairs(snapshot),
            influence_field=self.influence_field(snapshot),
        )
        logger.debug(f"Relational pass over {snapshot.population} agents: {metrics.scores()}")
        return metrics

    def entanglement(self, snapshot: PopulationSnapshot) -> float:
        """Mean distance-discounted relationship strength over ordered pairs."""
        n = snapshot.population
        if n < 2:
            return 0.0

        index = snapshot.agent_index()
        total = 0.0
        for agent in snapshot.agents:
            for other_id, strength in agent.relationships.items():
                other = index.get(other_id)
                if other is None or other_id == agent.agent_id:
                    continue
                distance = agent.distance_to(other)
                total += (strength / 100) * (1 / (1 + distance / 100))

        return clamp_percent(total / (n * (n - 1)) * 100)

    def coherence(self, snapshot: PopulationSnapshot) -> float:
        """100 minus a tenth of the mean per-attribute variance."""
        if not snapshot.agents:
            return 100.0
        variances = [
            population_variance(getattr(a, attr) for a in snapshot.agents)
            for attr in CORE_ATTRIBUTES
        ]
        return clamp_percent(100 - mean(variances) / 10)

    def superposition(self, snapshot: PopulationSnapshot) -> float:
        """How balanced each agent's core attributes are, averaged."""
        if not snapshot.agents:
            return 0.0
        balances = []
        for agent in snapshot.agents:
            values = agent.core_attributes()
            balances.append(1 - (max(values) - min(values)) / 100)
        return clamp_percent(mean(balances) * 100)

    def decoherence(self, snapshot: PopulationSnapshot) -> float:
        disruption_load = sum(d.intensity for d in snapshot.active_disruptions)
        return clamp_percent(min(100.0, snapshot.mean_stress + disruption_load * 5))

    def tunneling(self, snapshot: PopulationSnapshot) -> float:
        """Share of strong ties that span long distances or incompatible types."""
        n = snapshot.population
        if n == 0:
            return 0.0

        index = snapshot.agent_index()
        improbable = 0
        for agent in snapshot.agents:
            for other_id, strength in agent.relationships.items():
                other = index.get(other_id)
                if other is None or other_id == agent.agent_id or strength <= STRONG_TIE:
                    continue
                compatibility = behavior_compatibility(agent.behavior_type, other.behavior_type)
                if agent.distance_to(other) > DISTANT_TIE or compatibility < INCOMPATIBLE:
                    improbable += 1

        return clamp_percent(min(100.0, improbable / n * 50))

    def wave_function(
        self, coherence: float, entanglement: float, superposition: float
    ) -> list[float]:
        """Three superposed harmonics weighted by the current scores."""
        samples = []
        for i in range(self.signal_resolution):
            x = (i / self.signal_resolution) * 2 * math.pi
            trust_wave = math.sin(x * 2) * (coherence / 100)
            cooperation_wave = math.cos(x * 3) * (entanglement / 100)
            innovation_wave = math.sin(x * 5) * (superposition / 100)
            samples.append((trust_wave + cooperation_wave + innovation_wave) / 3)
        return samples

    def entangled_pairs(self, snapshot: PopulationSnapshot) -> list[EntangledPair]:
        """Strongest unordered pairs whose ties both exceed the mutual threshold."""
        index = snapshot.agent_index()
        pairs = []
        for agent in snapshot.agents:
            for other_id, strength in agent.relationships.items():
                if other_id <= agent.agent_id or strength <= MUTUAL_TIE:
                    continue
                other = index.get(other_id)
                if other is None:
                    continue
                reverse = other.relationship_to(agent.agent_id)
                if reverse > MUTUAL_TIE:
                    pairs.append(EntangledPair(agent.agent_id, other_id, (strength + reverse) / 2))

        pairs.sort(key=lambda p: p.strength, reverse=True)
        return pairs[: self.pair_cap]

    def influence_field(self, snapshot: PopulationSnapshot) -> list[list[float]]:
        """Grid of summed, exponentially decaying agent influence (capped at 1)."""
        size = self.grid_size
        width, height = self.world_size
        grid = []
        for i in range(size):
            row = []
            for j in range(size):
                strength = 0.0
                for agent in snapshot.agents:
                    gx = (agent.x / width) * size
                    gy = (agent.y / height) * size
                    distance = math.hypot(i - gx, j - gy)
                    strength += (agent.effective_influence / 100) * math.exp(-distance / 5)
                row.append(min(1.0, strength))
            grid.append(row)
        return grid

    def relational_events(
        self, metrics: RelationalMetrics, snapshot: PopulationSnapshot, now: int
    ) -> list[AnalysisEvent]:
        """Threshold-gated events, each sampled with its own emission chance."""
        events = []

        if metrics.entanglement > 70 and self._rng.random() < 0.3:
            events.append(
                AnalysisEvent(
                    event_id=new_event_id("entanglement"),
                    timestamp=now,
                    category=EventCategory.ENTANGLEMENT_FORMATION,
                    severity=severity_for_strength(metrics.entanglement),
                    strength=metrics.entanglement,
                    affected_ids=tuple(
                        f"{p.first_id}-{p.second_id}" for p in metrics.entangled_pairs[:3]
                    ),
                    description="Strong mutual ties forming between distant groups",
                    data={"entanglement": metrics.entanglement},
                    probability=0.85,
                )
            )

        if metrics.coherence < 30 and self._rng.random() < 0.4:
            magnitude = 100 - metrics.coherence
            events.append(
                AnalysisEvent(
                    event_id=new_event_id("coherence"),
                    timestamp=now,
                    category=EventCategory.COHERENCE_COLLAPSE,
                    severity=severity_for_strength(magnitude),
                    strength=magnitude,
                    affected_ids=tuple(a.agent_id for a in snapshot.agents[:5]),
                    description="Collective coherence collapsed",
                    data={"coherence": metrics.coherence},
                    probability=0.75,
                )
            )

        if metrics.tunneling > 60 and self._rng.random() < 0.25:
            events.append(
                AnalysisEvent(
                    event_id=new_event_id("tunneling"),
                    timestamp=now,
                    category=EventCategory.QUANTUM_TUNNELING,
                    severity=severity_for_strength(metrics.tunneling),
                    strength=metrics.tunneling,
                    affected_ids=tuple(a.agent_id for a in snapshot.agents if a.stress > 50),
                    description="Improbable connections across distance or incompatibility",
                    data={"tunneling": metrics.tunneling},
                    probability=0.65,
                )
            )

        return events
