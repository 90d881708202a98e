"""Entities supplied by the host simulation: agents, coalitions, perturbations.

The analytics core only ever reads these. Positions and attributes evolve in
the external simulation loop; the core receives them bundled in a
PopulationSnapshot once per pass.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field

DEFAULT_STABILITY = 75.0
DEFAULT_INFLUENCE = 50.0
DEFAULT_ADAPTABILITY = 50.0

CORE_ATTRIBUTES = ("trust", "cooperation", "innovation", "energy")


class BehaviorType(enum.Enum):
    """Behavioral archetype of an agent."""

    LEADER = "leader"
    FOLLOWER = "follower"
    INNOVATOR = "innovator"
    MEDIATOR = "mediator"
    EXPLORER = "explorer"


class DisruptionType(enum.Enum):
    """Kind of perturbation injected into the simulation."""

    RESOURCE_SCARCITY = "resource_scarcity"
    ENVIRONMENTAL_CHANGE = "environmental_change"
    NEWCOMER_ARRIVAL = "newcomer_arrival"
    CONFLICT_TRIGGER = "conflict_trigger"
    INNOVATION_CATALYST = "innovation_catalyst"
    GOVERNANCE_CRISIS = "governance_crisis"


@dataclass
class Agent:
    """One simulated social entity.

    Attributes:
        agent_id: Unique identifier
        name: Display name
        x, y: Position in world coordinates
        trust, cooperation, innovation, energy: Core attributes (0-100)
        behavior_type: Behavioral archetype
        relationships: Directed strength (0-100) toward other agent ids
        stress_level: Optional stress (0-100), missing reads as 0
        influence: Optional influence (0-100), missing reads as 50
        adaptability_score: Optional adaptability (0-100), missing reads as 50
        coalition_id: Back-reference to the coalition, not owned
    """

    agent_id: str
    x: float
    y: float
    trust: float = 50.0
    cooperation: float = 50.0
    innovation: float = 50.0
    energy: float = 50.0
    behavior_type: BehaviorType = BehaviorType.FOLLOWER
    relationships: dict[str, float] = field(default_factory=dict)
    stress_level: float | None = None
    influence: float | None = None
    adaptability_score: float | None = None
    coalition_id: str | None = None
    name: str = ""
    age: int = 0
    memories: list[str] = field(default_factory=list)

    @property
    def stress(self) -> float:
        return self.stress_level or 0.0

    @property
    def effective_influence(self) -> float:
        return self.influence if self.influence is not None else DEFAULT_INFLUENCE

    @property
    def adaptability(self) -> float:
        if self.adaptability_score is None:
            return DEFAULT_ADAPTABILITY
        return self.adaptability_score

    def core_attributes(self) -> tuple[float, float, float, float]:
        """Trust, cooperation, innovation and energy, in that order."""
        return (self.trust, self.cooperation, self.innovation, self.energy)

    def relationship_to(self, other_id: str) -> float:
        """Directed relationship strength toward another agent (0 if none)."""
        return self.relationships.get(other_id, 0.0)

    def distance_to(self, other: Agent) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass
class Coalition:
    """A group of agents recognized by the host simulation.

    Attributes:
        coalition_id: Unique identifier
        name: Human-readable name
        members: Agent ids in the coalition
        leader_id: Agent id of the leader
        cohesion: Group stability (0-100)
        created: Creation timestamp (ms)
    """

    coalition_id: str
    name: str
    leader_id: str
    members: set[str] = field(default_factory=set)
    cohesion: float = 50.0
    created: int = 0
    goals: list[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        """Number of members in the coalition."""
        return len(self.members)


@dataclass
class SocialMetric:
    """One entry of the host simulation's aggregate metrics history."""

    timestamp: int
    trust_network: float = 0.0
    cooperation: float = 0.0
    innovation: float = 0.0
    governance: float = 0.0
    resilience: float = 0.0
    cultural_stability: float = 0.0


@dataclass(frozen=True)
class DisruptionEffects:
    """Per-attribute modifiers applied by the host while a disruption is active."""

    trust_modifier: float = 0.0
    energy_modifier: float = 0.0
    cooperation_modifier: float = 0.0
    innovation_modifier: float = 0.0


@dataclass
class DisruptiveEvent:
    """A parameterized perturbation proposed for injection.

    Created by the decision engine; once returned the caller owns it.
    """

    event_id: str
    kind: DisruptionType
    name: str
    description: str
    intensity: float
    duration: float
    effects: DisruptionEffects = field(default_factory=DisruptionEffects)
    template: str = ""
    intelligence_level: int = 0
    start_time: int = 0
    is_active: bool = True

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "event_id": self.event_id,
            "kind": self.kind.value,
            "name": self.name,
            "description": self.description,
            "intensity": self.intensity,
            "duration": self.duration,
            "effects": {
                "trust_modifier": self.effects.trust_modifier,
                "energy_modifier": self.effects.energy_modifier,
                "cooperation_modifier": self.effects.cooperation_modifier,
                "innovation_modifier": self.effects.innovation_modifier,
            },
            "template": self.template,
            "intelligence_level": self.intelligence_level,
            "start_time": self.start_time,
        }


@dataclass
class PopulationSnapshot:
    """Read-only view of the simulation handed to the core for one pass."""

    agents: list[Agent] = field(default_factory=list)
    coalitions: list[Coalition] = field(default_factory=list)
    active_disruptions: list[DisruptiveEvent] = field(default_factory=list)
    system_stability: float | None = None
    generation: int = 0
    global_knowledge: list[str] = field(default_factory=list)
    emergent_phenomena: list[str] = field(default_factory=list)
    metrics: list[SocialMetric] = field(default_factory=list)

    @property
    def population(self) -> int:
        return len(self.agents)

    @property
    def stability(self) -> float:
        """System stability, 75 when the host has not reported one."""
        if self.system_stability is None:
            return DEFAULT_STABILITY
        return self.system_stability

    @property
    def coalition_count(self) -> int:
        return len(self.coalitions)

    def mean_of(self, attribute: str) -> float:
        """Population mean of an agent attribute or property (0 when empty)."""
        if not self.agents:
            return 0.0
        return sum(getattr(a, attribute) for a in self.agents) / len(self.agents)

    @property
    def mean_stress(self) -> float:
        return self.mean_of("stress")

    @property
    def mean_innovation(self) -> float:
        return self.mean_of("innovation")

    @property
    def mean_cooperation(self) -> float:
        return self.mean_of("cooperation")

    def agent_index(self) -> dict[str, Agent]:
        """Map agent id to agent."""
        return {a.agent_id: a for a in self.agents}

    def fingerprint(self) -> tuple:
        """Cheap identity of the snapshot contents used for report caching."""
        return (
            self.generation,
            len(self.agents),
            len(self.coalitions),
            len(self.active_disruptions),
            self.system_stability,
            len(self.metrics),
            len(self.global_knowledge),
            len(self.emergent_phenomena),
        )
