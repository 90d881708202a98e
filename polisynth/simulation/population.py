"""Synthetic population generator used by the demo driver and tests.

Stands in for the external simulation loop: it builds a clustered
population with relationships and coalitions, and advances it one
generation at a time with small random drifts.
"""

from __future__ import annotations

import random
import uuid

from polisynth.analysis.scoring import clamp, clamp_percent, mean
from polisynth.simulation.entities import (
    Agent,
    BehaviorType,
    Coalition,
    DisruptiveEvent,
    PopulationSnapshot,
    SocialMetric,
)

# Behavior mix of a fresh population
BEHAVIOR_WEIGHTS = {
    BehaviorType.LEADER: 0.1,
    BehaviorType.FOLLOWER: 0.4,
    BehaviorType.INNOVATOR: 0.2,
    BehaviorType.MEDIATOR: 0.15,
    BehaviorType.EXPLORER: 0.15,
}

NAMES = ["Aria", "Boro", "Cale", "Dara", "Enzo", "Fira", "Gale", "Hiro", "Isla", "Juno"]


class PopulationGenerator:
    """Creates and evolves synthetic populations.

    Args:
        width, height: World size in world coordinates
        seed: Random seed for reproducible populations
    """

    def __init__(self, width: float = 1600.0, height: float = 900.0, seed: int | None = None):
        self.width = width
        self.height = height
        self._rng = random.Random(seed)

    def generate(self, count: int, now: int = 0, communities: int = 5) -> PopulationSnapshot:
        """Build a population of `count` agents grouped around community centers."""
        rng = self._rng
        centers = [
            (rng.uniform(100, self.width - 100), rng.uniform(100, self.height - 100))
            for _ in range(max(1, communities))
        ]
        behaviors = list(BEHAVIOR_WEIGHTS)
        weights = list(BEHAVIOR_WEIGHTS.values())

        agents = []
        for i in range(count):
            cx, cy = centers[i % len(centers)]
            behavior = rng.choices(behaviors, weights)[0]
            agents.append(
                Agent(
                    agent_id=f"agent-{i:04d}",
                    name=f"{NAMES[i % len(NAMES)]}-{i}",
                    x=clamp(rng.gauss(cx, 60), 0, self.width),
                    y=clamp(rng.gauss(cy, 60), 0, self.height),
                    trust=clamp_percent(rng.gauss(60, 15)),
                    cooperation=clamp_percent(rng.gauss(60, 15)),
                    innovation=clamp_percent(
                        rng.gauss(80 if behavior == BehaviorType.INNOVATOR else 55, 12)
                    ),
                    energy=clamp_percent(rng.gauss(70, 10)),
                    behavior_type=behavior,
                    stress_level=clamp_percent(rng.gauss(30, 15)),
                    influence=clamp_percent(rng.gauss(60 if behavior == BehaviorType.LEADER else 45, 10)),
                    adaptability_score=clamp_percent(rng.gauss(55, 15)),
                )
            )

        self._connect(agents, centers)
        coalitions = self._form_coalitions(agents, centers, now)
        return PopulationSnapshot(
            agents=agents,
            coalitions=coalitions,
            system_stability=75.0,
            metrics=[self._metric(agents, now)],
        )

    def _connect(self, agents: list[Agent], centers: list[tuple[float, float]]) -> None:
        """Give each agent ties toward members of its own community."""
        rng = self._rng
        for i, agent in enumerate(agents):
            community = [a for j, a in enumerate(agents) if j % len(centers) == i % len(centers) and a is not agent]
            for other in rng.sample(community, min(len(community), 6)):
                agent.relationships[other.agent_id] = clamp_percent(rng.gauss(65, 15))

    def _form_coalitions(
        self, agents: list[Agent], centers: list[tuple[float, float]], now: int
    ) -> list[Coalition]:
        rng = self._rng
        coalitions = []
        for k in range(len(centers)):
            members = [a for i, a in enumerate(agents) if i % len(centers) == k and rng.random() < 0.7]
            if len(members) < 3:
                continue
            leader = max(members, key=lambda a: a.effective_influence)
            coalition = Coalition(
                coalition_id=f"coalition-{uuid.UUID(int=rng.getrandbits(128)).hex[:8]}",
                name=f"Community {k + 1}",
                leader_id=leader.agent_id,
                members={a.agent_id for a in members},
                cohesion=clamp_percent(rng.gauss(65, 12)),
                created=now,
            )
            for member in members:
                member.coalition_id = coalition.coalition_id
            coalitions.append(coalition)
        return coalitions

    def _metric(self, agents: list[Agent], now: int) -> SocialMetric:
        return SocialMetric(
            timestamp=now,
            trust_network=mean(a.trust for a in agents),
            cooperation=mean(a.cooperation for a in agents),
            innovation=mean(a.innovation for a in agents),
        )

    def advance(
        self,
        snapshot: PopulationSnapshot,
        now: int,
        disruption: DisruptiveEvent | None = None,
    ) -> PopulationSnapshot:
        """Next generation: drift positions and attributes, apply a disruption.

        Returns a new snapshot; the input snapshot's agents are copied, not mutated.
        """
        rng = self._rng
        active = [
            d for d in snapshot.active_disruptions if now - d.start_time < d.duration * 1000
        ]
        if disruption is not None:
            active.append(disruption)

        agents = []
        for agent in snapshot.agents:
            trust, cooperation, innovation, energy = (
                v + rng.gauss(0, 2) for v in agent.core_attributes()
            )
            stress = agent.stress + rng.gauss(0, 3)
            for d in active:
                trust += d.effects.trust_modifier * d.intensity
                cooperation += d.effects.cooperation_modifier * d.intensity
                innovation += d.effects.innovation_modifier * d.intensity
                energy += d.effects.energy_modifier * d.intensity
                stress += d.intensity * 0.5
            agents.append(
                Agent(
                    agent_id=agent.agent_id,
                    name=agent.name,
                    x=clamp(agent.x + rng.gauss(0, 5), 0, self.width),
                    y=clamp(agent.y + rng.gauss(0, 5), 0, self.height),
                    trust=clamp_percent(trust),
                    cooperation=clamp_percent(cooperation),
                    innovation=clamp_percent(innovation),
                    energy=clamp_percent(energy),
                    behavior_type=agent.behavior_type,
                    relationships=dict(agent.relationships),
                    stress_level=clamp_percent(stress),
                    influence=agent.influence,
                    adaptability_score=agent.adaptability_score,
                    coalition_id=agent.coalition_id,
                    age=agent.age + 1,
                    memories=list(agent.memories),
                )
            )

        stability = clamp_percent(
            100 - mean(a.stress for a in agents) * 0.5 - len(active) * 5
        )
        return PopulationSnapshot(
            agents=agents,
            coalitions=snapshot.coalitions,
            active_disruptions=active,
            system_stability=stability,
            generation=snapshot.generation + 1,
            global_knowledge=list(snapshot.global_knowledge),
            emergent_phenomena=list(snapshot.emergent_phenomena),
            metrics=snapshot.metrics + [self._metric(agents, now)],
        )
