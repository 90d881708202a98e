"""Perturbation templates and the telemetry rules that select them.

Each template scales its intensity, duration and effect modifiers linearly
with the operator's intelligence level (1-5). `predict_disruption_impact`
estimates the effect of a built disruption before the host applies it.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass

from polisynth.simulation.entities import (
    DisruptionEffects,
    DisruptionType,
    DisruptiveEvent,
    PopulationSnapshot,
)


class TemplateKind(enum.Enum):
    RESILIENCE_CHALLENGE = "resilience_challenge"
    INNOVATION_CATALYST = "innovation_catalyst"
    GOVERNANCE_INTERVENTION = "governance_intervention"
    ENVIRONMENTAL_STIMULATION = "environmental_stimulation"
    MANUAL_CATALYST = "manual_catalyst"


@dataclass(frozen=True)
class DecisionInputs:
    """The telemetry the decision engine reads from a snapshot."""

    stability: float
    mean_stress: float
    mean_innovation: float
    coalition_count: int
    active_disruptions: int

    @classmethod
    def from_snapshot(cls, snapshot: PopulationSnapshot) -> DecisionInputs:
        return cls(
            stability=snapshot.stability,
            mean_stress=snapshot.mean_stress,
            mean_innovation=snapshot.mean_innovation,
            coalition_count=snapshot.coalition_count,
            active_disruptions=len(snapshot.active_disruptions),
        )


def matching_template(inputs: DecisionInputs) -> TemplateKind | None:
    """First template whose trigger condition holds, in priority order."""
    if inputs.stability > 85 and inputs.mean_stress < 20:
        return TemplateKind.RESILIENCE_CHALLENGE
    if inputs.mean_innovation > 80 and inputs.coalition_count > 3:
        return TemplateKind.INNOVATION_CATALYST
    if inputs.coalition_count > 5 and inputs.stability < 60:
        return TemplateKind.GOVERNANCE_INTERVENTION
    if inputs.mean_stress < 10 and inputs.mean_innovation < 60:
        return TemplateKind.ENVIRONMENTAL_STIMULATION
    return None


def build_disruption(kind: TemplateKind, level: int, now: int) -> DisruptiveEvent:
    """Instantiate a template at the given intelligence level."""
    if kind == TemplateKind.RESILIENCE_CHALLENGE:
        event_type = DisruptionType.RESOURCE_SCARCITY
        name = f"Adaptive Resilience Challenge (L{level})"
        description = "Tests collective adaptation under a resource constraint"
        intensity = min(8, 4 + level)
        duration = 30 + level * 10
        effects = DisruptionEffects(
            trust_modifier=-0.1 - level * 0.05,
            energy_modifier=-0.3 - level * 0.1,
            cooperation_modifier=0.2 + level * 0.1,
            innovation_modifier=0.4 + level * 0.15,
        )
    elif kind == TemplateKind.INNOVATION_CATALYST:
        event_type = DisruptionType.INNOVATION_CATALYST
        name = f"Collective Innovation Catalyst (L{level})"
        description = "Amplifies the creative potential detected in the population"
        intensity = 6 + level
        duration = 40 + level * 5
        effects = DisruptionEffects(
            trust_modifier=0.2 + level * 0.05,
            energy_modifier=0.3 + level * 0.1,
            cooperation_modifier=0.4 + level * 0.1,
            innovation_modifier=0.6 + level * 0.2,
        )
    elif kind == TemplateKind.GOVERNANCE_INTERVENTION:
        event_type = DisruptionType.GOVERNANCE_CRISIS
        name = f"Mediation Intervention (L{level})"
        description = "Restructures power dynamics to restore cohesion across coalitions"
        intensity = 5 + level // 2
        duration = 50 + level * 8
        effects = DisruptionEffects(
            trust_modifier=-0.1 + level * 0.05,
            energy_modifier=0.1,
            cooperation_modifier=0.3 + level * 0.1,
            innovation_modifier=0.2 + level * 0.1,
        )
    elif kind == TemplateKind.ENVIRONMENTAL_STIMULATION:
        event_type = DisruptionType.ENVIRONMENTAL_CHANGE
        name = f"Adaptive Environmental Stimulation (L{level})"
        description = "Contextual change to stimulate evolution and adaptation"
        intensity = 4 + level
        duration = 35 + level * 7
        effects = DisruptionEffects(
            trust_modifier=0.1,
            energy_modifier=-0.2 + level * 0.05,
            cooperation_modifier=0.3 + level * 0.1,
            innovation_modifier=0.5 + level * 0.15,
        )
    else:
        event_type = DisruptionType.INNOVATION_CATALYST
        name = f"Manual Disruption (L{level})"
        description = "Operator-triggered catalyst with no matching context"
        intensity = 5 + level
        duration = 30 + level * 5
        effects = DisruptionEffects(
            trust_modifier=0.1,
            energy_modifier=0.2,
            cooperation_modifier=0.3,
            innovation_modifier=0.4,
        )

    return DisruptiveEvent(
        event_id=f"{kind.value}-{uuid.uuid4().hex[:8]}",
        kind=event_type,
        name=name,
        description=description,
        intensity=intensity,
        duration=duration,
        effects=effects,
        template=kind.value,
        intelligence_level=level,
        start_time=now,
    )


@dataclass(frozen=True)
class DisruptionImpact:
    """Expected population-wide effect of a candidate disruption.

    Attribute impacts are summed over the population; the host decides
    whether and how to apply them.
    """

    trust: float
    cooperation: float
    innovation: float
    coalition_stability: float
    emergence_probability: float

    def to_dict(self) -> dict:
        return {
            "trust": self.trust,
            "cooperation": self.cooperation,
            "innovation": self.innovation,
            "coalition_stability": self.coalition_stability,
            "emergence_probability": self.emergence_probability,
        }


def coalition_stability_impact(event: DisruptiveEvent, snapshot: PopulationSnapshot) -> float:
    """Signed shift in coalition stability the event is expected to cause."""
    if event.kind == DisruptionType.GOVERNANCE_CRISIS:
        return -20 * (event.intensity / 10)
    if event.kind == DisruptionType.INNOVATION_CATALYST:
        return 15 * (event.intensity / 10)
    if event.kind == DisruptionType.RESOURCE_SCARCITY:
        return 10.0 if snapshot.coalition_count > 3 else -10.0
    return 0.0


def emergence_probability(event: DisruptiveEvent, snapshot: PopulationSnapshot) -> float:
    """Chance the event provokes emergent behavior, in [0, 1]."""
    probability = event.intensity * 0.1
    if snapshot.coalition_count > 3:
        probability += 0.2
    if snapshot.generation > 10:
        probability += 0.15
    return min(1.0, probability)


def predict_disruption_impact(event: DisruptiveEvent, snapshot: PopulationSnapshot) -> DisruptionImpact:
    """Estimate what injecting `event` would do to the current population."""
    scale = (event.intensity / 10) * snapshot.population
    return DisruptionImpact(
        trust=event.effects.trust_modifier * scale,
        cooperation=event.effects.cooperation_modifier * scale,
        innovation=event.effects.innovation_modifier * scale,
        coalition_stability=coalition_stability_impact(event, snapshot),
        emergence_probability=emergence_probability(event, snapshot),
    )
