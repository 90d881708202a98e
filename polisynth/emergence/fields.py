"""Oscillatory field signatures attached to derived groups.

Frequency and amplitude are fixed functions of each group's attribute
averages. Phase is the only random component and comes from the injected
random source.
"""

from __future__ import annotations

import enum
import math
import random
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from polisynth.analysis.scoring import clamp_percent, mean
from polisynth.emergence.grouping import group_by_proximity, group_center
from polisynth.simulation.entities import Agent, BehaviorType, PopulationSnapshot


class FieldKind(enum.Enum):
    COGNITIVE = "cognitive"
    EMOTIONAL = "emotional"
    BEHAVIORAL = "behavioral"
    SOCIAL = "social"


@dataclass(frozen=True)
class ResonanceField:
    """Synthesized oscillatory signature of one group."""

    field_id: str
    kind: FieldKind
    center: tuple[float, float]
    frequency: float  # Hz
    amplitude: float  # 0-100
    phase: float  # [0, 2π)
    stability: float  # 0-100
    participants: tuple[str, ...] = ()


class FieldSynthesizer:
    """Builds the per-pass set of fields from a snapshot.

    Field sources:
    1. Cognitive: innovators grouped by proximity, 3+ members
    2. Emotional: high-trust agents grouped by proximity, 4+ members
    3. Behavioral: highly cooperative agents grouped by proximity, 3+ members
    4. Social: coalitions with 5+ members
    """

    def __init__(
        self,
        innovator_distance: float = 150.0,
        trust_distance: float = 120.0,
        cooperation_distance: float = 130.0,
        rng: random.Random | None = None,
    ):
        self.innovator_distance = innovator_distance
        self.trust_distance = trust_distance
        self.cooperation_distance = cooperation_distance
        self._rng = rng or random.Random()

    def synthesize(self, snapshot: PopulationSnapshot) -> list[ResonanceField]:
        index = snapshot.agent_index()
        fields: list[ResonanceField] = []

        innovators = [a for a in snapshot.agents if a.behavior_type == BehaviorType.INNOVATOR]
        for ids in group_by_proximity(innovators, self.innovator_distance):
            if len(ids) >= 3:
                members = [index[i] for i in ids]
                avg = mean(a.innovation for a in members)
                fields.append(self._field(FieldKind.COGNITIVE, members, 0.8 + (avg / 100) * 0.4, avg))

        trusting = [a for a in snapshot.agents if a.trust > 70]
        for ids in group_by_proximity(trusting, self.trust_distance):
            if len(ids) >= 4:
                members = [index[i] for i in ids]
                avg = mean(a.trust for a in members)
                fields.append(self._field(FieldKind.EMOTIONAL, members, 0.3 + (avg / 100) * 0.5, avg))

        cooperative = [a for a in snapshot.agents if a.cooperation > 75]
        for ids in group_by_proximity(cooperative, self.cooperation_distance):
            if len(ids) >= 3:
                members = [index[i] for i in ids]
                avg = mean(a.cooperation for a in members)
                fields.append(
                    self._field(FieldKind.BEHAVIORAL, members, 0.5 + (avg / 100) * 0.6, avg)
                )

        for coalition in snapshot.coalitions:
            if coalition.size < 5:
                continue
            members = [index[m] for m in sorted(coalition.members) if m in index]
            fields.append(
                ResonanceField(
                    field_id=f"social-{coalition.coalition_id}",
                    kind=FieldKind.SOCIAL,
                    center=group_center(members),
                    frequency=0.2 + (coalition.cohesion / 100) * 0.4,
                    amplitude=clamp_percent(coalition.cohesion),
                    phase=self._phase(),
                    stability=clamp_percent(coalition.cohesion),
                    participants=tuple(sorted(coalition.members)),
                )
            )

        return fields

    def _field(
        self, kind: FieldKind, members: Sequence[Agent], frequency: float, average: float
    ) -> ResonanceField:
        return ResonanceField(
            field_id=f"{kind.value}-{uuid.uuid4().hex[:8]}",
            kind=kind,
            center=group_center(members),
            frequency=frequency,
            amplitude=clamp_percent(average),
            phase=self._phase(),
            stability=clamp_percent(average),
            participants=tuple(sorted(a.agent_id for a in members)),
        )

    def _phase(self) -> float:
        return (self._rng.random() * 2 * math.pi) % (2 * math.pi)


def global_resonance(fields: Sequence[ResonanceField]) -> float:
    """Overall resonance: mean amplitude/stability plus a field-density bonus."""
    if not fields:
        return 0.0
    avg_amplitude = mean(f.amplitude for f in fields)
    avg_stability = mean(f.stability for f in fields)
    density = len(fields) / 10
    return clamp_percent((avg_amplitude + avg_stability) / 2 + density * 5)
