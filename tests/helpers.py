"""Shared test doubles for the polisynth test suites.

Dataclass-based doubles and small builders, not unittest.mock.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from polisynth.emergence.events import AnalysisEvent, EventCategory, Severity
from polisynth.simulation.entities import Agent, BehaviorType, Coalition, PopulationSnapshot


@dataclass
class ScriptedRandom:
    """Random source replaying a fixed sequence of `random()` values (cycled)."""

    values: list[float] = field(default_factory=lambda: [0.0])
    calls: int = 0

    def random(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


@dataclass
class FixedClock:
    """Millisecond clock that only moves when told to."""

    now: int = 1_000_000

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


def make_agent(
    agent_id: str,
    x: float = 0.0,
    y: float = 0.0,
    behavior: BehaviorType = BehaviorType.FOLLOWER,
    **kwargs,
) -> Agent:
    """Agent with neutral defaults; keyword arguments override any field."""
    return Agent(agent_id=agent_id, x=x, y=y, behavior_type=behavior, **kwargs)


def make_coalition(coalition_id: str, members, cohesion: float = 70.0, created: int = 0, leader_id=None) -> Coalition:
    members = set(members)
    return Coalition(
        coalition_id=coalition_id,
        name=coalition_id.title(),
        leader_id=leader_id or sorted(members)[0],
        members=members,
        cohesion=cohesion,
        created=created,
    )


def make_event(
    timestamp: int,
    category: EventCategory = EventCategory.SYNCHRONIZATION,
    severity: Severity = Severity.MEDIUM,
    event_id: str | None = None,
    description: str = "test event",
) -> AnalysisEvent:
    return AnalysisEvent(
        event_id=event_id or f"evt-{category.value}-{timestamp}",
        timestamp=timestamp,
        category=category,
        severity=severity,
        strength=50.0,
        description=description,
    )


def uniform_snapshot(
    count: int,
    stress: float = 10.0,
    innovation: float = 65.0,
    coalitions: int = 0,
    stability: float | None = 90.0,
    spacing: float = 500.0,
) -> PopulationSnapshot:
    """Widely spaced agents sharing the same attributes."""
    agents = [
        make_agent(
            f"a{i:02d}",
            x=(i % 3) * spacing,
            y=(i // 3) * spacing,
            innovation=innovation,
            stress_level=stress,
        )
        for i in range(count)
    ]
    groups = [
        make_coalition(f"c{k}", [agents[k % count].agent_id] if count else ["ghost"])
        for k in range(coalitions)
    ]
    return PopulationSnapshot(agents=agents, coalitions=groups, system_stability=stability)
