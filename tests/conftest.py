"""Shared test fixtures for the polisynth test suite."""

from __future__ import annotations

import pytest

from polisynth.config import AnalyticsConfig
from polisynth.simulation.entities import BehaviorType, PopulationSnapshot
from tests.helpers import FixedClock, make_agent, uniform_snapshot


@pytest.fixture
def config() -> AnalyticsConfig:
    """Default config with a fixed seed."""
    return AnalyticsConfig(seed=42)


@pytest.fixture
def clock() -> FixedClock:
    """Clock parked at t=1,000,000 ms."""
    return FixedClock()


@pytest.fixture
def empty_snapshot() -> PopulationSnapshot:
    return PopulationSnapshot()


@pytest.fixture
def stable_snapshot() -> PopulationSnapshot:
    """Stability 90, stress 10, innovation 65, four coalitions."""
    return uniform_snapshot(8, stress=10.0, innovation=65.0, coalitions=4, stability=90.0)


@pytest.fixture
def identical_snapshot() -> PopulationSnapshot:
    """Six identical agents within 10 units of each other, no relationships."""
    agents = [
        make_agent(
            f"twin{i}",
            x=float(i),
            y=float(i),
            trust=60.0,
            cooperation=60.0,
            innovation=60.0,
            energy=60.0,
            behavior=BehaviorType.MEDIATOR,
        )
        for i in range(6)
    ]
    return PopulationSnapshot(agents=agents)


@pytest.fixture
def colocated_snapshot() -> PopulationSnapshot:
    """Six agents on the same spot, trust 90, cooperation 85, innovation 40, energy 80."""
    agents = [
        make_agent(
            f"same{i}",
            x=400.0,
            y=300.0,
            trust=90.0,
            cooperation=85.0,
            innovation=40.0,
            energy=80.0,
        )
        for i in range(6)
    ]
    return PopulationSnapshot(agents=agents)
