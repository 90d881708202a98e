"""Partition agents into proximity- or relationship-connected groups.

All traversals use an explicit queue or stack with a visited set, so depth
does not grow with population size. Groups of one agent are dropped.
"""

from __future__ import annotations

import math
from collections import defaultdict, deque
from collections.abc import Iterable, Iterator, Sequence

from polisynth.simulation.entities import Agent


class SpatialIndex:
    """Uniform grid over agent positions.

    With `cell_size` equal to the query radius, every agent strictly closer
    than the radius lies in the 3x3 block of cells around the query point.
    """

    def __init__(self, agents: Iterable[Agent], cell_size: float):
        if cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self.cell_size = cell_size
        self._cells: dict[tuple[int, int], list[Agent]] = defaultdict(list)
        for agent in agents:
            self._cells[self._cell_of(agent.x, agent.y)].append(agent)

    def _cell_of(self, x: float, y: float) -> tuple[int, int]:
        return (math.floor(x / self.cell_size), math.floor(y / self.cell_size))

    def candidates(self, agent: Agent) -> Iterator[Agent]:
        """Agents in the cells adjacent to `agent` (including its own cell)."""
        cx, cy = self._cell_of(agent.x, agent.y)
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                yield from self._cells.get((cx + dx, cy + dy), ())

    def within(self, agent: Agent, radius: float) -> list[Agent]:
        """Other agents strictly closer than `radius` (radius <= cell size)."""
        return [
            other
            for other in self.candidates(agent)
            if other.agent_id != agent.agent_id and agent.distance_to(other) < radius
        ]


def group_by_proximity(agents: Sequence[Agent], max_distance: float) -> list[set[str]]:
    """Connected components of the "closer than max_distance" graph.

    Args:
        agents: Pre-filtered agents to partition
        max_distance: Edge threshold (strict)

    Returns:
        Disjoint sets of agent ids, each with at least two members
    """
    if max_distance <= 0 or len(agents) < 2:
        return []

    index = SpatialIndex(agents, max_distance)
    visited: set[str] = set()
    groups: list[set[str]] = []

    for seed in agents:
        if seed.agent_id in visited:
            continue
        visited.add(seed.agent_id)
        component = {seed.agent_id}
        queue = deque([seed])

        while queue:
            current = queue.popleft()
            for neighbor in index.within(current, max_distance):
                if neighbor.agent_id in visited:
                    continue
                visited.add(neighbor.agent_id)
                component.add(neighbor.agent_id)
                queue.append(neighbor)

        if len(component) > 1:
            groups.append(component)

    return groups


def group_by_relationship(agents: Sequence[Agent], min_strength: float) -> list[set[str]]:
    """Groups reachable along directed relationships stronger than `min_strength`.

    Each unvisited agent seeds a depth-first walk that follows
    `current.relationships[other] > min_strength` toward unvisited agents in
    the input set.
    """
    by_id = {a.agent_id: a for a in agents}
    visited: set[str] = set()
    groups: list[set[str]] = []

    for seed in agents:
        if seed.agent_id in visited:
            continue
        visited.add(seed.agent_id)
        component = {seed.agent_id}
        stack = [seed]

        while stack:
            current = stack.pop()
            for other_id, strength in current.relationships.items():
                if strength <= min_strength or other_id in visited or other_id not in by_id:
                    continue
                visited.add(other_id)
                component.add(other_id)
                stack.append(by_id[other_id])

        if len(component) > 1:
            groups.append(component)

    return groups


def group_around_seeds(
    agents: Sequence[Agent], max_distance: float, min_strength: float
) -> list[list[Agent]]:
    """Single-hop groups anchored on each unprocessed seed.

    A member joins the seed's group when it is closer than `max_distance` to
    the seed and the seed's relationship toward it exceeds `min_strength`.
    Members are not expanded further.
    """
    processed: set[str] = set()
    groups: list[list[Agent]] = []

    for seed in agents:
        if seed.agent_id in processed:
            continue
        processed.add(seed.agent_id)
        group = [seed]

        for other in agents:
            if other.agent_id in processed:
                continue
            if (
                seed.distance_to(other) < max_distance
                and seed.relationship_to(other.agent_id) > min_strength
            ):
                group.append(other)
                processed.add(other.agent_id)

        if len(group) > 1:
            groups.append(group)

    return groups


def group_center(agents: Sequence[Agent]) -> tuple[float, float]:
    """Centroid of the agents' positions ((0, 0) when empty)."""
    if not agents:
        return (0.0, 0.0)
    return (
        sum(a.x for a in agents) / len(agents),
        sum(a.y for a in agents) / len(agents),
    )
