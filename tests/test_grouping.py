"""Tests for proximity and relationship grouping."""

from __future__ import annotations

import pytest

from polisynth.emergence.grouping import (
    SpatialIndex,
    group_around_seeds,
    group_by_proximity,
    group_by_relationship,
    group_center,
)
from tests.helpers import make_agent


class TestSpatialIndex:
    """Test the uniform grid used by proximity grouping."""

    def test_rejects_non_positive_cell_size(self):
        """A non-positive cell size should raise ValueError."""
        with pytest.raises(ValueError):
            SpatialIndex([], 0)

    def test_within_is_strict_and_excludes_self(self):
        """within() should use a strict radius and skip the agent itself."""
        a = make_agent("a", 0, 0)
        b = make_agent("b", 10, 0)
        c = make_agent("c", 9, 0)
        index = SpatialIndex([a, b, c], 10)

        ids = {other.agent_id for other in index.within(a, 10)}
        assert ids == {"c"}


class TestGroupByProximity:
    """Test connected components over the distance graph."""

    def test_six_close_agents_form_one_group(self, identical_snapshot):
        """Six agents at one point should form a single group."""
        groups = group_by_proximity(identical_snapshot.agents, 10)
        assert len(groups) == 1
        assert len(groups[0]) == 6

    def test_chain_is_transitively_connected(self):
        """A-B and B-C close, A-C far: all three still end in one group."""
        agents = [make_agent("a", 0, 0), make_agent("b", 8, 0), make_agent("c", 16, 0)]
        groups = group_by_proximity(agents, 10)
        assert groups == [{"a", "b", "c"}]

    def test_distant_agents_form_separate_groups(self):
        """Well separated pairs should form separate groups."""
        agents = [
            make_agent("a1", 0, 0),
            make_agent("a2", 5, 0),
            make_agent("b1", 500, 500),
            make_agent("b2", 505, 500),
        ]
        groups = group_by_proximity(agents, 10)
        assert sorted(sorted(g) for g in groups) == [["a1", "a2"], ["b1", "b2"]]

    def test_singletons_are_dropped(self):
        """Agents with no close neighbor should not form groups."""
        agents = [make_agent("a", 0, 0), make_agent("b", 5, 0), make_agent("lonely", 900, 900)]
        groups = group_by_proximity(agents, 10)
        assert groups == [{"a", "b"}]

    def test_groups_are_disjoint(self):
        """No agent should belong to more than one group."""
        agents = [make_agent(f"a{i}", (i % 7) * 9, (i // 7) * 40) for i in range(35)]
        groups = group_by_proximity(agents, 10)
        seen: set[str] = set()
        for group in groups:
            assert not (group & seen)
            seen |= group

    def test_non_positive_distance_returns_empty(self, identical_snapshot):
        """A non-positive distance should yield no groups."""
        assert group_by_proximity(identical_snapshot.agents, 0) == []
        assert group_by_proximity(identical_snapshot.agents, -5) == []

    def test_fewer_than_two_agents_returns_empty(self):
        """Fewer than two agents should yield no groups."""
        assert group_by_proximity([], 10) == []
        assert group_by_proximity([make_agent("a")], 10) == []

    def test_no_agent_is_left_near_another_group(self):
        """Any two agents closer than the threshold share a group."""
        agents = [make_agent(f"a{i}", (i * 37) % 200, (i * 53) % 200) for i in range(40)]
        groups = group_by_proximity(agents, 25)
        group_of = {aid: n for n, g in enumerate(groups) for aid in g}
        for a in agents:
            for b in agents:
                if a is not b and a.distance_to(b) < 25:
                    assert group_of[a.agent_id] == group_of[b.agent_id]


class TestGroupByRelationship:
    """Test grouping along strong directed ties."""

    def test_follows_ties_above_threshold(self):
        """Ties at or above the threshold should connect agents transitively."""
        agents = [
            make_agent("a", relationships={"b": 80}),
            make_agent("b", relationships={"c": 75}),
            make_agent("c"),
            make_agent("d", relationships={"a": 50}),
        ]
        groups = group_by_relationship(agents, 70)
        assert groups == [{"a", "b", "c"}]

    def test_ignores_ties_to_agents_outside_input(self):
        """Ties to agents missing from the input should be ignored."""
        agents = [make_agent("a", relationships={"ghost": 95}), make_agent("b")]
        assert group_by_relationship(agents, 70) == []

    def test_deep_chain_does_not_recurse(self):
        """A long chain of ties should group without hitting the recursion limit."""
        n = 5000
        agents = [
            make_agent(f"n{i:05d}", relationships={f"n{i + 1:05d}": 90} if i < n - 1 else {})
            for i in range(n)
        ]
        groups = group_by_relationship(agents, 70)
        assert len(groups) == 1
        assert len(groups[0]) == n


class TestGroupAroundSeeds:
    """Test single-hop seed-anchored groups."""

    def test_members_must_be_close_and_tied_to_seed(self):
        """A member should be within range and strongly tied to the seed."""
        seed = make_agent("s", 0, 0, relationships={"near": 80, "far": 90, "weak": 30})
        near = make_agent("near", 50, 0)
        far = make_agent("far", 500, 0)
        weak = make_agent("weak", 10, 0)
        groups = group_around_seeds([seed, near, far, weak], 120, 60)
        assert [[a.agent_id for a in g] for g in groups] == [["s", "near"]]

    def test_members_are_not_expanded(self):
        """Only the seed's own ties should be followed."""
        seed = make_agent("s", 0, 0, relationships={"m": 80})
        member = make_agent("m", 50, 0, relationships={"x": 90})
        friend_of_member = make_agent("x", 100, 0)
        groups = group_around_seeds([seed, member, friend_of_member], 120, 60)
        assert [a.agent_id for a in groups[0]] == ["s", "m"]


def test_group_center():
    """Test group_center averages member positions."""
    assert group_center([]) == (0.0, 0.0)
    assert group_center([make_agent("a", 0, 0), make_agent("b", 10, 20)]) == (5.0, 10.0)
