"""Tests for resonance pattern classification and emergent-structure detection."""

from __future__ import annotations

import pytest

from polisynth.emergence.events import EventCategory
from polisynth.emergence.fields import FieldKind, ResonanceField
from polisynth.emergence.patterns import (
    EmergenceType,
    PatternDetector,
    cluster_capabilities,
    emergence_metrics,
    emergence_type_for,
    evolution_stage,
    global_intelligence,
    resonance_metrics,
)
from polisynth.simulation.entities import BehaviorType, PopulationSnapshot
from tests.helpers import make_agent


def field(field_id: str, frequency: float, phase: float, amplitude: float = 60.0) -> ResonanceField:
    return ResonanceField(field_id, FieldKind.COGNITIVE, (0, 0), frequency, amplitude, phase, 50.0)


def cluster_population(anchor_id="a0", members=4, behavior=BehaviorType.FOLLOWER, x0=0.0):
    """An anchor strongly tied to close, capable neighbors."""
    ids = [f"{anchor_id}-m{i}" for i in range(members)]
    anchor = make_agent(
        anchor_id, x0, 0, behavior, innovation=80, cooperation=80,
        relationships={mid: 80 for mid in ids},
    )
    others = [
        make_agent(mid, x0 + 10 * (i + 1), 0, behavior, innovation=80, cooperation=80)
        for i, mid in enumerate(ids)
    ]
    return [anchor] + others


class TestClassifyPair:
    """Test synchronization, interference and amplification rules."""

    def test_synchronization_and_harmonic(self):
        """Close frequencies in phase should synchronize and amplify."""
        patterns = PatternDetector().classify_pair(field("f1", 1.0, 0.0), field("f2", 1.05, 0.1))
        categories = [p.category for p in patterns]
        assert categories == [EventCategory.SYNCHRONIZATION, EventCategory.AMPLIFICATION]
        assert patterns[0].strength == pytest.approx(70.0)
        assert patterns[0].field_ids == ("f1", "f2")

    def test_interference(self):
        """Close frequencies out of phase should interfere without synchronizing."""
        patterns = PatternDetector().classify_pair(field("f1", 1.0, 0.0), field("f2", 1.02, 3.0))
        categories = [p.category for p in patterns]
        assert EventCategory.INTERFERENCE in categories
        assert EventCategory.SYNCHRONIZATION not in categories
        interference = patterns[categories.index(EventCategory.INTERFERENCE)]
        assert interference.strength == pytest.approx(60.0)

    def test_unrelated_frequencies_yield_nothing(self):
        """Unrelated frequencies and phases should yield no pattern."""
        assert PatternDetector().classify_pair(field("f1", 1.0, 0.0), field("f2", 1.5, 2.0)) == []

    def test_zero_frequency_skips_harmonic_check(self):
        """A zero frequency should not divide in the harmonic check."""
        patterns = PatternDetector().classify_pair(field("f1", 0.5, 0.0), field("f2", 0.0, 2.0))
        assert patterns == []

    def test_strengths_bounded(self):
        """Pattern strengths should stay within 0-100."""
        for f2 in (field("f2", 1.0, 0.0, amplitude=100), field("f2", 1.09, 0.7)):
            for p in PatternDetector().classify_pair(field("f1", 1.0, 0.0, amplitude=100), f2):
                assert 0 <= p.strength <= 100


class TestClassifyFields:
    """Test pattern caps and ordering."""

    def test_capped_at_resonance_limit(self):
        """classify_fields() should stop at the resonance cap."""
        fields = [field(f"f{i}", 1.0, 0.0) for i in range(10)]
        patterns = PatternDetector(resonance_cap=20).classify_fields(fields)
        assert len(patterns) == 20

    def test_sorted_by_strength(self):
        """Patterns should be sorted by descending strength."""
        fields = [field("a", 1.0, 0.0), field("b", 1.05, 0.5), field("c", 1.0, 0.05)]
        strengths = [p.strength for p in PatternDetector().classify_fields(fields)]
        assert strengths == sorted(strengths, reverse=True)

    def test_deterministic_for_fixed_inputs(self):
        """Classification should be deterministic for fixed inputs."""
        fields = [field(f"f{i}", 1.0 + i * 0.03, i * 0.2) for i in range(6)]
        detector = PatternDetector()
        first = [(p.category, p.strength, p.field_ids) for p in detector.classify_fields(fields)]
        second = [(p.category, p.strength, p.field_ids) for p in detector.classify_fields(fields)]
        assert first == second


class TestClusters:
    """Test anchor-centered intelligence clusters."""

    def test_basic_cluster(self):
        """A strongly tied anchor with capable neighbors should form one cluster."""
        snapshot = PopulationSnapshot(agents=cluster_population())
        clusters = PatternDetector().detect_clusters(snapshot)

        assert len(clusters) == 1
        cluster = clusters[0]
        assert cluster.anchor_id == "a0"
        assert len(cluster.members) == 5
        assert cluster.intelligence_level == pytest.approx(80.0)
        assert cluster.emergence_type == EmergenceType.HYBRID
        assert cluster.evolution_stage == 5

    def test_too_few_connections(self):
        """An anchor with too few strong ties should not form a cluster."""
        snapshot = PopulationSnapshot(agents=cluster_population(members=2))
        assert PatternDetector().detect_clusters(snapshot) == []

    def test_low_intelligence_rejected(self):
        """Clusters below the intelligence threshold should be rejected."""
        agents = cluster_population()
        for a in agents:
            a.innovation = 72
            a.cooperation = 50
        assert PatternDetector().detect_clusters(PopulationSnapshot(agents=agents)) == []

    def test_clusters_partition_agents(self):
        """An agent claimed by one cluster is never part of another."""
        agents = cluster_population()
        rival = make_agent(
            "b0", 15, 5, innovation=80, cooperation=80,
            relationships={a.agent_id: 90 for a in agents},
        )
        snapshot = PopulationSnapshot(agents=agents + [rival])
        clusters = PatternDetector().detect_clusters(snapshot)

        seen: set[str] = set()
        for cluster in clusters:
            assert not (set(cluster.members) & seen)
            seen |= set(cluster.members)

    def test_two_separate_clusters(self):
        """Distant anchors should form separate clusters."""
        agents = cluster_population("a0") + cluster_population("b0", x0=1000)
        clusters = PatternDetector().detect_clusters(PopulationSnapshot(agents=agents))
        assert sorted(c.anchor_id for c in clusters) == ["a0", "b0"]


class TestClassification:
    """Test emergence type, capabilities and evolution stage."""

    def test_emergence_type_priority(self):
        """Two leaders should make a group hierarchical before innovators make it distributed."""
        leaders = [make_agent(f"l{i}", behavior=BehaviorType.LEADER) for i in range(2)]
        innovators = [make_agent(f"i{i}", behavior=BehaviorType.INNOVATOR) for i in range(3)]
        assert emergence_type_for(leaders + innovators) == EmergenceType.HIERARCHICAL
        assert emergence_type_for(innovators) == EmergenceType.DISTRIBUTED

    def test_swarm_for_large_mixed_groups(self):
        """Large groups without a dominant type should be swarms."""
        members = [make_agent(f"f{i}") for i in range(11)]
        assert emergence_type_for(members) == EmergenceType.SWARM

    def test_capabilities(self):
        """Capabilities should accumulate with intelligence and size."""
        assert cluster_capabilities(85, 9) == [
            "complex problem solving",
            "disruptive innovation",
            "adaptive learning",
            "pattern recognition",
            "parallel processing",
            "distributed intelligence",
            "collective metacognition",
            "advanced self-organization",
        ]
        assert cluster_capabilities(60, 3) == []

    def test_evolution_stage_capped(self):
        """Evolution stage should grow with intelligence and size up to 5."""
        assert evolution_stage(99, 40) == 5
        assert evolution_stage(45, 4) == 2


class TestBehaviors:
    """Test emergent-behavior detectors."""

    def test_problem_solving_under_stress(self):
        """A stressed cooperative group should show problem solving."""
        ids = [f"s{i}" for i in range(1, 6)]
        seed = make_agent("s0", 0, 0, cooperation=80, stress_level=70, relationships={i: 80 for i in ids})
        others = [make_agent(i, 10 * (n + 1), 0, cooperation=80, stress_level=70) for n, i in enumerate(ids)]
        behaviors = PatternDetector().detect_behaviors(PopulationSnapshot(agents=[seed] + others))

        assert [b.category for b in behaviors] == [EventCategory.PROBLEM_SOLVING]
        assert behaviors[0].complexity == 100.0
        assert len(behaviors[0].participants) == 6

    def test_adaptive_learning(self):
        """Adaptable agents with rich memories should show adaptive learning."""
        ids = [f"l{i}" for i in range(1, 4)]
        memories = [f"m{i}" for i in range(11)]
        seed = make_agent("l0", 0, 0, adaptability_score=80, memories=memories,
                          relationships={i: 70 for i in ids})
        others = [make_agent(i, 10, 10, adaptability_score=90, memories=memories) for i in ids]
        behaviors = PatternDetector().detect_behaviors(PopulationSnapshot(agents=[seed] + others))

        assert [b.category for b in behaviors] == [EventCategory.ADAPTIVE_LEARNING]
        assert behaviors[0].complexity == pytest.approx(87.5)

    def test_creative_synthesis(self):
        """A chain of strong innovators should show creative synthesis."""
        agents = [
            make_agent("i0", 0, 0, BehaviorType.INNOVATOR, innovation=90, relationships={"i1": 80}),
            make_agent("i1", 500, 0, BehaviorType.INNOVATOR, innovation=90, relationships={"i2": 80}),
            make_agent("i2", 900, 0, BehaviorType.INNOVATOR, innovation=90),
        ]
        behaviors = PatternDetector().detect_behaviors(PopulationSnapshot(agents=agents))
        assert [b.category for b in behaviors] == [EventCategory.CREATIVE_SYNTHESIS]
        assert behaviors[0].complexity == pytest.approx(99.0)

    def test_behavior_cap(self):
        """Detected behaviors should stop at the behavior cap."""
        agents = []
        for g in range(20):
            ids = [f"g{g}-{i}" for i in range(1, 4)]
            agents.append(make_agent(f"g{g}-0", g * 1000, 0, BehaviorType.INNOVATOR, innovation=95,
                                     relationships={ids[0]: 90}))
            agents.append(make_agent(ids[0], g * 1000, 0, BehaviorType.INNOVATOR, innovation=95,
                                     relationships={ids[1]: 90}))
            agents.append(make_agent(ids[1], g * 1000, 0, BehaviorType.INNOVATOR, innovation=95))
        behaviors = PatternDetector(behavior_cap=15).detect_behaviors(PopulationSnapshot(agents=agents))
        assert len(behaviors) == 15


class TestDetect:
    """Test the combined pattern pass."""

    def test_events_mirror_detections(self):
        """detect() should emit one event per pattern, cluster and behavior."""
        snapshot = PopulationSnapshot(agents=cluster_population())
        fields = [field("f1", 1.0, 0.0), field("f2", 1.05, 0.1)]
        report = PatternDetector().detect(snapshot, fields, now=5000)

        assert len(report.events) == len(report.patterns) + len(report.clusters) + len(report.behaviors)
        assert all(e.timestamp == 5000 for e in report.events)
        assert any(e.category == EventCategory.INTELLIGENCE_CLUSTER for e in report.events)

    def test_empty_snapshot(self, empty_snapshot):
        """An empty snapshot should produce no events."""
        report = PatternDetector().detect(empty_snapshot, [], now=0)
        assert report.events == []


class TestSummaryMetrics:
    """Test resonance, emergence and global intelligence summaries."""

    def test_resonance_metrics(self):
        """Resonance metrics should reflect field count and phase spread."""
        fields = [field("f1", 1.0, 0.0), field("f2", 1.02, 0.1)]
        patterns = PatternDetector().classify_fields(fields)
        metrics = resonance_metrics(fields, patterns)
        assert metrics.coherence_level == 10
        assert 0 <= metrics.synchronization_index <= 100
        assert metrics.cognitive_entropy == pytest.approx(50.0)

    def test_emergence_metrics_empty(self, empty_snapshot):
        """An empty population should score zero emergence."""
        metrics = emergence_metrics(empty_snapshot, [], [])
        assert metrics.collective_iq == 0
        assert metrics.innovation_potential == 0

    def test_global_intelligence_bonus(self, identical_snapshot):
        """Without clusters or behaviors global intelligence should be the attribute mean."""
        base = global_intelligence(identical_snapshot, [], [])
        # innovation 60, cooperation 60, adaptability default 50
        assert base == pytest.approx((60 + 60 + 50) / 3)
