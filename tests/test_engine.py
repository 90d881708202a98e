"""Tests for the AnalyticsEngine facade."""

from __future__ import annotations

import pytest

from polisynth.analysis.session import SessionReport
from polisynth.config import AnalyticsConfig
from polisynth.disruption.engine import DecisionState
from polisynth.emergence.events import EventCategory, Severity
from polisynth.engine import AnalyticsEngine, StepResult
from polisynth.simulation.entities import PopulationSnapshot
from tests.helpers import FixedClock, ScriptedRandom, make_agent, uniform_snapshot


@pytest.fixture
def engine(config, clock) -> AnalyticsEngine:
    return AnalyticsEngine(config, clock=clock)


@pytest.fixture
def stressed_snapshot() -> PopulationSnapshot:
    return uniform_snapshot(6, stress=75.0, stability=70.0)


class TestEngineConstruction:
    """Test engine initialization."""

    def test_constructor_creates_all_components(self, engine, config, clock):
        """The engine should build every analyzer with a lazily opened session."""
        assert engine.relational is not None
        assert engine.fields is not None
        assert engine.patterns is not None
        assert engine.state_analyzer is not None
        assert engine.telemetry.sample_count == 0
        assert engine.log.capacity == config.event_log_capacity
        assert engine.log.session_start is None

    def test_decision_engine_follows_config(self, clock):
        """The decision engine should take its level and auto mode from the config."""
        engine = AnalyticsEngine(AnalyticsConfig(intelligence_level=5, auto_mode=True), clock=clock)
        assert engine.decisions.intelligence_level == 5
        assert engine.decisions.enabled is True

    def test_seeded_runs_are_reproducible(self, clock):
        """Engines with the same seed should produce the same field phases."""
        agents = [make_agent(f"c{i}", i * 10.0, 0.0, cooperation=80.0) for i in range(5)]
        snapshot = PopulationSnapshot(agents=agents)

        first = AnalyticsEngine(AnalyticsConfig(seed=3), clock=clock).run_pattern_pass(snapshot)
        second = AnalyticsEngine(AnalyticsConfig(seed=3), clock=clock).run_pattern_pass(snapshot)

        assert len(first.fields) == 1
        assert [f.phase for f in first.fields] == [f.phase for f in second.fields]


class TestStep:
    """Test the combined pass."""

    def test_step_runs_every_pass(self, engine, stable_snapshot, clock):
        """step() should sample telemetry and stay idle with auto mode off."""
        result = engine.step(stable_snapshot)

        assert isinstance(result, StepResult)
        assert result.timestamp == clock.now
        assert result.telemetry.population == 8
        assert engine.telemetry.sample_count == 1
        assert result.disruption is None
        assert engine.decisions.state == DecisionState.IDLE

    def test_step_events_combine_patterns_and_state(self, engine, stressed_snapshot):
        """step() events should be the pattern events followed by state events."""
        result = engine.step(stressed_snapshot)
        assert result.events == result.patterns.report.events + result.state_events
        assert any(e.category == EventCategory.BEHAVIOR_SHIFT for e in result.events)

    def test_auto_mode_emits_and_respects_cooldown(self, stable_snapshot):
        """Auto mode should emit on the first pass and wait out the cooldown."""
        clock = FixedClock()
        config = AnalyticsConfig(seed=1, auto_mode=True, intelligence_level=5)
        engine = AnalyticsEngine(config, rng=ScriptedRandom([0.0]), clock=clock)

        first = engine.step(stable_snapshot)
        assert first.disruption is not None
        assert first.disruption.template == "resilience_challenge"

        # Stability 90 doubles the base interval; level 5 keeps it at 40s
        assert engine.step(stable_snapshot).disruption is None
        clock.advance(40_000)
        assert engine.step(stable_snapshot).disruption is not None

        triggers = engine.log.query(category=EventCategory.DISRUPTION_TRIGGER)
        assert len(triggers) == 2
        assert triggers[0].severity == Severity.HIGH
        assert triggers[0].strength == 80.0


class TestForcedDisruption:
    """Test operator-forced disruptions."""

    def test_force_records_trigger_event(self, engine, stable_snapshot, clock):
        """force_disruption() should log a trigger event carrying the predicted impact."""
        disruption = engine.force_disruption(stable_snapshot)

        assert disruption.start_time == clock.now
        assert engine.decisions.emitted_count == 1
        triggers = engine.log.query(category=EventCategory.DISRUPTION_TRIGGER)
        assert len(triggers) == 1
        assert triggers[0].data["template"] == disruption.template
        assert triggers[0].data["intensity"] == disruption.intensity
        assert triggers[0].data["predicted_impact"] == engine.predict_impact(disruption, stable_snapshot).to_dict()

    def test_force_works_while_auto_mode_off(self, engine, stable_snapshot):
        """Forcing should work even when auto mode is off."""
        assert engine.decisions.enabled is False
        assert engine.force_disruption(stable_snapshot) is not None


class TestStateAnalysisRecording:
    """Cached state analysis must not duplicate log entries."""

    def test_cached_events_not_recorded_twice(self, engine, stressed_snapshot):
        """A cached state analysis should not be logged a second time."""
        first = engine.run_state_analysis(stressed_snapshot)
        second = engine.run_state_analysis(stressed_snapshot)

        assert [e.event_id for e in first] == [e.event_id for e in second]
        assert len(engine.log.query(category=EventCategory.BEHAVIOR_SHIFT)) == 1

    def test_pre_session_events_are_rejected(self, engine, stressed_snapshot, clock):
        """A pass stamped before the session start records nothing."""
        engine.reset_session(now=clock.now)
        engine.run_state_analysis(stressed_snapshot, now=clock.now - 5000)
        assert len(engine.log) == 0
        assert engine.log.rejected_count == 1


class TestReporting:
    """Test session reports and system analysis."""

    def test_report_summarizes_log(self, engine, stable_snapshot):
        """report() should summarize the event log."""
        engine.force_disruption(stable_snapshot)
        report = engine.report(stable_snapshot)

        assert isinstance(report, SessionReport)
        assert report.total_events == len(engine.log)
        assert report.events_by_category["disruption_trigger"] == 1

    def test_report_is_cached_until_log_changes(self, engine, stable_snapshot):
        """report() should return the cached report until the log changes."""
        report = engine.report(stable_snapshot)
        assert engine.report(stable_snapshot) is report

        engine.force_disruption(stable_snapshot)
        assert engine.report(stable_snapshot) is not report

    def test_analyze_system_quotes_interval(self, engine, stable_snapshot):
        """analyze_system() should quote the adaptive interval in its prediction."""
        analysis = engine.analyze_system(stable_snapshot)
        assert analysis.prediction == "Resilience challenge recommended in 60s: system is over-stable"


class TestResetSession:
    """Test session reset."""

    def test_reset_clears_log_and_baselines(self, engine, stressed_snapshot, clock):
        """reset_session() should clear the log and baselines and reopen lazily."""
        engine.step(stressed_snapshot)
        assert len(engine.log) > 0
        assert engine.state_analyzer.baselines

        clock.advance(1000)
        engine.reset_session()

        assert len(engine.log) == 0
        assert engine.log.session_start is None
        assert engine.log.rejected_count == 0
        assert engine.state_analyzer.baselines == {}

        engine.step(stressed_snapshot)
        assert engine.log.session_start == clock.now

    def test_reset_with_explicit_start(self, engine):
        """An explicit reset time becomes the session start."""
        engine.reset_session(now=123)
        assert engine.log.session_start == 123


class TestHostTimeline:
    """Explicit pass times govern the session, not the wall clock."""

    def test_explicit_now_is_accepted(self, stressed_snapshot):
        """Events stamped on the host's own timeline are recorded."""
        engine = AnalyticsEngine(AnalyticsConfig(seed=2))
        result = engine.step(stressed_snapshot, now=5_000)

        assert engine.log.rejected_count == 0
        assert engine.log.session_start == 5_000
        assert len(engine.log) == len(result.events)
        assert engine.log.query(category=EventCategory.BEHAVIOR_SHIFT)

    def test_later_passes_on_same_timeline(self, stressed_snapshot):
        """Passes advancing along the host timeline keep being accepted."""
        engine = AnalyticsEngine(AnalyticsConfig(seed=2))
        engine.step(stressed_snapshot, now=5_000)
        engine.force_disruption(stressed_snapshot, now=6_000)
        assert engine.log.rejected_count == 0
        assert engine.report(stressed_snapshot, now=6_000).duration_ms == 1_000
