"""Adaptive decision engine for injecting perturbations.

The engine owns two pieces of persistent state, the timestamp of its last
emission and the operator's intelligence level, plus the auto-mode switch.
An external timer drives `tick(now, snapshot)`; the engine never schedules
itself. Access to the state is serialized with a single lock.

States: IDLE -> EVALUATING -> (NO_ACTION | EMIT)
"""

from __future__ import annotations

import enum
import logging
import random
import threading

from polisynth.analysis.scoring import clamp
from polisynth.disruption.templates import (
    DecisionInputs,
    TemplateKind,
    build_disruption,
    matching_template,
)
from polisynth.errors import ConfigurationError
from polisynth.simulation.entities import DisruptiveEvent, PopulationSnapshot

logger = logging.getLogger(__name__)

MIN_LEVEL = 1
MAX_LEVEL = 5


class DecisionState(enum.Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    NO_ACTION = "no_action"
    EMIT = "emit"


def adaptive_interval(
    inputs: DecisionInputs,
    level: int,
    adaptive: bool = True,
    base_ms: float = 20_000,
    fixed_ms: float = 30_000,
    min_ms: float = 10_000,
    max_ms: float = 60_000,
) -> float:
    """Cooldown between emissions, longer for stable and crowded systems.

    Returns:
        Interval in milliseconds, within [min_ms, max_ms] when adaptive
    """
    if not adaptive:
        return fixed_ms

    interval = base_ms
    if inputs.stability > 80:
        interval *= 2
    if inputs.stability < 50:
        interval *= 0.5
    if inputs.mean_stress > 60:
        interval *= 0.7
    if inputs.coalition_count > 5:
        interval *= 1.3

    return clamp(interval * (6 - level), min_ms, max_ms)


def disruption_probability(inputs: DecisionInputs, level: int) -> float:
    """Chance of acting this cycle, in [0, 1]."""
    probability = 0.0

    # Favoring factors
    if inputs.stability > 85:
        probability += 0.4
    if inputs.mean_stress < 15:
        probability += 0.3
    if inputs.mean_innovation < 60:
        probability += 0.3
    if inputs.coalition_count < 2:
        probability += 0.5

    # Inhibiting factors
    if inputs.stability < 40:
        probability -= 0.6
    if inputs.mean_stress > 70:
        probability -= 0.4
    if inputs.active_disruptions > 2:
        probability -= 0.8

    probability *= level / MAX_LEVEL
    return clamp(probability, 0.0, 1.0)


class DisruptionDecisionEngine:
    """Decides when and which perturbation to propose.

    Args:
        intelligence_level: Operator level 1-5; scales probability, interval
            and template strength
        adaptive_frequency: When False the cooldown is a fixed interval
        contextual_triggers: When False templates are not chosen from
            telemetry and emissions use the manual catalyst
        enabled: Auto mode; `tick` does nothing while disabled
        rng: Random source for the emission draw
    """

    def __init__(
        self,
        intelligence_level: int = 3,
        adaptive_frequency: bool = True,
        contextual_triggers: bool = True,
        enabled: bool = False,
        base_interval_ms: float = 20_000,
        fixed_interval_ms: float = 30_000,
        min_interval_ms: float = 10_000,
        max_interval_ms: float = 60_000,
        rng: random.Random | None = None,
    ):
        self._lock = threading.Lock()
        self._level = self._validate_level(intelligence_level)
        self.adaptive_frequency = adaptive_frequency
        self.contextual_triggers = contextual_triggers
        self.enabled = enabled
        self.base_interval_ms = base_interval_ms
        self.fixed_interval_ms = fixed_interval_ms
        self.min_interval_ms = min_interval_ms
        self.max_interval_ms = max_interval_ms
        self._rng = rng or random.Random()

        self.last_event_timestamp = 0
        self.state = DecisionState.IDLE
        self.last_probability = 0.0
        self.emitted_count = 0

    @classmethod
    def from_config(cls, config, rng: random.Random | None = None) -> DisruptionDecisionEngine:
        """Build an engine from an AnalyticsConfig."""
        return cls(
            intelligence_level=config.intelligence_level,
            adaptive_frequency=config.adaptive_frequency,
            contextual_triggers=config.contextual_triggers,
            enabled=config.auto_mode,
            base_interval_ms=config.base_interval_ms,
            fixed_interval_ms=config.fixed_interval_ms,
            min_interval_ms=config.min_interval_ms,
            max_interval_ms=config.max_interval_ms,
            rng=rng,
        )

    @staticmethod
    def _validate_level(level: int) -> int:
        if not MIN_LEVEL <= level <= MAX_LEVEL:
            raise ConfigurationError(
                f"intelligence_level must be within {MIN_LEVEL}..{MAX_LEVEL}, got {level}"
            )
        return level

    @property
    def intelligence_level(self) -> int:
        return self._level

    @intelligence_level.setter
    def intelligence_level(self, level: int) -> None:
        validated = self._validate_level(level)
        with self._lock:
            self._level = validated

    def set_enabled(self, enabled: bool) -> None:
        with self._lock:
            self.enabled = enabled

    def adaptive_interval(self, snapshot: PopulationSnapshot) -> float:
        return adaptive_interval(
            DecisionInputs.from_snapshot(snapshot),
            self._level,
            adaptive=self.adaptive_frequency,
            base_ms=self.base_interval_ms,
            fixed_ms=self.fixed_interval_ms,
            min_ms=self.min_interval_ms,
            max_ms=self.max_interval_ms,
        )

    def decision_probability(self, snapshot: PopulationSnapshot) -> float:
        return disruption_probability(DecisionInputs.from_snapshot(snapshot), self._level)

    def select_template(self, snapshot: PopulationSnapshot) -> TemplateKind | None:
        """Template for the current telemetry, or None when nothing applies."""
        if not self.contextual_triggers:
            return TemplateKind.MANUAL_CATALYST
        return matching_template(DecisionInputs.from_snapshot(snapshot))

    def time_until_next(self, now: int, snapshot: PopulationSnapshot) -> float:
        """Milliseconds left before the next evaluation is allowed (0 if due)."""
        elapsed = now - self.last_event_timestamp
        return max(0.0, self.adaptive_interval(snapshot) - elapsed)

    def tick(self, now: int, snapshot: PopulationSnapshot) -> DisruptiveEvent | None:
        """Run one decision cycle.

        Args:
            now: Current time (ms)
            snapshot: Population snapshot for this cycle

        Returns:
            The perturbation to inject, or None when no action is taken
        """
        with self._lock:
            if not self.enabled:
                self.state = DecisionState.IDLE
                return None

            if now - self.last_event_timestamp < self.adaptive_interval(snapshot):
                self.state = DecisionState.IDLE
                return None

            self.state = DecisionState.EVALUATING
            probability = self.decision_probability(snapshot)
            self.last_probability = probability

            if self._rng.random() >= probability:
                self.state = DecisionState.NO_ACTION
                return None

            kind = self.select_template(snapshot)
            if kind is None:
                logger.debug("Disruption warranted but no template matches current telemetry")
                self.state = DecisionState.NO_ACTION
                return None

            return self._emit(kind, now, reason="auto")

    def force_trigger(self, now: int, snapshot: PopulationSnapshot) -> DisruptiveEvent:
        """Emit immediately, bypassing the interval and probability gates."""
        with self._lock:
            kind = self.select_template(snapshot) or TemplateKind.MANUAL_CATALYST
            return self._emit(kind, now, reason="manual")

    def _emit(self, kind: TemplateKind, now: int, reason: str) -> DisruptiveEvent:
        event = build_disruption(kind, self._level, now)
        self.last_event_timestamp = now
        self.state = DecisionState.EMIT
        self.emitted_count += 1
        logger.info(
            f"Disruption emitted ({reason}): {event.name} "
            f"(intensity {event.intensity}, duration {event.duration})"
        )
        return event
