"""Analysis events emitted by the detectors and the decision engine."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import Any


class EventCategory(enum.Enum):
    """Closed set of event categories accepted by the event log."""

    # Resonance class (field pairs)
    SYNCHRONIZATION = "synchronization"
    INTERFERENCE = "interference"
    AMPLIFICATION = "amplification"

    # Emergence class (groups)
    INTELLIGENCE_CLUSTER = "intelligence_cluster"
    PROBLEM_SOLVING = "problem_solving"
    ADAPTIVE_LEARNING = "adaptive_learning"
    CREATIVE_SYNTHESIS = "creative_synthesis"

    # Relational class
    ENTANGLEMENT_FORMATION = "entanglement_formation"
    COHERENCE_COLLAPSE = "coherence_collapse"
    QUANTUM_TUNNELING = "quantum_tunneling"

    # System state
    COALITION_FORMATION = "coalition_formation"
    BEHAVIOR_SHIFT = "behavior_shift"
    INNOVATION_EMERGENCE = "innovation_emergence"
    ANOMALY_DETECTED = "anomaly_detected"
    DISRUPTION_TRIGGER = "disruption_trigger"

    # Forecast of the next dominant category, never an observation
    PREDICTION = "prediction"


RESONANCE_CATEGORIES = frozenset(
    {EventCategory.SYNCHRONIZATION, EventCategory.INTERFERENCE, EventCategory.AMPLIFICATION}
)

EMERGENCE_CATEGORIES = frozenset(
    {
        EventCategory.INTELLIGENCE_CLUSTER,
        EventCategory.PROBLEM_SOLVING,
        EventCategory.ADAPTIVE_LEARNING,
        EventCategory.CREATIVE_SYNTHESIS,
    }
)


class Severity(enum.Enum):
    """Event severity, ordered low to critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def severity_for_strength(strength: float) -> Severity:
    """Map a 0-100 strength onto a severity bucket."""
    if strength >= 90:
        return Severity.CRITICAL
    if strength >= 70:
        return Severity.HIGH
    if strength >= 40:
        return Severity.MEDIUM
    return Severity.LOW


def new_event_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class AnalysisEvent:
    """A detected pattern, emergent structure, or engine decision.

    `probability` is descriptive metadata shown to operators; nothing in the
    engine gates on it.
    """

    event_id: str
    timestamp: int  # ms
    category: EventCategory
    severity: Severity
    strength: float = 0.0
    affected_ids: tuple[str, ...] = ()
    description: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    probability: float | None = None

    def __str__(self) -> str:
        return f"[{self.timestamp}] {self.category.value}/{self.severity.value}: {self.description}"

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp,
            "category": self.category.value,
            "severity": self.severity.value,
            "strength": self.strength,
            "affected_ids": list(self.affected_ids),
            "description": self.description,
            "data": dict(self.data),
            "probability": self.probability,
        }
