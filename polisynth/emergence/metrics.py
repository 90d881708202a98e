"""Telemetry time series collected once per pass."""

from __future__ import annotations

from dataclasses import dataclass

from polisynth.analysis.scoring import mean
from polisynth.simulation.entities import PopulationSnapshot


@dataclass(frozen=True)
class TelemetrySample:
    """Aggregate readings of one snapshot."""

    timestamp: int
    stability: float = 75.0
    mean_stress: float = 0.0
    mean_innovation: float = 0.0
    mean_cooperation: float = 0.0
    mean_trust: float = 0.0
    population: int = 0
    coalition_count: int = 0
    active_disruptions: int = 0


class TelemetryCollector:
    """Collects per-pass telemetry and maintains a bounded time series."""

    def __init__(self, max_history: int = 1000):
        self.max_history = max_history
        self.history: list[TelemetrySample] = []

    def collect(self, snapshot: PopulationSnapshot, now: int) -> TelemetrySample:
        """Build and record the telemetry sample for this snapshot."""
        sample = TelemetrySample(
            timestamp=now,
            stability=snapshot.stability,
            mean_stress=snapshot.mean_stress,
            mean_innovation=snapshot.mean_innovation,
            mean_cooperation=snapshot.mean_cooperation,
            mean_trust=mean(a.trust for a in snapshot.agents),
            population=snapshot.population,
            coalition_count=snapshot.coalition_count,
            active_disruptions=len(snapshot.active_disruptions),
        )
        self.history.append(sample)
        if len(self.history) > self.max_history:
            self.history = self.history[-self.max_history :]
        return sample

    def trend(self, metric_name: str, window: int = 50) -> str:
        """Get trend for a metric over the last `window` samples.

        Returns: "increasing", "stable", or "decreasing"
        """
        recent = self.history[-window:]
        if len(recent) < 2:
            return "stable"

        values = [getattr(s, metric_name, 0) for s in recent]
        first_half = values[: len(values) // 2]
        second_half = values[len(values) // 2 :]

        avg_first = sum(first_half) / len(first_half) if first_half else 0
        avg_second = sum(second_half) / len(second_half) if second_half else 0

        threshold = 0.05 * max(abs(avg_first), abs(avg_second), 1.0)

        if avg_second > avg_first + threshold:
            return "increasing"
        elif avg_second < avg_first - threshold:
            return "decreasing"
        return "stable"

    def trends(self, window: int = 50) -> dict[str, str]:
        """Trend of every tracked scalar."""
        names = ["stability", "mean_stress", "mean_innovation", "mean_cooperation", "mean_trust"]
        return {name: self.trend(name, window) for name in names}

    def latest(self) -> TelemetrySample | None:
        """Most recent sample."""
        return self.history[-1] if self.history else None

    @property
    def sample_count(self) -> int:
        return len(self.history)
