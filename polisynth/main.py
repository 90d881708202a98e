"""Demo driver: runs the analytics engine over a synthetic population.

Usage:
    python -m polisynth.main --agents 120 --ticks 30 --seed 7
    python -m polisynth.main --config settings.yaml --auto --level 5
"""

from __future__ import annotations

import argparse
import logging

from rich.console import Console
from rich.table import Table

from polisynth.config import AnalyticsConfig
from polisynth.engine import AnalyticsEngine, StepResult
from polisynth.simulation.population import PopulationGenerator


class SimulatedClock:
    """Millisecond clock advanced explicitly by the driver."""

    def __init__(self, start: int = 0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


def render_step(console: Console, tick: int, result: StepResult) -> None:
    relational = result.relational
    patterns = result.patterns
    line = (
        f"[bold]tick {tick:>3}[/bold] | stability {result.telemetry.stability:5.1f} | "
        f"entanglement {relational.entanglement:5.1f} | coherence {relational.coherence:5.1f} | "
        f"fields {len(patterns.fields):>2} | clusters {len(patterns.report.clusters):>2} | "
        f"events {len(result.events):>3}"
    )
    console.print(line)
    if result.disruption is not None:
        console.print(f"  [yellow]disruption:[/yellow] {result.disruption.name}")


def render_report(console: Console, engine: AnalyticsEngine, snapshot) -> None:
    report = engine.report(snapshot)

    table = Table(title=f"Session {report.session_id}")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Events", str(report.total_events))
    table.add_row("Rejected events", str(report.rejected_events))
    table.add_row("Final stability", f"{report.stability.final_stability:.1f}")
    table.add_row("Coalitions formed", str(report.coalition_evolution.formed))
    table.add_row("Data quality", f"{report.data_quality:.1f}")
    table.add_row("Confidence", f"{report.confidence_level:.1f}")
    console.print(table)

    by_category = Table(title="Events by category")
    by_category.add_column("Category")
    by_category.add_column("Count", justify="right")
    for category, count in sorted(report.events_by_category.items(), key=lambda x: -x[1]):
        by_category.add_row(category, str(count))
    console.print(by_category)

    for heading, items in (
        ("Key findings", report.key_findings),
        ("Emergent patterns", report.emergent_patterns),
        ("Recommendations", report.recommendations),
    ):
        if items:
            console.print(f"[bold]{heading}[/bold]")
            for item in items:
                console.print(f"  - {item}")

    analysis = engine.analyze_system(snapshot)
    console.print(f"[bold]Next:[/bold] {analysis.prediction}")


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="polisynth analytics demo")
    parser.add_argument("--config", type=str, help="YAML file with AnalyticsConfig overrides")
    parser.add_argument("--agents", type=int, default=100, help="Population size")
    parser.add_argument("--ticks", type=int, default=20, help="Number of analysis passes")
    parser.add_argument("--tick-ms", type=int, default=5000, help="Simulated time per pass")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--level", type=int, help="Intelligence level 1-5")
    parser.add_argument("--auto", action="store_true", help="Enable automatic disruptions")
    parser.add_argument("--force", action="store_true", help="Force one disruption midway")
    args = parser.parse_args()

    config = AnalyticsConfig.from_yaml(args.config) if args.config else AnalyticsConfig()
    if args.seed is not None:
        config.seed = args.seed
    if args.level is not None:
        config.intelligence_level = args.level
    if args.auto:
        config.auto_mode = True

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    console = Console()
    clock = SimulatedClock()
    engine = AnalyticsEngine(config, clock=clock)
    generator = PopulationGenerator(config.world_width, config.world_height, seed=config.seed)
    snapshot = generator.generate(args.agents, now=clock())

    console.print(
        f"[bold cyan]polisynth[/bold cyan] | {args.agents} agents | {args.ticks} ticks | "
        f"level {config.intelligence_level} | auto {'on' if config.auto_mode else 'off'}"
    )

    for tick in range(args.ticks):
        now = clock.advance(args.tick_ms)
        result = engine.step(snapshot)
        disruption = result.disruption
        if args.force and tick == args.ticks // 2:
            disruption = engine.force_disruption(snapshot)
            console.print(f"  [magenta]forced:[/magenta] {disruption.name}")
        render_step(console, tick, result)
        snapshot = generator.advance(snapshot, now, disruption)

    render_report(console, engine, snapshot)


if __name__ == "__main__":
    main()
