"""Configuration settings for the polisynth analytics engine.

Uses Pydantic Settings for validation and environment variable support.
All settings can be overridden via POLISYNTH_* environment variables.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class AnalyticsConfig(BaseSettings):
    """Global configuration for the analytics and disruption engine."""

    # Operator controls
    intelligence_level: int = Field(default=3, ge=1, le=5)
    adaptive_frequency: bool = True
    contextual_triggers: bool = True
    auto_mode: bool = False

    # Decision engine intervals (milliseconds)
    base_interval_ms: int = 20_000
    fixed_interval_ms: int = 30_000
    min_interval_ms: int = 10_000
    max_interval_ms: int = 60_000

    # Event log
    event_log_capacity: int = 500

    # Pattern caps per pass
    resonance_pattern_cap: int = 20
    emergent_behavior_cap: int = 15
    entangled_pair_cap: int = 10

    # Relational analysis
    signal_resolution: int = 50
    influence_grid_size: int = 20
    world_width: float = 1600.0
    world_height: float = 900.0

    # Field grouping distances
    innovator_group_distance: float = 150.0
    trust_group_distance: float = 120.0
    cooperation_group_distance: float = 130.0

    # Intelligence clusters
    cluster_relationship_threshold: float = 60.0
    cluster_distance: float = 150.0
    cluster_min_members: int = 3
    cluster_min_intelligence: float = 65.0

    # System-state analysis
    state_cache_ttl_ms: int = 5_000
    anomaly_threshold: float = 30.0
    recent_coalition_window_ms: int = 10_000

    # Telemetry
    telemetry_history_max: int = 1000

    # Randomness (None = nondeterministic)
    seed: int | None = None

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "POLISYNTH_"}

    @classmethod
    def from_yaml(cls, path: str) -> AnalyticsConfig:
        """Load config overrides from a YAML mapping.

        Keys not present in the file keep their defaults (or env overrides).

        Raises:
            ImportError: If pyyaml is not installed
            FileNotFoundError: If file doesn't exist
        """
        try:
            import yaml  # type: ignore[import-untyped]
        except ImportError as err:
            raise ImportError(
                "pyyaml is required for YAML loading. Install with: pip install pyyaml"
            ) from err

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
