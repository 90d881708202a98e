"""Adaptive disruption: when to perturb the simulation, and how."""

from polisynth.disruption.analysis import SystemAnalysis, analyze_system
from polisynth.disruption.engine import DecisionState, DisruptionDecisionEngine
from polisynth.disruption.templates import (
    DisruptionImpact,
    TemplateKind,
    build_disruption,
    matching_template,
    predict_disruption_impact,
)

__all__ = [
    "DisruptionDecisionEngine",
    "DecisionState",
    "TemplateKind",
    "build_disruption",
    "matching_template",
    "DisruptionImpact",
    "predict_disruption_impact",
    "SystemAnalysis",
    "analyze_system",
]
