"""Analysis toolkit for population snapshots.

This package provides the relational scores and the session bookkeeping:
- PairwiseRelationalAnalyzer: Relational scores, entangled pairs and influence field
- AnalysisEventLog: Bounded, time-ordered event log with validation
- SessionAggregator: Session report built from the event log
- SystemStateAnalyzer: Coalition, stress, innovation and anomaly detection
"""

from polisynth.analysis.event_log import AnalysisEventLog
from polisynth.analysis.relational import PairwiseRelationalAnalyzer, RelationalMetrics
from polisynth.analysis.session import SessionAggregator, SessionReport
from polisynth.analysis.state import SystemStateAnalyzer

__all__ = [
    "PairwiseRelationalAnalyzer",
    "RelationalMetrics",
    "AnalysisEventLog",
    "SessionAggregator",
    "SessionReport",
    "SystemStateAnalyzer",
]
