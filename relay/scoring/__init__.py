"""Scoring module -- readiness score, stage and spend accounting.

Public API:
    ScoreEngine  - signals -> score, score -> stage, signals -> trust
    CostTracker  - tokens -> cost, cost -> over-budget
"""

from relay.scoring.budget import CostTracker
from relay.scoring.engine import (
    DEFAULT_FINAL_STAGE,
    DEFAULT_SIGNAL_WEIGHTS,
    DEFAULT_STAGE_THRESHOLDS,
    DEFAULT_TRUST_DELTAS,
    ScoreEngine,
)

__all__ = [
    "CostTracker",
    "ScoreEngine",
    "DEFAULT_FINAL_STAGE",
    "DEFAULT_SIGNAL_WEIGHTS",
    "DEFAULT_STAGE_THRESHOLDS",
    "DEFAULT_TRUST_DELTAS",
]
