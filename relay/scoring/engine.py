"""Readiness scoring -- signals to score, score to stage, signals to trust.

All three mappings are plain data handed to the constructor. Adding a
signal or a stage is a configuration change, never a code change.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

DEFAULT_SIGNAL_WEIGHTS: dict[str, int] = {
    "DEBUG_REQUEST": 15,
    "REFACTOR_REQUEST": 20,
    "ARCHITECTURE_DESIGN": 30,
    "OPTIMIZATION_SUGGESTION": 25,
    "TECHNICAL_BLOCKER": -10,
    "CLARIFICATION_PROVIDED": 10,
}

# (exclusive upper bound, label), ascending
DEFAULT_STAGE_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (25, "triage"),
    (50, "analysis"),
    (80, "implementation"),
)
DEFAULT_FINAL_STAGE = "review"

DEFAULT_TRUST_DELTAS: dict[str, int] = {
    "POSITIVE_EMOTION": 5,
    "OBJECTION": -5,
}

TRUST_MIN = 0
TRUST_MAX = 100


class ScoreEngine:
    """Pure scoring functions over static weight and threshold tables."""

    def __init__(
        self,
        weights: Mapping[str, int] | None = None,
        thresholds: Sequence[tuple[int, str]] | None = None,
        final_stage: str = DEFAULT_FINAL_STAGE,
        trust_deltas: Mapping[str, int] | None = None,
    ) -> None:
        self._weights = dict(DEFAULT_SIGNAL_WEIGHTS if weights is None else weights)
        self._thresholds = tuple(DEFAULT_STAGE_THRESHOLDS if thresholds is None else thresholds)
        self._final_stage = final_stage
        self._trust_deltas = dict(DEFAULT_TRUST_DELTAS if trust_deltas is None else trust_deltas)

        bounds = [bound for bound, _ in self._thresholds]
        if any(b >= nxt for b, nxt in zip(bounds, bounds[1:])):
            raise ValueError(f"Stage thresholds must be strictly ascending, got {bounds}")
        labels = [label for _, label in self._thresholds] + [final_stage]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Stage labels must be unique, got {labels}")

    @property
    def stages(self) -> tuple[str, ...]:
        """Every stage label in pipeline order."""
        return tuple(label for _, label in self._thresholds) + (self._final_stage,)

    @property
    def initial_stage(self) -> str:
        return self.stages[0]

    @property
    def known_signals(self) -> tuple[str, ...]:
        """Signals that move either the score or the trust level."""
        return tuple(dict.fromkeys([*self._weights, *self._trust_deltas]))

    def weight(self, signal: str) -> int:
        return self._weights.get(signal, 0)

    def update_score(self, current_score: int, signals: Iterable[str]) -> int:
        """Apply signal weights to the score, never dropping below zero.

        Unknown signals weigh nothing.
        """
        delta = sum(self.weight(s) for s in signals)
        return max(0, current_score + delta)

    def derive_stage(self, score: int) -> str:
        for bound, label in self._thresholds:
            if score < bound:
                return label
        return self._final_stage

    def trust_delta(self, signals: Iterable[str]) -> int:
        """Sum of trust deltas for the trust-bearing signals present.

        Presence counts, not repetition: two OBJECTION signals in one
        classification still subtract once.
        """
        present = set(signals)
        return sum(delta for signal, delta in self._trust_deltas.items() if signal in present)

    def apply_trust(self, trust_level: int, signals: Iterable[str]) -> int:
        return max(TRUST_MIN, min(TRUST_MAX, trust_level + self.trust_delta(signals)))
