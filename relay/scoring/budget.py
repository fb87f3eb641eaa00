"""Token spend to money, money to over-budget."""

from __future__ import annotations


class CostTracker:
    """Prices token usage and checks it against a per-conversation budget.

    Both rates are fixed at construction.
    """

    def __init__(self, cost_per_1k_tokens: float, budget_threshold: float) -> None:
        if cost_per_1k_tokens < 0:
            raise ValueError(f"cost_per_1k_tokens must be >= 0, got {cost_per_1k_tokens}")
        if budget_threshold < 0:
            raise ValueError(f"budget_threshold must be >= 0, got {budget_threshold}")
        self._cost_per_1k_tokens = float(cost_per_1k_tokens)
        self._budget_threshold = float(budget_threshold)

    @property
    def cost_per_1k_tokens(self) -> float:
        return self._cost_per_1k_tokens

    @property
    def budget_threshold(self) -> float:
        return self._budget_threshold

    def calculate_cost(self, tokens_used: int) -> float:
        return (tokens_used / 1000) * self._cost_per_1k_tokens

    def is_over_budget(self, total_cost: float) -> bool:
        """Inclusive: hitting the threshold exactly counts as over."""
        return total_cost >= self._budget_threshold
