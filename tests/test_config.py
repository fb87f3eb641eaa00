"""Unit tests for Settings validation."""

import pytest
from pydantic import ValidationError

from relay.config import Settings


def test_defaults():
    s = Settings(COST_PER_1K_TOKENS=0.02, BUDGET_THRESHOLD=10.0)
    assert s.provider_order == ["anthropic", "gemini", "openai", "deepseek"]
    assert s.history_window == 10
    assert s.port == 3000
    assert s.db_url.startswith("postgresql+asyncpg://")


def test_env_aliases(monkeypatch):
    monkeypatch.setenv("COST_PER_1K_TOKENS", "0.5")
    monkeypatch.setenv("BUDGET_THRESHOLD", "2")
    monkeypatch.setenv("API_KEY", "secret")
    monkeypatch.setenv("RELAY_HISTORY_WINDOW", "4")
    s = Settings()
    assert s.cost_per_1k_tokens == 0.5
    assert s.budget_threshold == 2.0
    assert s.api_key == "secret"
    assert s.history_window == 4


@pytest.mark.parametrize(
    "overrides",
    [
        {"COST_PER_1K_TOKENS": -1},
        {"BUDGET_THRESHOLD": -0.5},
        {"history_window": 0},
        {"provider_order": ["anthropic", "mistral"]},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)
