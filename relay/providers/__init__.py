"""Providers module -- interchangeable LLM backends behind one router.

Public API:
    ProviderRouter        - ordered fallback over backends
    build_providers       - backends from Settings, in priority order
    ProviderError         - one backend failed
    RouterExhaustedError  - every backend failed

Adapters:
    AnthropicProvider, GeminiProvider, OpenAIProvider (also DeepSeek)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from relay.config import Settings
from relay.personas import PersonaRegistry
from relay.providers.anthropic import AnthropicProvider
from relay.providers.base import LLMProvider, ProviderError, RouterExhaustedError
from relay.providers.gemini import GeminiProvider
from relay.providers.openai import OpenAIProvider
from relay.providers.router import ProviderRouter

logger = logging.getLogger(__name__)


def build_providers(
    settings: Settings,
    personas: PersonaRegistry,
    allowed_signals: Sequence[str],
) -> list[LLMProvider]:
    """Instantiate backends in settings.provider_order, skipping unkeyed ones."""
    timeouts = {
        "timeout_connect": settings.api_timeout_connect,
        "timeout_read": settings.api_timeout_read,
    }
    providers: list[LLMProvider] = []
    for name in settings.provider_order:
        if name == "anthropic" and settings.anthropic_api_key:
            providers.append(
                AnthropicProvider(
                    settings.anthropic_api_key,
                    personas,
                    allowed_signals,
                    model=settings.anthropic_model,
                    base_url=settings.anthropic_base_url,
                    classify_max_tokens=settings.classify_max_tokens,
                    generate_max_tokens=settings.generate_max_tokens,
                    **timeouts,
                )
            )
        elif name == "gemini" and settings.gemini_api_key:
            providers.append(
                GeminiProvider(
                    settings.gemini_api_key,
                    personas,
                    allowed_signals,
                    model=settings.gemini_model,
                    base_url=settings.gemini_base_url,
                    **timeouts,
                )
            )
        elif name == "openai" and settings.openai_api_key:
            providers.append(
                OpenAIProvider(
                    settings.openai_api_key,
                    personas,
                    allowed_signals,
                    model=settings.openai_model,
                    base_url=settings.openai_base_url,
                    **timeouts,
                )
            )
        elif name == "deepseek" and settings.deepseek_api_key:
            providers.append(
                OpenAIProvider(
                    settings.deepseek_api_key,
                    personas,
                    allowed_signals,
                    model=settings.deepseek_model,
                    base_url=settings.deepseek_base_url,
                    name="deepseek",
                    path="/chat/completions",
                    **timeouts,
                )
            )
        else:
            logger.info("Provider '%s' has no API key configured, skipping", name)
    logger.info("Provider priority: %s", " -> ".join(p.name for p in providers) or "(none)")
    return providers


__all__ = [
    "AnthropicProvider",
    "GeminiProvider",
    "LLMProvider",
    "OpenAIProvider",
    "ProviderError",
    "ProviderRouter",
    "RouterExhaustedError",
    "build_providers",
]
