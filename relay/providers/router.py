"""Ordered fallback across interchangeable LLM backends.

Backends are tried strictly in order, one attempt each. The first success
wins; when all fail the last error is the one reported.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from relay.orchestration.schemas import (
    ClassificationOutcome,
    ClassificationResult,
    ClassifyContext,
    GenerateContext,
    GenerationResult,
    HistoryTurn,
)
from relay.providers.base import LLMProvider, RouterExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderRouter:
    """Routes classify/generate calls down a fixed priority list."""

    def __init__(self, providers: Sequence[LLMProvider]) -> None:
        if not providers:
            raise ValueError("ProviderRouter needs at least one provider")
        self._providers: tuple[LLMProvider, ...] = tuple(providers)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self._providers)

    async def classify(self, message: str, context: ClassifyContext) -> ClassificationResult:
        return await self._first_success(
            "classify",
            lambda p: p.classify(message, context),
        )

    async def classify_or_degrade(self, message: str, context: ClassifyContext) -> ClassificationOutcome:
        """Classify, turning router exhaustion into an UNCLASSIFIED outcome."""
        try:
            result = await self.classify(message, context)
        except RouterExhaustedError as e:
            return ClassificationOutcome.unclassified(str(e.last_error))
        return ClassificationOutcome.ok(result)

    async def generate_response(
        self,
        message: str,
        history: list[HistoryTurn],
        context: GenerateContext,
        persona_id: str | None = None,
        supplemental_context: str | None = None,
    ) -> GenerationResult:
        return await self._first_success(
            "generate_response",
            lambda p: p.generate_response(
                message,
                history,
                context,
                persona_id=persona_id,
                supplemental_context=supplemental_context,
            ),
        )

    async def close(self) -> None:
        for provider in self._providers:
            await provider.close()

    async def _first_success(
        self,
        operation: str,
        call: Callable[[LLMProvider], Awaitable[T]],
    ) -> T:
        errors: list[tuple[str, Exception]] = []
        for step, provider in enumerate(self._providers, start=1):
            try:
                result = await call(provider)
            except Exception as e:
                errors.append((provider.name, e))
                logger.warning(
                    "Provider step %d/%d (%s) failed for %s: %s",
                    step,
                    len(self._providers),
                    provider.name,
                    operation,
                    e,
                )
                continue
            if errors:
                logger.info("%s served by fallback provider %s", operation, provider.name)
            return result

        logger.error("All %d providers failed for %s", len(self._providers), operation)
        raise RouterExhaustedError(operation, errors) from errors[-1][1]
