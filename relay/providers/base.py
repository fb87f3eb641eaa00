"""Backend capability shared by every provider adapter."""

from __future__ import annotations

from typing import Protocol

from relay.orchestration.schemas import (
    ClassificationResult,
    ClassifyContext,
    GenerateContext,
    GenerationResult,
    HistoryTurn,
)


class ProviderError(RuntimeError):
    """A single backend failed (transport, HTTP status or unparseable reply)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class RouterExhaustedError(RuntimeError):
    """Every configured backend failed for one call.

    ``last_error`` is the failure of the last backend tried; ``errors``
    keeps every (backend name, error) pair in the order they happened.
    """

    def __init__(self, operation: str, errors: list[tuple[str, Exception]]) -> None:
        self.operation = operation
        self.errors = errors
        self.last_error: Exception | None = errors[-1][1] if errors else None
        tried = ", ".join(name for name, _ in errors)
        super().__init__(
            f"All providers failed for {operation} (tried: {tried}); last error: {self.last_error}"
        )


class LLMProvider(Protocol):
    """Interchangeable classify/generate backend."""

    name: str

    async def classify(self, message: str, context: ClassifyContext) -> ClassificationResult: ...

    async def generate_response(
        self,
        message: str,
        history: list[HistoryTurn],
        context: GenerateContext,
        persona_id: str | None = None,
        supplemental_context: str | None = None,
    ) -> GenerationResult: ...

    async def close(self) -> None: ...
