"""Anthropic Messages API backend."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from relay.orchestration.schemas import (
    ClassificationResult,
    ClassifyContext,
    GenerateContext,
    GenerationResult,
    HistoryTurn,
)
from relay.personas import PersonaRegistry
from relay.providers.base import ProviderError
from relay.providers.http import HttpProvider
from relay.providers.prompts import classification_prompt, parse_classification

_API_VERSION = "2023-06-01"


class AnthropicProvider(HttpProvider):
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        personas: PersonaRegistry,
        allowed_signals: Sequence[str],
        model: str = "claude-sonnet-4-5-20250514",
        base_url: str = "https://api.anthropic.com",
        classify_max_tokens: int = 1000,
        generate_max_tokens: int = 2048,
        timeout_connect: float = 10.0,
        timeout_read: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            headers={
                "x-api-key": api_key,
                "anthropic-version": _API_VERSION,
                "content-type": "application/json",
            },
            personas=personas,
            allowed_signals=allowed_signals,
            timeout_connect=timeout_connect,
            timeout_read=timeout_read,
            client=client,
        )
        self.model = model
        self._classify_max_tokens = classify_max_tokens
        self._generate_max_tokens = generate_max_tokens

    async def classify(self, message: str, context: ClassifyContext) -> ClassificationResult:
        data = await self._post_json(
            "/v1/messages",
            {
                "model": self.model,
                "max_tokens": self._classify_max_tokens,
                "messages": [
                    {
                        "role": "user",
                        "content": classification_prompt(message, context, self._allowed_signals),
                    }
                ],
            },
        )
        return parse_classification(self.name, self._extract_text(data), self._tokens(data))

    async def generate_response(
        self,
        message: str,
        history: list[HistoryTurn],
        context: GenerateContext,
        persona_id: str | None = None,
        supplemental_context: str | None = None,
    ) -> GenerationResult:
        system_prompt = self._personas.build_prompt(persona_id, supplemental_context)
        system_prompt += f"\nConversation stage: {context.stage}. Trust level: {context.trust_level}/100.\n"
        data = await self._post_json(
            "/v1/messages",
            {
                "model": self.model,
                "max_tokens": self._generate_max_tokens,
                "system": system_prompt,
                "messages": [
                    *self._history_messages(history),
                    {"role": "user", "content": message},
                ],
            },
        )
        return GenerationResult(text=self._extract_text(data), tokens_used=self._tokens(data))

    @staticmethod
    def _history_messages(history: list[HistoryTurn]) -> list[dict[str, Any]]:
        """Turns as Messages API entries; the conversation must open with a user turn."""
        messages = [{"role": turn.role, "content": turn.content} for turn in history]
        while messages and messages[0]["role"] != "user":
            messages.pop(0)
        return messages

    def _extract_text(self, data: dict[str, Any]) -> str:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise ProviderError(self.name, "response has no content blocks")
        parts = [b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text"]
        return "".join(parts)

    @staticmethod
    def _tokens(data: dict[str, Any]) -> int:
        usage = data.get("usage") or {}
        return int(usage.get("input_tokens", 0)) + int(usage.get("output_tokens", 0))
