"""OpenAI-compatible Chat Completions backend.

Also serves DeepSeek, which exposes the same API under its own base URL.
"""

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


class OpenAIProvider(HttpProvider):
    def __init__(
        self,
        api_key: str,
        personas: PersonaRegistry,
        allowed_signals: Sequence[str],
        model: str = "gpt-4o",
        base_url: str = "https://api.openai.com",
        name: str = "openai",
        path: str = "/v1/chat/completions",
        temperature: float = 0.7,
        timeout_connect: float = 10.0,
        timeout_read: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            personas=personas,
            allowed_signals=allowed_signals,
            timeout_connect=timeout_connect,
            timeout_read=timeout_read,
            client=client,
        )
        self.name = name
        self.model = model
        self._path = path
        self._temperature = temperature

    async def classify(self, message: str, context: ClassifyContext) -> ClassificationResult:
        data = await self._post_json(
            self._path,
            {
                "model": self.model,
                "messages": [
                    {
                        "role": "user",
                        "content": classification_prompt(message, context, self._allowed_signals),
                    }
                ],
                "temperature": 0,
                "response_format": {"type": "json_object"},
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
            self._path,
            {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    *({"role": turn.role, "content": turn.content} for turn in history),
                    {"role": "user", "content": message},
                ],
                "temperature": self._temperature,
            },
        )
        return GenerationResult(text=self._extract_text(data), tokens_used=self._tokens(data))

    def _extract_text(self, data: dict[str, Any]) -> str:
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.name, f"response has no message content: {e!r}") from e

    @staticmethod
    def _tokens(data: dict[str, Any]) -> int:
        usage = data.get("usage") or {}
        return int(usage.get("total_tokens", 0))
