"""Google Gemini generateContent backend (REST, API-key auth)."""

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


class GeminiProvider(HttpProvider):
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        personas: PersonaRegistry,
        allowed_signals: Sequence[str],
        model: str = "gemini-1.5-pro",
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout_connect: float = 10.0,
        timeout_read: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            headers={"x-goog-api-key": api_key},
            personas=personas,
            allowed_signals=allowed_signals,
            timeout_connect=timeout_connect,
            timeout_read=timeout_read,
            client=client,
        )
        self.model = model

    @property
    def _path(self) -> str:
        return f"/v1beta/models/{self.model}:generateContent"

    async def classify(self, message: str, context: ClassifyContext) -> ClassificationResult:
        data = await self._post_json(
            self._path,
            {
                "contents": [
                    {
                        "role": "user",
                        "parts": [{"text": classification_prompt(message, context, self._allowed_signals)}],
                    }
                ],
                "generationConfig": {"responseMimeType": "application/json"},
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
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "contents": [
                    *self._history_contents(history),
                    {"role": "user", "parts": [{"text": message}]},
                ],
            },
        )
        return GenerationResult(text=self._extract_text(data), tokens_used=self._tokens(data))

    @staticmethod
    def _history_contents(history: list[HistoryTurn]) -> list[dict[str, Any]]:
        """Map turns to Gemini roles; the chat must open with a user turn."""
        contents = [
            {"role": "user" if turn.role == "user" else "model", "parts": [{"text": turn.content}]}
            for turn in history
        ]
        while contents and contents[0]["role"] != "user":
            contents.pop(0)
        return contents

    def _extract_text(self, data: dict[str, Any]) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.name, f"response has no candidate content: {e!r}") from e
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))

    @staticmethod
    def _tokens(data: dict[str, Any]) -> int:
        usage = data.get("usageMetadata") or {}
        return int(usage.get("totalTokenCount", 0))
