"""Response generation -- reply to a message using recent dialogue.

Read-only with respect to scoring state. There is no safe default reply,
so router exhaustion propagates to the caller.
"""

from __future__ import annotations

import logging

from relay.orchestration.contracts import ConversationRepository, EventRepository
from relay.orchestration.schemas import (
    ChatResult,
    EventRecord,
    EventType,
    GenerateContext,
    HistoryTurn,
)
from relay.providers.router import ProviderRouter

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_WINDOW = 10

_DIALOGUE_ROLES = {
    EventType.MESSAGE: "user",
    EventType.ASSISTANT_RESPONSE: "assistant",
}


def dialogue_history(events: list[EventRecord], window: int = DEFAULT_HISTORY_WINDOW) -> list[HistoryTurn]:
    """Last ``window`` message/response events as role-tagged turns, oldest first."""
    dialogue = [e for e in events if e.type in _DIALOGUE_ROLES][-window:]
    return [
        HistoryTurn(role=_DIALOGUE_ROLES[e.type], content=str(e.metadata.get("content", "")))
        for e in dialogue
    ]


class ResponseGenerator:
    def __init__(
        self,
        conversations: ConversationRepository,
        events: EventRepository,
        router: ProviderRouter,
        history_window: int = DEFAULT_HISTORY_WINDOW,
    ) -> None:
        self._conversations = conversations
        self._events = events
        self._router = router
        self._history_window = history_window

    async def generate(
        self,
        user_id: str,
        message: str,
        persona_id: str | None = None,
        supplemental_context: str | None = None,
    ) -> ChatResult:
        conversation = await self._conversations.find_or_create(user_id)

        events = await self._events.list_by_conversation(conversation.id)
        history = dialogue_history(events, self._history_window)

        result = await self._router.generate_response(
            message,
            history,
            GenerateContext(stage=conversation.stage, trust_level=conversation.trust_level),
            persona_id=persona_id,
            supplemental_context=supplemental_context,
        )

        await self._events.append(
            conversation.id,
            EventType.ASSISTANT_RESPONSE,
            {"content": result.text, "tokens_used": result.tokens_used},
        )
        logger.debug(
            "Replied to conversation %s (%d history turns, %d tokens)",
            conversation.id.hex[:8],
            len(history),
            result.tokens_used,
        )

        return ChatResult(
            response=result.text,
            stage=conversation.stage,
            trust_level=conversation.trust_level,
        )
