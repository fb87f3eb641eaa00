"""Read-side views over the conversation store."""

from __future__ import annotations

from relay.orchestration.contracts import ConversationRepository, EventRepository
from relay.orchestration.schemas import ConversationState, TimelineView


class ConversationTimeline:
    def __init__(self, conversations: ConversationRepository, events: EventRepository) -> None:
        self._conversations = conversations
        self._events = events

    async def get(self, user_id: str) -> TimelineView | None:
        """A conversation with its full event log, or None for unknown users."""
        conversation = await self._conversations.find_by_user_id(user_id)
        if conversation is None:
            return None
        events = await self._events.list_by_conversation(conversation.id)
        return TimelineView(conversation=conversation, events=events)

    async def list_conversations(self) -> list[ConversationState]:
        return await self._conversations.find_all()
