"""Persistence collaborators the orchestrators depend on.

The SQLAlchemy implementations live in relay.storage.repositories; tests
substitute in-memory ones.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from relay.orchestration.schemas import ConversationState, EventRecord, EventType


class ConversationRepository(Protocol):
    async def find_or_create(self, user_id: str) -> ConversationState: ...

    async def update(
        self,
        conversation_id: UUID,
        fields: dict[str, Any],
        increments: dict[str, int | float] | None = None,
        budget_threshold: float | None = None,
    ) -> ConversationState:
        """Set ``fields`` and add ``increments`` to their columns in one write.

        Increments are applied against the stored value, not the caller's
        snapshot, so concurrent writers never lose an accumulation. With
        ``budget_threshold`` set, ``over_budget`` is derived in the same
        write from the incremented ``conversation_cost``.
        """
        ...

    async def find_by_user_id(self, user_id: str) -> ConversationState | None: ...

    async def find_all(self) -> list[ConversationState]: ...


class EventRepository(Protocol):
    async def append(
        self,
        conversation_id: UUID,
        type: EventType,
        metadata: dict[str, Any],
    ) -> None: ...

    async def list_by_conversation(self, conversation_id: UUID) -> list[EventRecord]:
        """All events for the conversation, oldest first."""
        ...
