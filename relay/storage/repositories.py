"""SQLAlchemy-backed conversation store and event log.

Both repositories open their own short session per call and commit before
returning. Failures propagate; retry policy is not this layer's concern.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert

from relay.orchestration.schemas import ConversationState, EventRecord, EventType
from relay.storage.database import Database
from relay.storage.models import Conversation, ConversationEvent

logger = logging.getLogger(__name__)

DEFAULT_TRUST_LEVEL = 50

_SETTABLE = frozenset(
    {
        "current_score",
        "last_tags",
        "trust_level",
        "stage",
        "last_interaction_at",
    }
)
_INCREMENTABLE = frozenset({"cumulative_score", "message_count", "conversation_cost"})


class SqlConversationRepository:
    """Keyed-by-user conversation state in relay.conversations."""

    def __init__(
        self,
        database: Database,
        initial_stage: str,
        initial_trust: int = DEFAULT_TRUST_LEVEL,
    ) -> None:
        self._db = database
        self._initial_stage = initial_stage
        self._initial_trust = initial_trust

    async def find_or_create(self, user_id: str) -> ConversationState:
        """Return the user's conversation, creating it on first contact.

        INSERT ... ON CONFLICT DO NOTHING keeps two first messages racing
        for the same user from producing two rows.
        """
        async with self._db.session() as session:
            result = await session.execute(
                insert(Conversation)
                .values(
                    user_id=user_id,
                    stage=self._initial_stage,
                    trust_level=self._initial_trust,
                )
                .on_conflict_do_nothing(index_elements=[Conversation.user_id])
                .returning(Conversation.id)
            )
            created_id = result.scalar_one_or_none()
            await session.commit()
            if created_id is not None:
                logger.info("Created conversation %s for user %s", created_id.hex[:8], user_id)

            conversation = await session.scalar(select(Conversation).where(Conversation.user_id == user_id))
            return self._to_state(conversation)

    async def update(
        self,
        conversation_id: UUID,
        fields: dict[str, Any],
        increments: dict[str, int | float] | None = None,
        budget_threshold: float | None = None,
    ) -> ConversationState:
        """Single UPDATE ... RETURNING; increments are computed server-side.

        SET expressions see the pre-update row, so the budget flag compares
        the old cost plus this write's cost delta against the threshold.
        """
        increments = increments or {}
        bad = (set(fields) - _SETTABLE) | (set(increments) - _INCREMENTABLE)
        if bad:
            raise ValueError(f"Fields not updatable: {sorted(bad)}")

        values: dict[str, Any] = dict(fields)
        for column, delta in increments.items():
            values[column] = getattr(Conversation, column) + delta
        if budget_threshold is not None:
            cost_delta = increments.get("conversation_cost", 0.0)
            values["over_budget"] = (Conversation.conversation_cost + cost_delta) >= budget_threshold
        values["updated_at"] = func.now()

        async with self._db.transaction() as session:
            result = await session.execute(
                update(Conversation)
                .where(Conversation.id == conversation_id)
                .values(**values)
                .returning(Conversation)
                .execution_options(synchronize_session=False)
            )
            conversation = result.scalar_one_or_none()
            if conversation is None:
                raise ValueError(f"Conversation {conversation_id} not found")
            return self._to_state(conversation)

    async def find_by_user_id(self, user_id: str) -> ConversationState | None:
        async with self._db.session() as session:
            conversation = await session.scalar(select(Conversation).where(Conversation.user_id == user_id))
            return self._to_state(conversation) if conversation else None

    async def find_all(self) -> list[ConversationState]:
        async with self._db.session() as session:
            result = await session.execute(select(Conversation).order_by(Conversation.created_at))
            return [self._to_state(c) for c in result.scalars().all()]

    @staticmethod
    def _to_state(conversation: Conversation) -> ConversationState:
        """Convert ORM Conversation to ConversationState DTO."""
        return ConversationState(
            id=conversation.id,
            user_id=conversation.user_id,
            current_score=conversation.current_score,
            cumulative_score=conversation.cumulative_score,
            last_tags=list(conversation.last_tags or []),
            trust_level=conversation.trust_level,
            stage=conversation.stage,
            message_count=conversation.message_count,
            conversation_cost=conversation.conversation_cost,
            over_budget=conversation.over_budget,
            last_interaction_at=conversation.last_interaction_at,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class SqlEventRepository:
    """Append-only event log in relay.conversation_events."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def append(
        self,
        conversation_id: UUID,
        type: EventType,
        metadata: dict[str, Any],
    ) -> None:
        async with self._db.transaction() as session:
            session.add(
                ConversationEvent(
                    conversation_id=conversation_id,
                    type=str(type),
                    metadata_=metadata,
                )
            )
        logger.debug("Event %s appended to %s", type, conversation_id.hex[:8])

    async def list_by_conversation(self, conversation_id: UUID) -> list[EventRecord]:
        async with self._db.session() as session:
            result = await session.execute(
                select(ConversationEvent)
                .where(ConversationEvent.conversation_id == conversation_id)
                .order_by(ConversationEvent.created_at, ConversationEvent.seq)
            )
            return [
                EventRecord(
                    id=e.id,
                    conversation_id=e.conversation_id,
                    type=EventType(e.type),
                    metadata=e.metadata_ or {},
                    created_at=e.created_at,
                )
                for e in result.scalars().all()
            ]
