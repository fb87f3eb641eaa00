"""Pydantic DTOs for the orchestration layer inputs and outputs.

These models define the data contract between the orchestrators, the
provider backends and the persistence collaborators.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

UNCLASSIFIED_TAG = "UNCLASSIFIED"


class EventType(StrEnum):
    MESSAGE = "MESSAGE"
    ASSISTANT_RESPONSE = "ASSISTANT_RESPONSE"
    SIGNALS_DETECTED = "SIGNALS_DETECTED"
    STAGE_CHANGE = "STAGE_CHANGE"
    TASK_COMPLETED = "TASK_COMPLETED"


# --- Conversation store ---


class ConversationState(BaseModel):
    """Per-user conversation state as read from the store."""

    id: UUID
    user_id: str
    current_score: int = Field(ge=0)
    cumulative_score: int = Field(ge=0)
    last_tags: list[str] = Field(default_factory=list)
    trust_level: int = Field(ge=0, le=100)
    stage: str
    message_count: int = Field(ge=0)
    conversation_cost: float = Field(ge=0.0)
    over_budget: bool = False
    last_interaction_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class EventRecord(BaseModel):
    """One immutable entry of a conversation's event log."""

    id: UUID
    conversation_id: UUID
    type: EventType
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


# --- Provider contract ---


class ClassifyContext(BaseModel):
    last_tags: list[str] = Field(default_factory=list)
    stage: str
    trust_level: int


class GenerateContext(BaseModel):
    stage: str
    trust_level: int


class HistoryTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ClassificationResult(BaseModel):
    tags: list[str] = Field(default_factory=list)
    signals: list[str] = Field(default_factory=list)
    tokens_used: int = Field(default=0, ge=0)


class GenerationResult(BaseModel):
    text: str
    tokens_used: int = Field(default=0, ge=0)


class ClassificationOutcome(BaseModel):
    """A classification that always exists.

    Either the backend's answer, or the neutral UNCLASSIFIED stand-in
    when every backend failed (degraded=True, error holds the reason).
    """

    result: ClassificationResult
    degraded: bool = False
    error: str | None = None

    @classmethod
    def ok(cls, result: ClassificationResult) -> ClassificationOutcome:
        return cls(result=result)

    @classmethod
    def unclassified(cls, error: str | None = None) -> ClassificationOutcome:
        return cls(
            result=ClassificationResult(tags=[UNCLASSIFIED_TAG], signals=[], tokens_used=0),
            degraded=True,
            error=error,
        )


# --- Caller-facing results ---


class TagResult(BaseModel):
    """Result of tagging one inbound message."""

    conversation_id: UUID
    current_score: int
    stage: str
    trust_level: int
    tags: list[str]
    signals: list[str]
    cost: float  # incremental cost of this message only
    conversation_cost: float = 0.0  # stored total after this message
    over_budget: bool = False
    degraded: bool = False


class ChatResult(BaseModel):
    response: str
    stage: str
    trust_level: int


class TimelineView(BaseModel):
    conversation: ConversationState
    events: list[EventRecord]
