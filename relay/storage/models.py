"""SQLAlchemy ORM models for the relay schema (2 tables)."""

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Identity,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import Text


class Base(DeclarativeBase):
    """Single declarative base for all schemas."""

    pass


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        CheckConstraint("current_score >= 0", name="ck_conversations_score"),
        CheckConstraint("cumulative_score >= 0", name="ck_conversations_cumulative"),
        CheckConstraint("trust_level BETWEEN 0 AND 100", name="ck_conversations_trust"),
        CheckConstraint("conversation_cost >= 0", name="ck_conversations_cost"),
        {"schema": "relay"},
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid())
    user_id: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    current_score: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    cumulative_score: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_tags = mapped_column(ARRAY(Text), nullable=False, server_default="{}")
    trust_level: Mapped[int] = mapped_column(Integer, nullable=False, server_default="50")
    stage: Mapped[str] = mapped_column(String(50), nullable=False)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    conversation_cost: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    over_budget: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    last_interaction_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    events: Mapped[list["ConversationEvent"]] = relationship(back_populates="conversation")


class ConversationEvent(Base):
    __tablename__ = "conversation_events"
    __table_args__ = (
        Index("ix_conversation_events_conversation_created", "conversation_id", "created_at", "seq"),
        {"schema": "relay"},
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid())
    # Insertion order tie-break for events sharing a created_at
    seq: Mapped[int] = mapped_column(BigInteger, Identity(always=True), nullable=False)
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("relay.conversations.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    metadata_: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, server_default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    conversation: Mapped["Conversation"] = relationship(back_populates="events")
