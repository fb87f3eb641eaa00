"""Shared fixtures.

Orchestrator and router tests run against in-memory repositories and
scripted providers. Repository tests use real Postgres (DB_* env
vars) and skip when no database is reachable.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

from relay.config import Settings
from relay.orchestration.schemas import (
    ClassificationResult,
    ClassifyContext,
    ConversationState,
    EventRecord,
    EventType,
    GenerateContext,
    GenerationResult,
    HistoryTurn,
)
from relay.personas import Persona, PersonaRegistry
from relay.providers.base import ProviderError
from relay.scoring import CostTracker, ScoreEngine
from relay.storage.database import Database
from relay.storage.migrator import run_migrations

# ---------------------------------------------------------------------------
# In-memory persistence
# ---------------------------------------------------------------------------


class InMemoryConversationRepository:
    """Dict-backed conversation store with the same contract as the SQL one."""

    def __init__(self, initial_stage: str = "triage", initial_trust: int = 50) -> None:
        self._initial_stage = initial_stage
        self._initial_trust = initial_trust
        self.rows: dict[UUID, ConversationState] = {}
        self.update_calls: list[tuple[UUID, dict, dict]] = []
        self.fail_updates = False

    async def find_or_create(self, user_id: str) -> ConversationState:
        existing = await self.find_by_user_id(user_id)
        if existing:
            return existing
        now = datetime.now(UTC)
        state = ConversationState(
            id=uuid4(),
            user_id=user_id,
            current_score=0,
            cumulative_score=0,
            last_tags=[],
            trust_level=self._initial_trust,
            stage=self._initial_stage,
            message_count=0,
            conversation_cost=0.0,
            over_budget=False,
            created_at=now,
            updated_at=now,
        )
        self.rows[state.id] = state
        return state

    async def update(self, conversation_id, fields, increments=None, budget_threshold=None) -> ConversationState:
        if self.fail_updates:
            raise ConnectionError("database unavailable")
        increments = increments or {}
        self.update_calls.append((conversation_id, dict(fields), dict(increments)))
        current = self.rows[conversation_id]
        values = current.model_dump()
        values.update(fields)
        for column, delta in increments.items():
            values[column] = values[column] + delta
        if budget_threshold is not None:
            values["over_budget"] = values["conversation_cost"] >= budget_threshold
        values["updated_at"] = datetime.now(UTC)
        updated = ConversationState(**values)
        self.rows[conversation_id] = updated
        return updated

    async def find_by_user_id(self, user_id: str) -> ConversationState | None:
        for state in self.rows.values():
            if state.user_id == user_id:
                return state
        return None

    async def find_all(self) -> list[ConversationState]:
        return sorted(self.rows.values(), key=lambda s: s.created_at)


class InMemoryEventRepository:
    """Append-only list of events."""

    def __init__(self) -> None:
        self.records: list[EventRecord] = []
        self.fail_appends = False

    async def append(self, conversation_id: UUID, type: EventType, metadata: dict[str, Any]) -> None:
        if self.fail_appends:
            raise ConnectionError("database unavailable")
        self.records.append(
            EventRecord(
                id=uuid4(),
                conversation_id=conversation_id,
                type=type,
                metadata=metadata,
                created_at=datetime.now(UTC),
            )
        )

    async def list_by_conversation(self, conversation_id: UUID) -> list[EventRecord]:
        return [e for e in self.records if e.conversation_id == conversation_id]

    def types(self, conversation_id: UUID | None = None) -> list[EventType]:
        return [e.type for e in self.records if conversation_id is None or e.conversation_id == conversation_id]


# ---------------------------------------------------------------------------
# Scripted providers
# ---------------------------------------------------------------------------


class ScriptedProvider:
    """Provider that returns preset results or raises preset errors.

    Records every call so tests can assert on what reached the backend.
    """

    def __init__(
        self,
        name: str,
        classification: ClassificationResult | None = None,
        generation: GenerationResult | None = None,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.classification = classification or ClassificationResult(tags=[], signals=[], tokens_used=0)
        self.generation = generation or GenerationResult(text=f"reply from {name}", tokens_used=0)
        self.error = error
        self.classify_calls: list[tuple[str, ClassifyContext]] = []
        self.generate_calls: list[dict[str, Any]] = []
        self.closed = False

    async def classify(self, message: str, context: ClassifyContext) -> ClassificationResult:
        self.classify_calls.append((message, context))
        if self.error:
            raise self.error
        return self.classification

    async def generate_response(
        self,
        message: str,
        history: list[HistoryTurn],
        context: GenerateContext,
        persona_id: str | None = None,
        supplemental_context: str | None = None,
    ) -> GenerationResult:
        self.generate_calls.append(
            {
                "message": message,
                "history": history,
                "context": context,
                "persona_id": persona_id,
                "supplemental_context": supplemental_context,
            }
        )
        if self.error:
            raise self.error
        return self.generation

    async def close(self) -> None:
        self.closed = True


def failing(name: str, message: str = "boom") -> ScriptedProvider:
    return ScriptedProvider(name, error=ProviderError(name, message))


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def score_engine() -> ScoreEngine:
    return ScoreEngine()


@pytest.fixture
def cost_tracker() -> CostTracker:
    return CostTracker(cost_per_1k_tokens=0.02, budget_threshold=10.0)


@pytest.fixture
def conversations(score_engine) -> InMemoryConversationRepository:
    return InMemoryConversationRepository(initial_stage=score_engine.initial_stage)


@pytest.fixture
def events() -> InMemoryEventRepository:
    return InMemoryEventRepository()


@pytest.fixture
def personas() -> PersonaRegistry:
    return PersonaRegistry(
        [
            Persona(
                id="default",
                name="Default",
                system_prompt="You are a helpful engineer.",
                principles=["Be direct."],
            ),
            Persona(
                id="reviewer",
                name="Reviewer",
                system_prompt="You review code.",
                principles=["Order findings by severity."],
                limits=["Do not approve unseen code."],
            ),
        ],
        default_id="default",
    )


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def settings() -> Settings:
    """Session-scoped settings instance."""
    return Settings()


@pytest_asyncio.fixture
async def db(settings):
    """Migrated Postgres database; skips the test when none is reachable."""
    database = Database(settings)
    try:
        await run_migrations(database.engine)
        await database.connect()
    except Exception as e:
        await database.disconnect()
        pytest.skip(f"Postgres not available: {e}")
    yield database
    await database.disconnect()
