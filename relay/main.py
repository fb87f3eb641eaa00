"""Relay service entry point.

Initializes all components and starts the server:
  Settings -> Database -> Personas -> Providers -> Router -> Orchestrators -> App -> Uvicorn

Uses Starlette lifespan to manage component lifecycle on the same
event loop as uvicorn.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from starlette.applications import Starlette

from relay.config import Settings
from relay.orchestration import ConversationTimeline, MessageTagger, ResponseGenerator
from relay.personas import PersonaRegistry
from relay.providers import ProviderRouter, build_providers
from relay.scoring import CostTracker, ScoreEngine
from relay.storage.database import Database
from relay.storage.migrator import run_migrations
from relay.storage.repositories import SqlConversationRepository, SqlEventRepository

logger = logging.getLogger(__name__)


async def create_components(settings: Settings) -> dict:
    """Initialize all components in dependency order.

    Returns dict with all components for lifespan storage.

    1. Database - connection pool, migrations applied
    2. PersonaRegistry - system prompts for generation
    3. ProviderRouter - backends in priority order
    4. ScoreEngine + CostTracker - pure scoring and pricing
    5. Repositories and orchestrators
    """
    database = Database(settings)
    try:
        await run_migrations(database.engine)
        await database.connect()

        personas = PersonaRegistry.from_directory(settings.persona_dir, settings.default_persona)

        score_engine = ScoreEngine()
        cost_tracker = CostTracker(settings.cost_per_1k_tokens, settings.budget_threshold)

        providers = build_providers(settings, personas, score_engine.known_signals)
        if not providers:
            raise RuntimeError(
                "No LLM provider configured -- set at least one of ANTHROPIC_API_KEY, "
                "GEMINI_API_KEY, OPENAI_API_KEY, DEEPSEEK_API_KEY"
            )
    except Exception:
        await database.disconnect()
        raise
    router = ProviderRouter(providers)

    conversations = SqlConversationRepository(database, initial_stage=score_engine.initial_stage)
    events = SqlEventRepository(database)

    tagger = MessageTagger(conversations, events, router, score_engine, cost_tracker)
    responder = ResponseGenerator(conversations, events, router, history_window=settings.history_window)
    timeline = ConversationTimeline(conversations, events)

    return {
        "database": database,
        "personas": personas,
        "router": router,
        "tagger": tagger,
        "responder": responder,
        "timeline": timeline,
    }


async def shutdown_components(components: dict) -> None:
    """Graceful shutdown in reverse order."""
    logger.info("Shutting down relay...")

    router = components.get("router")
    if router:
        await router.close()

    database = components.get("database")
    if database:
        await database.disconnect()

    logger.info("Relay shutdown complete.")


def build_app(settings: Settings) -> Starlette:
    """Build the Starlette app; components come alive in the lifespan."""
    # Closure to share components between lifespan and app
    components: dict = {}

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        nonlocal components
        components.update(await create_components(settings))

        # Store on app.state for access in tests
        app.state.components = components

        logger.info(
            "Relay started: providers=%s, budget=%.2f @ %.4f/1k tokens",
            " -> ".join(components["router"].names),
            settings.budget_threshold,
            settings.cost_per_1k_tokens,
        )
        yield

        await shutdown_components(components)

    # Import here to avoid circular imports at module level
    from relay.api.rest import create_app

    return create_app(
        tagger=_lazy_component(components, "tagger"),
        responder=_lazy_component(components, "responder"),
        timeline=_lazy_component(components, "timeline"),
        database=_lazy_component(components, "database"),
        settings=settings,
        lifespan=lifespan,
    )


class _LazyProxy:
    """Proxy that defers attribute access to a dict-backed component.

    Allows create_app() to receive component references before lifespan
    has initialized them.
    """

    def __init__(self, components: dict, key: str) -> None:
        object.__setattr__(self, "_components", components)
        object.__setattr__(self, "_key", key)

    def _resolve(self):
        components = object.__getattribute__(self, "_components")
        key = object.__getattribute__(self, "_key")
        obj = components.get(key)
        if obj is None:
            raise RuntimeError(f"Component '{key}' not yet initialized -- lifespan hasn't started")
        return obj

    def __getattr__(self, name):
        return getattr(self._resolve(), name)


def _lazy_component(components: dict, key: str) -> _LazyProxy:
    return _LazyProxy(components, key)


def main() -> None:
    """Entry point -- parse settings, build app, run server."""
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    logger.info("Starting relay on %s:%d", settings.host, settings.port)
    logger.info("Database: %s:%s/%s", settings.db_host, settings.db_port, settings.db_name)
    logger.info("Provider order: %s", ", ".join(settings.provider_order))

    if not settings.api_key:
        logger.warning("API_KEY not set -- /brain endpoints are unauthenticated")

    app = build_app(settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
