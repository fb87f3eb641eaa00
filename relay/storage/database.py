"""Async database engine, sessions and connectivity checks."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from relay.config import Settings

REQUIRED_TABLES = {
    ("relay", "conversations"),
    ("relay", "conversation_events"),
}


class Database:
    def __init__(self, settings: Settings) -> None:
        self.engine = create_async_engine(
            settings.db_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            echo=settings.log_level == "debug",
        )
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    async def connect(self) -> None:
        """Verify the connection and that migrations created our tables."""
        async with self.engine.connect() as conn:
            result = await conn.execute(
                text(
                    "SELECT table_schema, table_name FROM information_schema.tables "
                    "WHERE table_schema = 'relay'"
                )
            )
            present = {(row[0], row[1]) for row in result}
        missing = REQUIRED_TABLES - present
        if missing:
            names = ", ".join(f"{s}.{t}" for s, t in sorted(missing))
            raise RuntimeError(f"Missing database tables: {names} (run migrations first)")

    async def ping(self) -> None:
        """Round-trip a trivial query. Raises on any connectivity problem."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self) -> None:
        """Dispose of connection pool."""
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield an async session with automatic cleanup."""
        async with self.session_factory() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside a transaction; commit on exit, roll back on error."""
        async with self.session_factory() as session:
            async with session.begin():
                yield session

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.disconnect()
