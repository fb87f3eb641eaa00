"""Auto-migration runner -- applies pending SQL migrations on startup.

Discovers sql/migrations/*.sql files, tracks applied versions in
relay_system.schema_migrations, and executes pending ones in order,
one statement at a time (asyncpg prepares each statement separately).
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent.parent / "sql" / "migrations"

_BOOTSTRAP_SQL = (
    "CREATE SCHEMA IF NOT EXISTS relay_system",
    """
    CREATE TABLE IF NOT EXISTS relay_system.schema_migrations (
        version    VARCHAR(20) PRIMARY KEY,
        name       VARCHAR(255) NOT NULL,
        checksum   VARCHAR(64) NOT NULL,
        applied_at TIMESTAMPTZ DEFAULT now()
    )
    """,
)


def split_statements(sql: str) -> list[str]:
    """Split a migration file on statement-terminating semicolons.

    Full-line ``--`` comments are dropped. Migrations must not use
    dollar-quoted bodies.
    """
    lines = [line for line in sql.splitlines() if not line.lstrip().startswith("--")]
    statements = [s.strip() for s in "\n".join(lines).split(";")]
    return [s for s in statements if s]


async def _applied_versions(conn: AsyncConnection) -> set[str]:
    result = await conn.execute(text("SELECT version FROM relay_system.schema_migrations"))
    return {row[0] for row in result}


async def run_migrations(engine: AsyncEngine, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply pending SQL migrations and return list of newly applied names."""
    if not migrations_dir.is_dir():
        logger.warning("No migrations directory found at %s", migrations_dir)
        return []

    # Sorted by name (e.g. 001_conversations.sql)
    files = sorted(migrations_dir.glob("*.sql"))
    if not files:
        return []

    applied: list[str] = []
    async with engine.begin() as conn:
        for statement in _BOOTSTRAP_SQL:
            await conn.execute(text(statement))

        existing = await _applied_versions(conn)

        for path in files:
            version = path.stem.split("_", 1)[0]
            if version in existing:
                continue

            sql = path.read_text(encoding="utf-8")
            checksum = hashlib.sha256(sql.encode()).hexdigest()

            logger.info("Applying migration %s ...", path.name)
            for statement in split_statements(sql):
                await conn.execute(text(statement))
            await conn.execute(
                text(
                    "INSERT INTO relay_system.schema_migrations (version, name, checksum) "
                    "VALUES (:version, :name, :checksum)"
                ),
                {"version": version, "name": path.stem, "checksum": checksum},
            )
            applied.append(path.stem)

    if applied:
        logger.info("Migrations applied: %s", applied)
    else:
        logger.debug("All migrations up to date")

    return applied
