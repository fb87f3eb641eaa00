"""Unit tests for the migration file splitter and the bundled migrations."""

from relay.storage.migrator import MIGRATIONS_DIR, split_statements


def test_split_statements_drops_comments_and_blanks():
    sql = """
    -- header comment
    CREATE SCHEMA IF NOT EXISTS demo;

    -- table
    CREATE TABLE demo.t (
        id INT PRIMARY KEY  -- trailing comments stay with the line
    );
    ;
    """
    statements = split_statements(sql)
    assert len(statements) == 2
    assert statements[0] == "CREATE SCHEMA IF NOT EXISTS demo"
    assert statements[1].startswith("CREATE TABLE demo.t")


def test_bundled_migrations_present():
    files = sorted(p.name for p in MIGRATIONS_DIR.glob("*.sql"))
    assert files[0] == "001_conversations.sql"
    statements = split_statements((MIGRATIONS_DIR / files[0]).read_text(encoding="utf-8"))
    joined = "\n".join(statements)
    assert "relay.conversations" in joined
    assert "relay.conversation_events" in joined
