"""Database schema management."""

from __future__ import annotations

from broker_console.repositories.db_pool import ThreadLocalConnection


def initialize_schema(pool: ThreadLocalConnection) -> None:
    """Create required tables and indexes if they do not exist."""
    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS documents (
            path TEXT NOT NULL,
            id TEXT NOT NULL,
            data TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (path, id)
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            salt TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    pool.execute("CREATE INDEX IF NOT EXISTS idx_documents_path ON documents(path)")
