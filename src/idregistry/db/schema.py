"""Schema initialization — idempotent table creation and default settings."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from idregistry.config.settings import DEFAULTS, RegistrySettings
from idregistry.db import queries
from idregistry.db.connection import ConnectionRegistry, ScopedConnection
from idregistry.db.queries import StatementResult
from idregistry.errors import (
    ConnectionOpenError,
    DirectoryCreateError,
    InvalidPathError,
    SchemaError,
)

logger = logging.getLogger(__name__)

INIT_CONNECTION = "init_connection"

TABLES: list[tuple[str, str]] = [
    (
        "ids",
        """
        CREATE TABLE IF NOT EXISTS ids (
            id          TEXT PRIMARY KEY,
            owner       TEXT NOT NULL,
            table_name  TEXT,
            user_id     TEXT,
            confirmed   INTEGER DEFAULT 0,
            created_at  DATETIME DEFAULT CURRENT_TIMESTAMP,
            deleted     INTEGER DEFAULT 0
        )
        """,
    ),
    (
        "settings",
        """
        CREATE TABLE IF NOT EXISTS settings (
            key    TEXT PRIMARY KEY,
            value  TEXT
        )
        """,
    ),
]


def default_settings(admin_secret: str | None = None) -> dict[str, str]:
    """Rows seeded into a fresh settings table."""
    settings = RegistrySettings(
        id_length=DEFAULTS["id_length"],
        charset=DEFAULTS["charset"],
        admin_secret=admin_secret or DEFAULTS["admin_secret"],
    )
    return settings.as_rows()


def initialize_database(
    path: str | Path,
    registry: ConnectionRegistry,
    admin_secret: str | None = None,
    strict: bool = False,
) -> list[StatementResult]:
    """Prepare a SQLite file as a registry database.

    Creates the parent directory, both tables, and the three default settings
    rows. Existing tables and rows are left untouched, so this is safe to run
    repeatedly.

    Args:
        path: Database file path.
        registry: Registry that owns the init connection name.
        admin_secret: Seed value for admin_secret (placeholder if omitted).
        strict: Raise SchemaError if any default row fails to insert instead
                of returning the failure.

    Returns:
        One StatementResult per seeded settings key.
    """
    if not str(path).strip():
        raise InvalidPathError("Database path is empty.")

    db_path = Path(path)
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreateError(
            f"Cannot create directory: {db_path.parent.absolute()} ({e})"
        ) from e

    with ScopedConnection(registry, db_path, INIT_CONNECTION) as conn:
        if not conn.is_open():
            raise ConnectionOpenError(f"Failed to open database: {conn.last_error}")

        for table, sql in TABLES:
            try:
                conn.execute(sql)
            except sqlite3.Error as e:
                raise SchemaError(f"Failed to create {table} table: {e}") from e

        results = queries.seed_settings(conn.connection, default_settings(admin_secret))
        try:
            conn.connection.commit()
        except sqlite3.Error as e:
            raise SchemaError(f"Failed to commit default settings: {e}") from e

    failed = [r for r in results if not r.ok]
    if failed:
        details = "; ".join(f"{r.key}: {r.error}" for r in failed)
        if strict:
            raise SchemaError(f"Failed to insert default settings ({details})")
        logger.warning("Database %s initialized, but default settings failed (%s)", db_path, details)
    else:
        logger.debug("Database %s initialized", db_path)

    return results
