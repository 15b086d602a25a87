"""Database query functions — settings rows and identifier records."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Mapping

from idregistry.config.settings import SETTINGS_KEYS
from idregistry.errors import SettingsUpdateError

logger = logging.getLogger(__name__)


@dataclass
class StatementResult:
    """Outcome of one per-key settings statement."""

    key: str
    ok: bool
    error: str | None = None


def failed_keys(results: list[StatementResult]) -> list[str]:
    return [r.key for r in results if not r.ok]


def _execute_each(
    conn: sqlite3.Connection,
    sql: str,
    values: Mapping[str, str],
) -> list[StatementResult]:
    """Run sql once per (key, value), recording each statement's outcome."""
    results: list[StatementResult] = []
    for key, value in values.items():
        try:
            conn.execute(sql, (key, value))
        except sqlite3.Error as e:
            logger.warning("Settings statement for %r failed: %s", key, e)
            results.append(StatementResult(key=key, ok=False, error=str(e)))
        else:
            results.append(StatementResult(key=key, ok=True))
    return results


# --- Settings ---


def seed_settings(
    conn: sqlite3.Connection,
    values: Mapping[str, str],
) -> list[StatementResult]:
    """Insert settings rows only where the key is absent. Does not commit."""
    return _execute_each(
        conn,
        "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
        values,
    )


def upsert_settings(
    conn: sqlite3.Connection,
    values: Mapping[str, str],
    strict: bool = False,
) -> list[StatementResult]:
    """Insert or replace every settings row and commit what succeeded.

    Each statement is checked on its own. With ``strict`` any failure raises
    SettingsUpdateError once all statements have been attempted.
    """
    results = _execute_each(
        conn,
        "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
        values,
    )
    conn.commit()

    failed = failed_keys(results)
    if strict and failed:
        details = "; ".join(f"{r.key}: {r.error}" for r in results if not r.ok)
        raise SettingsUpdateError(f"Failed to update settings ({details})")
    return results


def fetch_settings(
    conn: sqlite3.Connection,
    keys: tuple[str, ...] = SETTINGS_KEYS,
) -> dict[str, str | None]:
    """Read the given settings keys. Missing keys are absent from the result."""
    placeholders = ", ".join("?" for _ in keys)
    rows = conn.execute(
        f"SELECT key, value FROM settings WHERE key IN ({placeholders})",
        keys,
    ).fetchall()
    return {row["key"]: row["value"] for row in rows}


# --- Identifiers ---


def id_exists(conn: sqlite3.Connection, id_: str) -> bool:
    """Check whether an id is already taken, deleted rows included."""
    row = conn.execute("SELECT COUNT(*) FROM ids WHERE id = ?", (id_,)).fetchone()
    return row[0] > 0


def insert_id(
    conn: sqlite3.Connection,
    id_: str,
    owner: str,
    table_name: str | None = None,
) -> sqlite3.Row:
    """Record a newly generated id and return the stored row."""
    conn.execute(
        """
        INSERT INTO ids (id, owner, table_name, confirmed, created_at)
        VALUES (?, ?, ?, 0, CURRENT_TIMESTAMP)
        """,
        (id_, owner, table_name),
    )
    conn.commit()
    return conn.execute(
        "SELECT id, owner, table_name, confirmed, created_at FROM ids WHERE id = ?",
        (id_,),
    ).fetchone()


def confirm_id(conn: sqlite3.Connection, id_: str) -> bool:
    """Mark a live, unconfirmed id as confirmed. Returns False if nothing changed."""
    cursor = conn.execute(
        "UPDATE ids SET confirmed = 1 WHERE id = ? AND confirmed = 0 AND deleted = 0",
        (id_,),
    )
    conn.commit()
    return cursor.rowcount > 0


def get_id(conn: sqlite3.Connection, id_: str) -> sqlite3.Row | None:
    """Look up a non-deleted id."""
    return conn.execute(
        """
        SELECT id, owner, table_name, confirmed, created_at
        FROM ids WHERE id = ? AND deleted = 0
        """,
        (id_,),
    ).fetchone()
