"""idregistry MCP server — generates, confirms and looks up registry ids."""

from __future__ import annotations

import json
import logging
import secrets
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from idregistry.config.preferences import DB_PATH_KEY, PreferenceStore
from idregistry.config.settings import RegistrySettings
from idregistry.db import queries
from idregistry.db.connection import ConnectionRegistry, ScopedConnection
from idregistry.errors import ConnectionOpenError, RegistryError
from idregistry.generator import generate_id

# Logging to stderr only (stdout is reserved for MCP JSON-RPC)
logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=[logging.StreamHandler()])
logger = logging.getLogger("idregistry-mcp")

mcp = FastMCP("idregistry")


# --- Shared state ---


@dataclass
class ServerState:
    """Settings loaded at startup plus the suspend flag."""

    db_path: Path
    settings: RegistrySettings
    registry: ConnectionRegistry = field(default_factory=ConnectionRegistry)
    suspended: bool = False


_state: ServerState | None = None


def configure(db_path: str | Path, registry: ConnectionRegistry | None = None) -> ServerState:
    """Load settings from db_path and make it the database the tools use."""
    global _state
    registry = registry if registry is not None else ConnectionRegistry()
    path = Path(db_path)

    with ScopedConnection(registry, path, "mcp_startup", create=False) as conn:
        if not conn.is_open():
            raise ConnectionOpenError(f"Failed to open database: {conn.last_error}")
        mode = conn.execute("PRAGMA journal_mode=WAL").fetchone()[0]
        settings = RegistrySettings.from_rows(queries.fetch_settings(conn.connection))

    logger.info("Database ready at %s (journal mode: %s)", path, mode)
    logger.info("ID length: %d", settings.id_length)
    logger.info("Charset  : %s", settings.charset)

    _state = ServerState(db_path=path, settings=settings, registry=registry)
    return _state


def _get_state() -> ServerState:
    if _state is not None:
        return _state
    db_path = PreferenceStore().get(DB_PATH_KEY)
    if not db_path:
        raise RuntimeError("No database path configured. Run 'idregistry save --db-path <file>' first.")
    return configure(db_path)


def _details(row) -> dict:
    return {
        "id": row["id"],
        "owner": row["owner"],
        "table": row["table_name"],
        "confirmed": row["confirmed"],
        "created_at": row["created_at"],
    }


def _valid_owner(owner: str) -> bool:
    return bool(owner) and all(c.isalnum() or c == "_" for c in owner)


def _secret_matches(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode(), expected.encode())


# --- Tools ---


@mcp.tool()
def health() -> str:
    """Report service status, database path and active id settings."""
    state = _get_state()
    return json.dumps({
        "status": "suspended" if state.suspended else "ok",
        "db_path": str(state.db_path),
        "id_length": state.settings.id_length,
        "charset": state.settings.charset,
    }, indent=2)


@mcp.tool()
def preview() -> str:
    """Generate a sample id without recording it."""
    state = _get_state()
    with ScopedConnection(state.registry, state.db_path, "mcp_preview", create=False) as conn:
        if not conn.is_open():
            return f"Error: Failed to open database: {conn.last_error}"
        try:
            preview_id = generate_id(conn.connection, state.settings)
        except RegistryError as e:
            logger.error("Generation failed: %s", e)
            return f"Error: {e}"
    return json.dumps({"preview_id": preview_id})


@mcp.tool()
def generate(owner: str, table: str | None = None) -> str:
    """Generate and record a new id.

    Args:
        owner: Owning application or user (letters, digits and underscores)
        table: Table the id will be used in (optional)
    """
    state = _get_state()
    if state.suspended:
        return "Error: service is suspended for maintenance."

    owner_clean = owner.strip()
    if not _valid_owner(owner_clean):
        return "Error: owner must be non-empty and contain only letters, digits or '_'."

    logger.info("Generate request: owner=%s, table=%s", owner_clean, table)

    with ScopedConnection(state.registry, state.db_path, "mcp_generate", create=False) as conn:
        if not conn.is_open():
            return f"Error: Failed to open database: {conn.last_error}"
        try:
            new_id = generate_id(conn.connection, state.settings)
            row = queries.insert_id(conn.connection, new_id, owner_clean, table)
        except (RegistryError, sqlite3.Error) as e:
            logger.error("Generation failed: %s", e)
            return f"Error: {e}"

    return json.dumps(_details(row), indent=2)


@mcp.tool()
def confirm(id: str) -> str:
    """Mark a generated id as confirmed (in use).

    Args:
        id: The id returned by generate
    """
    state = _get_state()
    if state.suspended:
        return "Error: service is suspended for maintenance."

    with ScopedConnection(state.registry, state.db_path, "mcp_confirm", create=False) as conn:
        if not conn.is_open():
            return f"Error: Failed to open database: {conn.last_error}"
        changed = queries.confirm_id(conn.connection, id)

    if not changed:
        return json.dumps({"success": False, "message": f"ID {id} not found or already confirmed"})
    return json.dumps({"success": True, "message": f"ID {id} confirmed"})


@mcp.tool()
def get_id(id: str) -> str:
    """Look up a recorded id.

    Args:
        id: The id to look up
    """
    state = _get_state()
    with ScopedConnection(state.registry, state.db_path, "mcp_get_id", create=False) as conn:
        if not conn.is_open():
            return f"Error: Failed to open database: {conn.last_error}"
        row = queries.get_id(conn.connection, id)

    if row is None:
        return f"ID {id} not found."
    return json.dumps(_details(row), indent=2)


@mcp.tool()
def suspend(secret: str) -> str:
    """Reject new generate/confirm calls until resumed.

    Args:
        secret: The admin secret stored in the settings table
    """
    state = _get_state()
    if not _secret_matches(secret, state.settings.admin_secret):
        return "Error: invalid admin secret."
    state.suspended = True
    logger.info("Service suspended")
    return "Service suspended (new requests rejected)"


@mcp.tool()
def resume(secret: str) -> str:
    """Accept generate/confirm calls again.

    Args:
        secret: The admin secret stored in the settings table
    """
    state = _get_state()
    if not _secret_matches(secret, state.settings.admin_secret):
        return "Error: invalid admin secret."
    state.suspended = False
    logger.info("Service resumed")
    return "Service resumed"


def main() -> None:
    """Entry point for the MCP server."""
    _get_state()
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
