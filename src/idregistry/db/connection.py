"""SQLite connection guard — named, scoped connections held in an owned registry."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from idregistry.errors import ConnectionNameInUse, ConnectionNotOpen

logger = logging.getLogger(__name__)


@dataclass
class ConnectionEntry:
    """Registry slot for one named connection."""

    path: Path
    connection: sqlite3.Connection | None = None
    last_error: str = ""

    @property
    def is_open(self) -> bool:
        return self.connection is not None


class ConnectionRegistry:
    """Owns the named connections alive at one time.

    Each form, CLI invocation or service instance holds its own registry, so
    tests can use an isolated one per case.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ConnectionEntry] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> list[str]:
        return sorted(self._entries)

    def add(self, name: str, path: Path) -> ConnectionEntry:
        """Register a name. Fails if a live connection already holds it."""
        if name in self._entries:
            raise ConnectionNameInUse(
                f"Connection name '{name}' is already in use "
                f"(open on {self._entries[name].path})"
            )
        entry = ConnectionEntry(path=path)
        self._entries[name] = entry
        return entry

    def get(self, name: str) -> ConnectionEntry | None:
        return self._entries.get(name)

    def remove(self, name: str) -> None:
        """Drop a name, closing its connection first if still open."""
        entry = self._entries.pop(name, None)
        if entry is None or entry.connection is None:
            return
        try:
            entry.connection.close()
        except sqlite3.Error as e:
            logger.warning("Error closing connection %s: %s", name, e)
        entry.connection = None


def _connect(path: Path, create: bool) -> sqlite3.Connection:
    if create:
        conn = sqlite3.connect(str(path))
    else:
        # mode=rw refuses to create a missing file
        uri = f"{path.resolve().as_uri()}?mode=rw"
        conn = sqlite3.connect(uri, uri=True)
    conn.row_factory = sqlite3.Row
    try:
        # Reads the header, so a non-database file fails here rather than later
        conn.execute("PRAGMA schema_version").fetchone()
    except sqlite3.Error:
        conn.close()
        raise
    return conn


class ScopedConnection:
    """A named SQLite connection bound to a ``with`` block.

    Opening never raises: a failure is kept in ``last_error`` and the caller
    checks ``is_open()`` before touching ``connection``. Leaving the block
    closes the connection and frees the name on every exit path.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        path: str | Path,
        name: str,
        create: bool = True,
    ) -> None:
        self.registry = registry
        self.path = Path(path)
        self.name = name
        self._released = False
        self._entry = registry.add(name, self.path)

        try:
            self._entry.connection = _connect(self.path, create)
        except sqlite3.Error as e:
            self._entry.last_error = str(e)
            logger.warning("Failed to open connection %s on %s: %s", name, self.path, e)
        else:
            logger.debug("Opened connection %s on %s", name, self.path)

    def __enter__(self) -> ScopedConnection:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def last_error(self) -> str:
        return self._entry.last_error

    def is_open(self) -> bool:
        entry = self.registry.get(self.name)
        return entry is self._entry and entry.is_open

    @property
    def connection(self) -> sqlite3.Connection:
        """The underlying connection; only valid while ``is_open()``."""
        connection = self._entry.connection
        if not self.is_open() or connection is None:
            raise ConnectionNotOpen(f"Connection '{self.name}' is not open")
        return connection

    def execute(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        return self.connection.execute(sql, tuple(params))

    def close(self) -> None:
        """Close and deregister. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        if self.registry.get(self.name) is self._entry:
            self.registry.remove(self.name)
        logger.debug("Released connection %s", self.name)
