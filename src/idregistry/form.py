"""Settings form model — the state and actions behind the configuration window.

The widget layer binds its fields to ``db_path`` and ``settings`` and shows
``status`` after each action. The CLI drives the same model.
"""

from __future__ import annotations

import logging
import random
import sqlite3
from dataclasses import dataclass
from enum import Enum

from idregistry.config.preferences import DB_PATH_KEY, PreferenceStore
from idregistry.config.settings import (
    CHARSET_MAX_LENGTH,
    ID_LENGTH_MAX,
    ID_LENGTH_MIN,
    SETTINGS_KEYS,
    RegistrySettings,
)
from idregistry.db import queries
from idregistry.db.connection import ConnectionRegistry, ScopedConnection
from idregistry.db.queries import StatementResult
from idregistry.db.schema import initialize_database
from idregistry.errors import RegistryError, SettingsUpdateError
from idregistry.generator import generate_secret

logger = logging.getLogger(__name__)

LOAD_CONNECTION = "load_settings"
UPDATE_CONNECTION = "update_settings"


class StatusLevel(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


STATUS_COLORS: dict[StatusLevel, str] = {
    StatusLevel.SUCCESS: "green",
    StatusLevel.WARNING: "yellow",
    StatusLevel.ERROR: "red",
}


@dataclass
class Status:
    level: StatusLevel
    message: str

    @property
    def color(self) -> str:
        return STATUS_COLORS[self.level]


class SettingsForm:
    """Database path plus the three registry settings, with load and save."""

    def __init__(
        self,
        preferences: PreferenceStore,
        registry: ConnectionRegistry | None = None,
        strict: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        self.preferences = preferences
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.strict = strict
        self.db_path = ""
        # Pre-filled for convenience; only persisted once the user saves
        self.settings = RegistrySettings(admin_secret=generate_secret(rng=rng))
        self.status = Status(StatusLevel.ERROR, "Please set the database location.")

    def _set_status(self, level: StatusLevel, message: str) -> Status:
        self.status = Status(level, message)
        return self.status

    def load(self) -> Status:
        """Startup: restore the remembered path and the settings stored there."""
        self.db_path = self.preferences.get(DB_PATH_KEY, "")
        if not self.db_path:
            return self._set_status(StatusLevel.ERROR, "Please set the database location.")

        if self.load_from_db(self.db_path):
            return self._set_status(StatusLevel.SUCCESS, f"Loaded settings from: {self.db_path}")
        return self._set_status(
            StatusLevel.WARNING, f"Could not load settings from: {self.db_path}"
        )

    def load_from_db(self, path: str) -> bool:
        """Apply stored settings from path. Invalid rows are skipped."""
        with ScopedConnection(self.registry, path, LOAD_CONNECTION, create=False) as conn:
            if not conn.is_open():
                return False
            try:
                rows = queries.fetch_settings(conn.connection, SETTINGS_KEYS)
            except sqlite3.Error as e:
                logger.warning("Could not read settings from %s: %s", path, e)
                return False

        for key, value in rows.items():
            if not self.settings.apply(key, value):
                logger.debug("Ignored stored %s value %r", key, value)
        return True

    def browse(self, selected: str) -> None:
        """Take a file picker result; an empty result means cancelled."""
        if selected:
            self.db_path = selected

    def _validate(self) -> str | None:
        if not self.db_path.strip():
            return "Error: Path is required."
        if not ID_LENGTH_MIN <= self.settings.id_length <= ID_LENGTH_MAX:
            return f"Error: ID length must be between {ID_LENGTH_MIN} and {ID_LENGTH_MAX}."
        charset = self.settings.charset.strip()
        if not charset:
            return "Error: Character set is required."
        if len(charset) > CHARSET_MAX_LENGTH:
            return f"Error: Character set is limited to {CHARSET_MAX_LENGTH} characters."
        if not self.settings.admin_secret.strip():
            return "Error: Admin secret is required."
        return None

    def save(self) -> Status:
        """Initialize the database, write all three settings, remember the path."""
        error = self._validate()
        if error:
            return self._set_status(StatusLevel.ERROR, error)

        path = self.db_path.strip()
        self.settings.charset = self.settings.charset.strip()

        try:
            results = initialize_database(
                path, self.registry, admin_secret=self.settings.admin_secret, strict=self.strict
            )
            results += self._write_settings(path)
        except RegistryError as e:
            return self._set_status(StatusLevel.ERROR, f"Error: {e}")

        try:
            self.preferences.set(DB_PATH_KEY, path)
        except OSError as e:
            logger.warning("Could not remember database path %s: %s", path, e)
            return self._set_status(
                StatusLevel.WARNING,
                f"Settings saved, but the path could not be remembered: {e}",
            )
        self.db_path = self.preferences.get(DB_PATH_KEY, path)

        failed = list(dict.fromkeys(queries.failed_keys(results)))
        if failed:
            return self._set_status(
                StatusLevel.WARNING,
                f"Database created, but settings update failed ({', '.join(failed)}). Path saved.",
            )
        return self._set_status(
            StatusLevel.SUCCESS, f"Database initialized and settings saved at {path}"
        )

    def _write_settings(self, path: str) -> list[StatementResult]:
        with ScopedConnection(self.registry, path, UPDATE_CONNECTION) as conn:
            if not conn.is_open():
                error = conn.last_error
            else:
                try:
                    return queries.upsert_settings(
                        conn.connection, self.settings.as_rows(), strict=self.strict
                    )
                except sqlite3.Error as e:
                    error = str(e)

        logger.warning("Could not write settings to %s: %s", path, error)
        if self.strict:
            raise SettingsUpdateError(f"Failed to update settings: {error}")
        return [StatementResult(key=key, ok=False, error=error) for key in SETTINGS_KEYS]
