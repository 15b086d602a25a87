"""Persistent key-value preferences, used to remember the last database path.

Preference file: ~/.config/idregistry/<organization>/<application>.json
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "idregistry"

ORGANIZATION = "IdRegistry"
APPLICATION = "Settings"
DB_PATH_KEY = "DBPath"


class PreferenceStore:
    """JSON-file preference store keyed by an (organization, application) pair."""

    def __init__(
        self,
        organization: str = ORGANIZATION,
        application: str = APPLICATION,
        config_dir: Path | None = None,
    ) -> None:
        self.organization = organization
        self.application = application
        self.config_dir = config_dir if config_dir is not None else CONFIG_DIR

    @property
    def path(self) -> Path:
        return self.config_dir / self.organization / f"{self.application}.json"

    def get(self, key: str, default: str = "") -> str:
        """Return the stored value for key, or default."""
        value = self._load().get(key)
        if value is None:
            return default
        return str(value)

    def set(self, key: str, value: str) -> None:
        """Store a value and write the file immediately."""
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2) + "\n")

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable preference file %s: %s", self.path, e)
            return {}
        if not isinstance(raw, dict):
            return {}
        return raw
