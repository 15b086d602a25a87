"""Registry settings stored in the database's ``settings`` table.

Keys:    id_length, charset, admin_secret
Storage: one TEXT row per key (see idregistry.db.schema)
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Any, Mapping

ID_LENGTH_MIN = 8
ID_LENGTH_MAX = 32
CHARSET_MAX_LENGTH = 100

DEFAULT_CHARSET = string.ascii_lowercase + string.ascii_uppercase + string.digits
DEFAULT_ADMIN_SECRET = "your-secret-here"

SETTINGS_KEYS: tuple[str, ...] = ("id_length", "charset", "admin_secret")

DEFAULTS: dict[str, Any] = {
    "id_length": 12,
    "charset": DEFAULT_CHARSET,
    "admin_secret": DEFAULT_ADMIN_SECRET,
}


def parse_id_length(value: str) -> int | None:
    """Parse a stored id_length, returning None if it is not an int in range."""
    try:
        length = int(value.strip())
    except (AttributeError, ValueError):
        return None
    if ID_LENGTH_MIN <= length <= ID_LENGTH_MAX:
        return length
    return None


@dataclass
class RegistrySettings:
    """In-memory copy of the three registry settings."""

    id_length: int = DEFAULTS["id_length"]
    charset: str = DEFAULTS["charset"]
    admin_secret: str = DEFAULTS["admin_secret"]

    def apply(self, key: str, value: str | None) -> bool:
        """Apply one stored row, ignoring invalid values. Returns True if applied.

        Out-of-range lengths are ignored rather than clamped, so the current
        value stays in place.
        """
        if value is None:
            return False
        if key == "id_length":
            length = parse_id_length(value)
            if length is None:
                return False
            self.id_length = length
            return True
        if key in ("charset", "admin_secret"):
            if not value:
                return False
            setattr(self, key, value)
            return True
        return False

    def as_rows(self) -> dict[str, str]:
        """Settings as the key → TEXT value mapping written to the database."""
        return {
            "id_length": str(self.id_length),
            "charset": self.charset,
            "admin_secret": self.admin_secret,
        }

    @classmethod
    def from_rows(cls, rows: Mapping[str, str | None]) -> RegistrySettings:
        """Build settings from stored rows, failing on anything missing or malformed."""
        for key in SETTINGS_KEYS:
            if rows.get(key) is None:
                raise ValueError(f"Missing '{key}' in settings table")

        try:
            id_length = int(str(rows["id_length"]).strip())
        except ValueError:
            raise ValueError(f"Invalid 'id_length' value: {rows['id_length']!r}") from None
        if id_length <= 0:
            raise ValueError(f"Invalid 'id_length' value: {rows['id_length']!r}")

        return cls(
            id_length=id_length,
            charset=str(rows["charset"]),
            admin_secret=str(rows["admin_secret"]),
        )
