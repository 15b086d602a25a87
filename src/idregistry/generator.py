"""Random value generation — admin secret placeholders and registry ids."""

from __future__ import annotations

import logging
import random
import sqlite3
import string

from idregistry.config.settings import RegistrySettings
from idregistry.db import queries
from idregistry.errors import IdGenerationError

logger = logging.getLogger(__name__)

SECRET_ALPHABET = (
    string.ascii_lowercase + string.ascii_uppercase + string.digits + "!@#$%^&*"
)
DEFAULT_SECRET_LENGTH = 12
MAX_ID_ATTEMPTS = 100


def generate_secret(
    length: int = DEFAULT_SECRET_LENGTH,
    rng: random.Random | None = None,
) -> str:
    """Draw ``length`` characters uniformly from SECRET_ALPHABET.

    This pre-fills the admin secret field for convenience. It uses the
    ``random`` module, so it is a placeholder and not a security-grade secret.
    """
    if length < 0:
        raise ValueError("length must be non-negative")
    rng = rng or random.Random()
    return "".join(rng.choice(SECRET_ALPHABET) for _ in range(length))


def generate_id(
    conn: sqlite3.Connection,
    settings: RegistrySettings,
    rng: random.Random | None = None,
) -> str:
    """Generate an id that is not all digits and not already in ``ids``.

    Raises IdGenerationError for an empty charset or after MAX_ID_ATTEMPTS
    unusable candidates.
    """
    if not settings.charset:
        raise IdGenerationError("Charset is empty")

    rng = rng or random.Random()
    for attempt in range(1, MAX_ID_ATTEMPTS + 1):
        candidate = "".join(rng.choice(settings.charset) for _ in range(settings.id_length))

        if all(c in string.digits for c in candidate):
            continue

        if not queries.id_exists(conn, candidate):
            return candidate

        if attempt % 20 == 0:
            logger.info("Collision on attempt %d, retrying...", attempt)

    raise IdGenerationError(
        f"Failed to generate unique ID after {MAX_ID_ATTEMPTS} attempts. "
        "Database may be very full."
    )
