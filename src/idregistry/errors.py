"""Exception types raised by the registry core.

Core functions raise; the form model, the CLI and the MCP tools catch
``RegistryError`` and turn it into a status line.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for all idregistry errors."""


class InvalidPathError(RegistryError, ValueError):
    """The database path is empty."""


class DirectoryCreateError(RegistryError, OSError):
    """The parent directory of the database could not be created."""


class ConnectionOpenError(RegistryError):
    """The SQLite driver failed to open the database file."""


class SchemaError(RegistryError):
    """A DDL or seed statement failed."""


class SettingsUpdateError(RegistryError):
    """One or more settings upserts failed."""


class ConnectionNameInUse(RegistryError):
    """A live connection already holds this name."""


class ConnectionNotOpen(RegistryError, RuntimeError):
    """A query handle was requested from a guard that is not open."""


class IdGenerationError(RegistryError):
    """No usable identifier could be generated."""
