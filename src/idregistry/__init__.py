"""idregistry — settings tool and ID service for a SQLite-backed identifier registry."""

__version__ = "0.1.0"
