"""Pytest configuration and fixtures for idregistry tests"""
import sqlite3
from pathlib import Path

import pytest

from idregistry.config.preferences import PreferenceStore
from idregistry.db.connection import ConnectionRegistry


@pytest.fixture
def registry():
    """A fresh connection registry per test"""
    return ConnectionRegistry()


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Database path inside a directory that does not exist yet"""
    return tmp_path / "reg" / "test.sqlite"


@pytest.fixture
def preferences(tmp_path) -> PreferenceStore:
    return PreferenceStore(config_dir=tmp_path / "config")


def read_settings(path: Path) -> dict:
    """Read the settings table with a plain sqlite3 connection"""
    conn = sqlite3.connect(str(path))
    try:
        return dict(conn.execute("SELECT key, value FROM settings").fetchall())
    finally:
        conn.close()


def table_names(path: Path) -> set:
    conn = sqlite3.connect(str(path))
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        return {r[0] for r in rows}
    finally:
        conn.close()


def run_sql(path: Path, sql: str) -> None:
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(sql)
        conn.commit()
    finally:
        conn.close()
