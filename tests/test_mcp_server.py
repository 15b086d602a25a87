"""Tests for the MCP registry service tools"""
import json

import pytest

from conftest import run_sql
from idregistry.config.preferences import DB_PATH_KEY, PreferenceStore
from idregistry.db.connection import ConnectionRegistry
from idregistry.db.schema import initialize_database
from idregistry.errors import ConnectionOpenError
from idregistry.mcp import server


@pytest.fixture
def state(db_path):
    registry = ConnectionRegistry()
    initialize_database(db_path, registry, admin_secret="s3cr3t")
    run_sql(db_path, "UPDATE settings SET value = '10' WHERE key = 'id_length';")
    yield server.configure(db_path, registry)
    server._state = None


def test_configure_loads_settings(state, db_path):
    assert state.settings.id_length == 10
    assert state.settings.admin_secret == "s3cr3t"
    assert not state.suspended
    assert len(state.registry) == 0


def test_configure_missing_database(tmp_path):
    with pytest.raises(ConnectionOpenError):
        server.configure(tmp_path / "absent.sqlite")


def test_configure_incomplete_settings(tmp_path):
    path = tmp_path / "reg.sqlite"
    run_sql(path, "CREATE TABLE settings (key TEXT PRIMARY KEY, value TEXT);")
    with pytest.raises(ValueError, match="Missing 'id_length'"):
        server.configure(path)


def test_health_hides_secret(state, db_path):
    payload = json.loads(server.health())
    assert payload == {
        "status": "ok",
        "db_path": str(db_path),
        "id_length": 10,
        "charset": state.settings.charset,
    }


def test_preview_does_not_record(state):
    preview_id = json.loads(server.preview())["preview_id"]
    assert len(preview_id) == 10
    assert "not found" in server.get_id(preview_id)


def test_generate_confirm_get(state):
    details = json.loads(server.generate("billing", "invoices"))
    assert details["owner"] == "billing"
    assert details["table"] == "invoices"
    assert details["confirmed"] == 0
    assert len(details["id"]) == 10

    assert json.loads(server.confirm(details["id"]))["success"] is True
    again = json.loads(server.confirm(details["id"]))
    assert again["success"] is False
    assert "already confirmed" in again["message"]

    fetched = json.loads(server.get_id(details["id"]))
    assert fetched["confirmed"] == 1
    assert len(state.registry) == 0


@pytest.mark.parametrize("owner", ["", "   ", "bad-owner", "semi;colon"])
def test_generate_rejects_bad_owner(state, owner):
    assert server.generate(owner).startswith("Error:")


def test_generate_trims_owner(state):
    assert json.loads(server.generate("  billing_2 "))["owner"] == "billing_2"


def test_suspend_and_resume(state):
    assert server.suspend("wrong").startswith("Error:")
    assert not state.suspended

    assert "suspended" in server.suspend("s3cr3t")
    assert json.loads(server.health())["status"] == "suspended"
    assert "suspended" in server.generate("billing")
    assert "suspended" in server.confirm("anything")
    # lookups keep working while suspended
    assert "not found" in server.get_id("anything")

    assert server.resume("wrong").startswith("Error:")
    assert server.resume("s3cr3t") == "Service resumed"
    assert "id" in json.loads(server.generate("billing"))


def test_state_requires_remembered_path(monkeypatch, tmp_path):
    monkeypatch.setattr(server, "_state", None)
    monkeypatch.setattr(server, "PreferenceStore", lambda: PreferenceStore(config_dir=tmp_path))
    with pytest.raises(RuntimeError, match="No database path configured"):
        server.health()


def test_state_loads_remembered_path(monkeypatch, tmp_path, db_path):
    initialize_database(db_path, ConnectionRegistry(), admin_secret="s3cr3t")
    store = PreferenceStore(config_dir=tmp_path / "config")
    store.set(DB_PATH_KEY, str(db_path))
    monkeypatch.setattr(server, "_state", None)
    monkeypatch.setattr(server, "PreferenceStore", lambda: store)

    assert json.loads(server.health())["db_path"] == str(db_path)
    assert server.suspend("").startswith("Error:")
