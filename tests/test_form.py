"""Tests for the settings form model"""
import random

import pytest

from conftest import read_settings, run_sql
from idregistry.config.preferences import DB_PATH_KEY, PreferenceStore
from idregistry.config.settings import DEFAULT_CHARSET
from idregistry.form import SettingsForm, StatusLevel
from idregistry.generator import SECRET_ALPHABET

LOCK_CHARSET = """
CREATE TRIGGER lock_charset BEFORE INSERT ON settings
WHEN NEW.key = 'charset'
BEGIN
    SELECT RAISE(ABORT, 'charset is locked');
END;
"""


@pytest.fixture
def form(preferences, registry):
    return SettingsForm(preferences, registry, rng=random.Random(42))


def test_initial_state(form):
    assert form.db_path == ""
    assert form.settings.id_length == 12
    assert form.settings.charset == DEFAULT_CHARSET
    assert len(form.settings.admin_secret) == 12
    assert set(form.settings.admin_secret) <= set(SECRET_ALPHABET)


def test_startup_without_remembered_path(form):
    status = form.load()
    assert status.level is StatusLevel.ERROR
    assert status.color == "red"
    assert "set the database location" in status.message


def test_save_then_reload(preferences, registry, db_path):
    form = SettingsForm(preferences, registry)
    form.browse(str(db_path))
    form.settings.id_length = 16
    form.settings.charset = "ABC123"
    form.settings.admin_secret = "s3cr3t"

    status = form.save()

    assert status.level is StatusLevel.SUCCESS
    assert status.color == "green"
    assert str(db_path) in status.message
    assert preferences.get(DB_PATH_KEY) == str(db_path)
    assert len(registry) == 0

    reloaded = SettingsForm(preferences, registry)
    status = reloaded.load()
    assert status.level is StatusLevel.SUCCESS
    assert reloaded.db_path == str(db_path)
    assert reloaded.settings.id_length == 16
    assert reloaded.settings.charset == "ABC123"
    assert reloaded.settings.admin_secret == "s3cr3t"


@pytest.mark.parametrize("length", range(8, 33))
def test_every_valid_length_round_trips(preferences, registry, db_path, length):
    form = SettingsForm(preferences, registry)
    form.browse(str(db_path))
    form.settings.id_length = length
    assert form.save().level is StatusLevel.SUCCESS

    reloaded = SettingsForm(preferences, registry)
    reloaded.load()
    assert reloaded.settings.id_length == length


@pytest.mark.parametrize("stored", ["7", "33", "many"])
def test_out_of_range_stored_length_is_ignored(form, db_path, stored):
    form.browse(str(db_path))
    assert form.save().level is StatusLevel.SUCCESS
    run_sql(db_path, f"UPDATE settings SET value = '{stored}' WHERE key = 'id_length';")

    form.settings.id_length = 20
    assert form.load_from_db(str(db_path))
    assert form.settings.id_length == 20


def test_browse_cancel_keeps_path(form):
    form.browse("/data/first.sqlite")
    form.browse("")
    assert form.db_path == "/data/first.sqlite"


@pytest.mark.parametrize("path", ["", "   "])
def test_save_requires_path(form, preferences, path):
    form.browse("/placeholder")
    form.db_path = path
    status = form.save()
    assert status.level is StatusLevel.ERROR
    assert status.message == "Error: Path is required."
    assert preferences.get(DB_PATH_KEY) == ""


def test_save_rejects_bad_form_values(form, db_path):
    form.browse(str(db_path))
    form.settings.charset = "   "
    assert form.save().level is StatusLevel.ERROR

    form.settings.charset = "x" * 101
    assert form.save().level is StatusLevel.ERROR

    form.settings.charset = "abc"
    form.settings.id_length = 40
    assert form.save().level is StatusLevel.ERROR
    assert not db_path.exists()


def test_save_trims_charset(form, db_path):
    form.browse(str(db_path))
    form.settings.charset = "  ABC  "
    form.save()
    assert read_settings(db_path)["charset"] == "ABC"


def test_save_reports_initialization_errors(form, tmp_path, preferences):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    form.browse(str(blocker / "sub" / "reg.sqlite"))

    status = form.save()

    assert status.level is StatusLevel.ERROR
    assert status.message.startswith("Error: Cannot create directory")
    assert preferences.get(DB_PATH_KEY) == ""


def test_partial_settings_failure_is_a_warning(form, db_path, preferences):
    form.browse(str(db_path))
    form.save()
    run_sql(db_path, LOCK_CHARSET)
    form.settings.id_length = 24
    form.settings.charset = "XYZ"

    status = form.save()

    assert status.level is StatusLevel.WARNING
    assert status.color == "yellow"
    assert "charset" in status.message
    assert "Path saved" in status.message
    assert preferences.get(DB_PATH_KEY) == str(db_path)
    stored = read_settings(db_path)
    assert stored["id_length"] == "24"
    assert stored["charset"] == DEFAULT_CHARSET


def test_partial_settings_failure_is_an_error_when_strict(preferences, registry, db_path):
    lenient = SettingsForm(preferences, registry)
    lenient.browse(str(db_path))
    lenient.save()
    run_sql(db_path, LOCK_CHARSET)
    preferences.set(DB_PATH_KEY, "")

    strict = SettingsForm(preferences, registry, strict=True)
    strict.browse(str(db_path))
    strict.settings.charset = "XYZ"
    status = strict.save()

    assert status.level is StatusLevel.ERROR
    assert "charset" in status.message
    assert preferences.get(DB_PATH_KEY) == ""
    assert len(registry) == 0


def test_startup_with_unreadable_database(form, preferences, tmp_path):
    missing = tmp_path / "gone.sqlite"
    preferences.set(DB_PATH_KEY, str(missing))

    status = form.load()

    assert status.level is StatusLevel.WARNING
    assert form.db_path == str(missing)
    assert not missing.exists()


def test_startup_with_database_lacking_settings(form, preferences, tmp_path):
    path = tmp_path / "empty.sqlite"
    run_sql(path, "CREATE TABLE unrelated (x TEXT);")
    preferences.set(DB_PATH_KEY, str(path))

    assert form.load().level is StatusLevel.WARNING
    assert len(form.registry) == 0


def test_generated_secret_is_not_persisted_before_save(form, preferences, db_path):
    pre_filled = form.settings.admin_secret
    assert preferences.get(DB_PATH_KEY) == ""
    form.browse(str(db_path))
    assert not db_path.exists()
    form.save()
    assert read_settings(db_path)["admin_secret"] == pre_filled


@pytest.mark.parametrize("secret", ["", "   "])
def test_save_requires_admin_secret(form, db_path, preferences, secret):
    form.browse(str(db_path))
    assert form.save().level is StatusLevel.SUCCESS
    stored_secret = read_settings(db_path)["admin_secret"]

    form.settings.admin_secret = secret
    status = form.save()

    assert status.level is StatusLevel.ERROR
    assert status.message == "Error: Admin secret is required."
    assert read_settings(db_path)["admin_secret"] == stored_secret


def test_unwritable_preferences_are_a_warning(registry, db_path, tmp_path):
    not_a_dir = tmp_path / "cfgfile"
    not_a_dir.write_text("a file, not a directory")
    form = SettingsForm(PreferenceStore(config_dir=not_a_dir), registry)
    form.browse(str(db_path))
    form.settings.charset = "ABC123"

    status = form.save()

    assert status.level is StatusLevel.WARNING
    assert status.message.startswith("Settings saved, but the path could not be remembered")
    assert read_settings(db_path)["charset"] == "ABC123"
    assert len(registry) == 0
