"""idregistry CLI entry point."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from idregistry import __version__
from idregistry.config.preferences import CONFIG_DIR, DB_PATH_KEY, PreferenceStore
from idregistry.config.settings import CHARSET_MAX_LENGTH, ID_LENGTH_MAX, ID_LENGTH_MIN
from idregistry.form import SettingsForm, Status, StatusLevel


def _echo_status(status: Status) -> None:
    click.secho(status.message, fg=status.color, err=status.level is StatusLevel.ERROR)


def _mask(secret: str) -> str:
    return "*" * len(secret)


@click.group()
@click.version_option(version=__version__, prog_name="idregistry")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="IDREGISTRY_CONFIG_DIR",
    default=None,
    help=f"Preference directory (default: {CONFIG_DIR})",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None, verbose: bool) -> None:
    """idregistry — configure the SQLite database behind the ID registry."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )
    ctx.ensure_object(dict)
    ctx.obj["preferences"] = PreferenceStore(config_dir=config_dir)


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show where preferences live and the remembered database path."""
    preferences = ctx.obj["preferences"]
    click.echo(f"Preference file: {preferences.path}")
    click.echo(f"Database path:   {preferences.get(DB_PATH_KEY) or '(not set)'}")


@cli.command()
@click.option("--reveal", is_flag=True, help="Print the admin secret instead of masking it")
@click.pass_context
def show(ctx: click.Context, reveal: bool) -> None:
    """Load the remembered database and show its settings."""
    form = SettingsForm(ctx.obj["preferences"])
    status = form.load()

    click.echo(f"Database path: {form.db_path or '(not set)'}")
    click.echo(f"ID length:     {form.settings.id_length}")
    click.echo(f"Character set: {form.settings.charset}")
    secret = form.settings.admin_secret
    click.echo(f"Admin secret:  {secret if reveal else _mask(secret)}")
    click.echo()
    _echo_status(status)


@cli.command()
@click.option("--db-path", "-d", default=None, help="Database file (defaults to the remembered one)")
@click.option(
    "--id-length",
    "-l",
    type=click.IntRange(ID_LENGTH_MIN, ID_LENGTH_MAX),
    default=None,
    help=f"Identifier length ({ID_LENGTH_MIN}-{ID_LENGTH_MAX})",
)
@click.option("--charset", "-c", default=None, help="Characters identifiers are drawn from")
@click.option("--admin-secret", "-s", default=None, help="Admin secret for the ID service")
@click.option("--strict", is_flag=True, help="Treat any failed settings statement as an error")
@click.pass_context
def save(
    ctx: click.Context,
    db_path: str | None,
    id_length: int | None,
    charset: str | None,
    admin_secret: str | None,
    strict: bool,
) -> None:
    """Initialize the database and save settings into it.

    Values not given on the command line keep what is stored in the
    remembered database.
    """
    if charset is not None and len(charset.strip()) > CHARSET_MAX_LENGTH:
        raise click.BadParameter(
            f"at most {CHARSET_MAX_LENGTH} characters", param_hint="'--charset'"
        )

    form = SettingsForm(ctx.obj["preferences"], strict=strict)
    form.load()
    if db_path is not None:
        form.browse(db_path)
    if id_length is not None:
        form.settings.id_length = id_length
    if charset is not None:
        form.settings.charset = charset
    if admin_secret is not None:
        form.settings.admin_secret = admin_secret

    status = form.save()
    _echo_status(status)
    if status.level is StatusLevel.ERROR:
        raise SystemExit(1)


@cli.command()
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--strict", is_flag=True, help="Fail if a default settings row cannot be inserted")
def init(path: str, strict: bool) -> None:
    """Create the registry schema in PATH without touching existing data."""
    from idregistry.db.connection import ConnectionRegistry
    from idregistry.db.queries import failed_keys
    from idregistry.db.schema import initialize_database
    from idregistry.errors import RegistryError

    try:
        results = initialize_database(path, ConnectionRegistry(), strict=strict)
    except RegistryError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1)

    failed = failed_keys(results)
    if failed:
        click.secho(
            f"Database ready at {path}, but default settings failed: {', '.join(failed)}",
            fg="yellow",
        )
    else:
        click.secho(f"Database ready at {path}", fg="green")


@cli.command()
@click.option("--length", "-n", type=click.IntRange(1, 256), default=12, show_default=True)
def secret(length: int) -> None:
    """Print a random placeholder admin secret (not security grade)."""
    from idregistry.generator import generate_secret

    click.echo(generate_secret(length))


@cli.command()
@click.pass_context
def preview(ctx: click.Context) -> None:
    """Generate a sample id from the remembered database's settings."""
    from idregistry.db.connection import ConnectionRegistry, ScopedConnection
    from idregistry.db import queries
    from idregistry.config.settings import RegistrySettings
    from idregistry.errors import RegistryError
    from idregistry.generator import generate_id

    db_path = ctx.obj["preferences"].get(DB_PATH_KEY)
    if not db_path:
        click.echo("No database path set. Run 'idregistry save --db-path <file>' first.", err=True)
        raise SystemExit(1)

    with ScopedConnection(ConnectionRegistry(), db_path, "preview", create=False) as conn:
        if not conn.is_open():
            click.echo(f"Error: Failed to open database: {conn.last_error}", err=True)
            raise SystemExit(1)
        try:
            settings = RegistrySettings.from_rows(queries.fetch_settings(conn.connection))
            click.echo(generate_id(conn.connection, settings))
        except (ValueError, RegistryError) as e:
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(1)
