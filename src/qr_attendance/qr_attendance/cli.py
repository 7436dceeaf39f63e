"""Flask CLI commands (`flask --app ... <command>`)."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import click
from flask import Flask, current_app
from flask.cli import with_appcontext

from .container import Container
from .core.enums import Role
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, list_tables

SCHEMA_PATH = Path(__file__).resolve().parent / "database" / "schema.sql"
EXTENSION_KEY = "qr_attendance"


def get_container(app: Flask = None) -> Container:
    app = app or current_app
    return app.extensions[EXTENSION_KEY]


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create the database (if needed) and apply schema.sql."""
    db_config = current_app.config["DB_CONFIG"]
    apply_schema(db_config, schema_path=SCHEMA_PATH)
    tables = list_tables(db_config)
    click.echo(
        "OK: Applied schema.sql -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(tables={len(tables)})"
    )


@click.command("reap-sessions")
@with_appcontext
def reap_sessions_command():
    """Delete expired QR sessions once and report how many were removed."""
    removed = get_container().session_reaper.run_once()
    click.echo(f"Removed {removed} expired session(s).")


@click.command("issue-session")
@click.argument("event_id")
@click.option("--ttl", "ttl_seconds", type=int, default=None, help="Lifetime in seconds.")
@click.option("--latitude", type=float, default=None)
@click.option("--longitude", type=float, default=None)
@click.option("--radius", "radius_meters", type=float, default=None, help="Geofence radius in meters.")
@click.option("--png", "png_path", type=click.Path(dir_okay=False), default=None, help="Write the QR image here.")
@with_appcontext
def issue_session_command(event_id, ttl_seconds, latitude, longitude, radius_meters, png_path):
    """Issue a QR attendance session for EVENT_ID and print its payload."""
    from .sessions.service import geo_fence_from_request, render_qr_png

    container = get_container()
    try:
        geo_fence = None
        if latitude is not None or longitude is not None:
            geo_fence = geo_fence_from_request(
                {"latitude": latitude, "longitude": longitude, "radiusMeters": radius_meters},
                default_radius_meters=container.default_geofence_radius_meters,
            )
        payload = container.session_issuer.issue(
            event_id=event_id,
            ttl=timedelta(seconds=ttl_seconds) if ttl_seconds is not None else None,
            geo_fence=geo_fence,
        )
    except DomainError as e:
        raise click.ClickException(str(e))

    click.echo(payload.to_json())
    if png_path:
        Path(png_path).write_bytes(render_qr_png(payload))
        click.echo(f"QR image written to {png_path}")


@click.command("issue-token")
@click.argument("subject_id")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.PARTICIPANT.value,
    show_default=True,
)
@with_appcontext
def issue_token_command(subject_id, role):
    """Create an API bearer token for SUBJECT_ID. The token is shown once."""
    try:
        token = get_container().identity_service.issue_token(subject_id=subject_id, role=Role(role))
    except DomainError as e:
        raise click.ClickException(str(e))
    click.echo(token)


def register_cli_commands(app: Flask) -> None:
    app.cli.add_command(init_db_command)
    app.cli.add_command(reap_sessions_command)
    app.cli.add_command(issue_session_command)
    app.cli.add_command(issue_token_command)
