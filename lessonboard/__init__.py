from __future__ import annotations

import click
from flask import Flask
from flask.cli import with_appcontext

from .config import Config, _normalise_prefix
from .extensions import db, migrate


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_class)

    url_prefix = _normalise_prefix(app.config.get("URL_PREFIX", ""))
    app.config["URL_PREFIX"] = url_prefix
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)

    from . import models  # noqa: F401  # Ensure models registered for migrations

    with app.app_context():
        db.create_all()

    from .api import create_api_blueprint

    app.register_blueprint(create_api_blueprint(url_prefix))

    @app.cli.command("seed")
    @with_appcontext
    def seed() -> None:
        """Seed roster data for development."""
        from .seed import seed_data

        created = seed_data()
        click.echo(f"{created} roster record(s) created.")

    @app.cli.command("purge-orphans")
    @click.option(
        "--minutes",
        default=30,
        show_default=True,
        help="Only purge main sessions older than this many minutes.",
    )
    @with_appcontext
    def purge_orphans(minutes: int) -> None:
        """Delete main sessions left without sub-sessions."""
        from .persistence import purge_orphaned_main_sessions

        removed = purge_orphaned_main_sessions(older_than_minutes=minutes)
        click.echo(f"{removed} orphaned main session(s) removed.")

    return app


__all__ = ["create_app", "db"]
