from __future__ import annotations

import click
from flask import Flask
from flask.cli import with_appcontext

from config import Config
from .errors import EcoleError
from .extensions import db, migrate


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)

    from . import models  # noqa: F401  # Ensure models registered for migrations

    with app.app_context():
        db.create_all()

    from .api import init_api

    init_api(app)

    @app.cli.command("seed")
    @with_appcontext
    def seed() -> None:
        """Seed initial data for development."""
        from .seed import seed_data

        seed_data()
        click.echo("Base de données initialisée avec des données de démonstration.")

    @app.cli.command("generate-seances")
    @click.argument("classe_id", type=int)
    @click.argument("annee", type=int)
    @click.option("--jour", "jour_semaine", type=click.IntRange(1, 7), default=None,
                  help="1 = lundi ... 7 = dimanche (par défaut : jour de la classe)")
    @click.option("--heure", "heure_debut", default=None,
                  help="HH:MM (par défaut : heure de la classe)")
    @with_appcontext
    def generate_seances_command(
        classe_id: int, annee: int, jour_semaine: int | None, heure_debut: str | None
    ) -> None:
        """Generate the sessions of a class for a year."""
        from .generation import generate_seances

        try:
            result = generate_seances(
                classe_id, annee, jour_semaine=jour_semaine, heure_debut=heure_debut
            )
        except EcoleError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"{result.count} séance(s) générée(s), {result.skipped} ignorée(s).")

    return app


__all__ = ["create_app", "db", "migrate"]
