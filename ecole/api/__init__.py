"""REST API definition using Flask-RESTX."""
from __future__ import annotations

from flask import Flask, current_app
from flask_restx import Api
from sqlalchemy.exc import SQLAlchemyError

from ..errors import EcoleError
from ..extensions import db
from .attendance import ns as attendance_ns
from .classes import ns as classes_ns
from .health import ns as health_ns
from .rr import ns as rr_ns
from .seances import ns as seances_ns


def register_namespaces(api: Api) -> None:
    """Register all API namespaces."""
    api.add_namespace(health_ns, path="/health")
    api.add_namespace(classes_ns, path="/classes")
    api.add_namespace(seances_ns, path="/seances")
    api.add_namespace(attendance_ns, path="/attendance")
    api.add_namespace(rr_ns, path="/rr")


def register_error_handlers(api: Api) -> None:
    @api.errorhandler(EcoleError)
    def handle_domain_error(error: EcoleError):
        return error.as_payload(), error.status_code

    @api.errorhandler(SQLAlchemyError)
    def handle_database_error(error: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("Database error while handling request")
        return {"error": "Erreur interne du serveur"}, 500


def init_api(app: Flask) -> Api:
    api = Api(
        app,
        version=app.config.get("API_VERSION", "0.1.0"),
        title=app.config.get("API_TITLE", "Ecole API"),
        doc=f"{app.config.get('URL_PREFIX', '')}/docs",
        prefix=app.config.get("URL_PREFIX", ""),
    )
    register_namespaces(api)
    register_error_handlers(api)
    return api
