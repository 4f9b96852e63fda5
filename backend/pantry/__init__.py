# backend/pantry/__init__.py
from __future__ import annotations

import os

from flask import Flask, jsonify, request
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import PantryError
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(
        app,
        db,
        directory=os.path.join(os.path.dirname(os.path.dirname(__file__)), "migrations"),
        render_as_batch=True,
    )

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.invites import invites_bp
    from .routes.users import users_bp
    from .routes.products import products_bp
    from .routes.providers import providers_bp
    from .routes.stock import stock_bp
    from .routes.orders import orders_bp
    from .routes.fulfillment import fulfillment_bp
    from .routes.dashboard import dashboard_bp
    from .routes.settings import settings_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(invites_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(providers_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(fulfillment_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(settings_bp)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in set(app.config.get("CORS_ALLOWED_ORIGINS") or []):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """Translate the service error taxonomy into JSON responses."""

    @app.errorhandler(PantryError)
    def handle_pantry_error(exc: PantryError):
        db.session.rollback()
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(StaleDataError)
    def handle_stale(exc):
        db.session.rollback()
        return jsonify({"error": "Record was modified by someone else, reload and retry"}), 409

    @app.errorhandler(OperationalError)
    def handle_unavailable(exc):
        db.session.rollback()
        app.logger.exception("Database unavailable")
        return jsonify({"error": "Database is unavailable, try again later"}), 503

    @app.errorhandler(HTTPException)
    def handle_http(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500
