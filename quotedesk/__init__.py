"""
quotedesk/__init__.py

Flask application factory for the Quote Desk API (quotes, supplier
proposals, technical drawings, financial reporting).

Production mindset:
- SQLite for development, any SQLAlchemy URL via DATABASE_URL (migrations ready).
- Clients are never trusted; every operation is authorized server-side
  against the access policy in quotedesk/security.py.
- Every error leaves the API as JSON: {"error": "..."}.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .errors import QuoteDeskError
from .extensions import db, login_manager, migrate
from .logging_config import configure_logging
from .storage import FileStore
from .tokens import load_user_from_request

logger = logging.getLogger(__name__)


def create_app(test_config: Optional[Mapping[str, Any]] = None, config_object: str = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    if test_config:
        app.config.from_mapping(test_config)

    configure_logging(app)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Stateless API: identity comes from the bearer token on every request.
    login_manager.request_loader(load_user_from_request)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"error": "Authentication required"}), 401

    app.extensions["file_store"] = FileStore(app.config["UPLOAD_FOLDER"])

    # ----------------------------------------------------------------------
    # Error handlers
    # ----------------------------------------------------------------------
    @app.errorhandler(QuoteDeskError)
    def _handle_domain_error(err: QuoteDeskError):
        if err.status_code >= 500:
            logger.error("Request failed: %s", err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(err: HTTPException):
        return jsonify({"error": err.description or err.name}), err.code

    @app.errorhandler(Exception)
    def _handle_unexpected(err: Exception):
        logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.financial import financial_bp
    from .blueprints.proposals import proposals_bp
    from .blueprints.quotes import quotes_bp
    from .blueprints.users import users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(quotes_bp)
    app.register_blueprint(proposals_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(financial_bp)

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("init-db")
    def init_db_command():
        """Create tables and the quote counter row (dev; use migrations in production)."""
        from .seed import ensure_quote_counter

        db.create_all()
        ensure_quote_counter()
        db.session.commit()
        click.echo("Database initialized.")

    @app.cli.command("seed-admin")
    def seed_admin_command():
        """Create the default administrator if missing."""
        from .seed import seed_default_admin

        admin = seed_default_admin()
        click.echo(f"Default admin ready: {admin.email}")

    @app.route("/")
    def index():
        return jsonify({"name": app.config["APP_NAME"], "status": "ok"})

    logger.debug("Application created (%s)", config_object)
    return app
