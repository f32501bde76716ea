# backend/clinic/__init__.py
from flask import Flask, g, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        # Applied before extensions bind so tests can swap the database URI
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.clinics import clinics_bp  # Tenants and memberships
    from .routes.permissions import permissions_bp
    from .routes.invitations import invitations_bp
    from .routes.directory import directory_bp  # Clients, professionals, appointments
    from .routes.financial import financial_bp  # Expenses, accounts, transactions, budgets, goals
    from .routes.reports import reports_bp  # Financial reporting
    from .routes.payments import payments_bp  # Client payments and commissions

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(clinics_bp)
    app.register_blueprint(permissions_bp)
    app.register_blueprint(invitations_bp)
    app.register_blueprint(directory_bp)
    app.register_blueprint(financial_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(payments_bp)

    @app.before_request
    def reset_identity():
        # g outlives a request when an app context is already pushed (CLI, tests)
        g.pop("identity", None)
        g.pop("current_user", None)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
