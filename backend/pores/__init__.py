import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.workers import workers_bp
    from .routes.products import products_bp
    from .routes.restocks import restocks_bp
    from .routes.sales import sales_bp
    from .routes.credits import credits_bp
    from .routes.reports import reports_bp
    from .routes.onboarding import onboarding_bp, catalog_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(workers_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(restocks_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(credits_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(onboarding_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(admin_bp)

    allowed_origins = {
        origin.strip()
        for origin in str(app.config.get("CORS_ALLOWED_ORIGINS") or "").split(",")
        if origin.strip()
    }

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, x-store-id, X-Admin-Key"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
