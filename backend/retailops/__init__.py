# backend/retailops/__init__.py
from __future__ import annotations

from typing import Mapping

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: Mapping | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Services are built once per app around the app-scoped session;
    # Flask-SQLAlchemy removes the session at app-context teardown.
    from .services.registry import build_services
    app.extensions["retailops"] = build_services(db.session, app.config)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.orders import orders_bp
    from .routes.inventory import inventory_bp
    from .routes.returns import returns_bp
    from .routes.discount_codes import discount_codes_bp
    from .routes.accounts import accounts_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(returns_bp)
    app.register_blueprint(discount_codes_bp)
    app.register_blueprint(accounts_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
