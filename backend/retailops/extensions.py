# Overview: Flask extension instances for database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def get_services():
    """Service registry built by create_app() for the current application."""
    from flask import current_app
    return current_app.extensions["retailops"]
