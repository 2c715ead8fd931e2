# core/database.py
"""
Database wiring: engine configuration and the startup connection check.
"""

from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.extensions import db, migrate


def configure_database(app: Flask):
    """
    Bind SQLAlchemy and Flask-Migrate to the app.

    The handle is owned by the app (``app.extensions['sqlalchemy']``) and
    shared by every request-scoped session.
    """
    # Make sure the models are registered on the metadata
    from core import database_models  # noqa: F401

    db.init_app(app)
    migrate.init_app(app, db)

    database_url = app.config['SQLALCHEMY_DATABASE_URI']
    app.logger.info(f"Database configured: {database_url.split('@')[-1] if '@' in database_url else database_url}")
    return db


def connect_database(app: Flask) -> bool:
    """
    Verify connectivity and create missing tables.

    Returns False (after logging) when the database cannot be reached; the
    caller decides not to start listening in that case.
    """
    with app.app_context():
        try:
            db.session.execute(text('SELECT 1'))
            db.create_all()
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.error(f"Database connection failed: {e}", exc_info=True)
            return False

    app.logger.info("Database connected")
    return True
