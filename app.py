# app.py
"""
Flask Application Factory for the Shop

The factory composes the request pipeline once, in a fixed order:
- Security headers and response compression
- Access log in combined format
- Form decoding and the single image upload field
- Static files from public/ and images/
- Database-backed sessions, CSRF protection and flash messages
- View locals and the session user
- Admin, shop and auth blueprints, /500, 404 and the error terminal
"""

import os
import sys
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

import click
from flask import Flask, request
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException, InternalServerError
from werkzeug.middleware.proxy_fix import ProxyFix

from config import get_config
from core.database import configure_database, connect_database
from core.extensions import compress, db, limiter
from core.sessions import DatabaseSessionInterface, purge_expired_sessions
from middleware.access_log import init_access_log
from middleware.pipeline import init_pipeline
from middleware.security import security_headers
from routes.admin import admin_bp
from routes.auth import auth_bp
from routes.errors import errors_bp, render_not_found, render_server_error
from routes.images import images_bp
from routes.shop import shop_bp


def setup_logging(app: Flask) -> None:
    """
    Configure application logging

    This setup provides:
    - A stream handler on stderr with a detailed format
    - A rotating file handler when LOG_DIR is configured
    - Quieter third-party loggers outside debug mode
    """
    # Remove default Flask handlers to avoid duplicate logs
    app.logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(funcName)-15s:%(lineno)-4d %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(detailed_formatter)
    stream_handler.setLevel(log_level)
    app.logger.addHandler(stream_handler)

    # Module loggers (core.*, routes.*, middleware.*) share the same handler
    for name in ('core', 'routes', 'middleware'):
        module_logger = logging.getLogger(name)
        module_logger.handlers.clear()
        module_logger.addHandler(stream_handler)
        module_logger.setLevel(log_level)

    if app.config.get('LOG_DIR'):
        log_dir = Path(app.config['LOG_DIR'])
        log_dir.mkdir(exist_ok=True, parents=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / 'shop.log',
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(detailed_formatter)
        file_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(file_handler)

    # Suppress verbose third-party logs in production
    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def configure_security(app: Flask) -> None:
    """
    Response hardening and rate limiting.

    after_request hooks run in reverse registration order, so compression
    sees the final body and security headers are applied before it.
    """
    compress.init_app(app)
    app.after_request(security_headers)
    limiter.init_app(app)


def register_blueprints(app: Flask) -> None:
    """
    Register all application blueprints with proper URL prefixes
    """
    app.register_blueprint(images_bp)
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(shop_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(errors_bp)

    app.logger.info("Application blueprints registered")


def configure_error_handlers(app: Flask) -> None:
    """
    Unmatched routes get the 404 page; every other unhandled error gets
    the static 500 page
    """
    @app.errorhandler(404)
    def not_found(error):
        return render_not_found()

    @app.errorhandler(CSRFError)
    def csrf_failed(error):
        app.logger.warning(
            f"CSRF validation failed for {request.method} {request.path} "
            f"from {request.remote_addr}: {error.description}"
        )
        return render_server_error()

    @app.errorhandler(InternalServerError)
    def server_error(error):
        # also reached when the session store fails before any hook runs
        db.session.rollback()
        return render_server_error()

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        if isinstance(e, HTTPException):
            return e

        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        db.session.rollback()
        return render_server_error()


def register_commands(app: Flask) -> None:
    @app.cli.command('purge-sessions')
    def purge_sessions_command():
        """Delete expired session records."""
        removed = purge_expired_sessions()
        click.echo(f"Removed {removed} expired sessions")


def create_app(config_name: Optional[str] = None, overrides: Optional[dict] = None) -> Flask:
    """
    Flask application factory

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')
        overrides: Extra settings applied last (used by tests)

    Returns:
        Configured Flask application instance
    """
    config_class = get_config(config_name)

    app = Flask(__name__,
                static_folder='public',
                static_url_path='',
                template_folder='templates')

    app.config.from_object(config_class)
    app.config.update(config_class.from_environ())
    if overrides:
        app.config.update(overrides)
    app.static_folder = app.config['PUBLIC_FOLDER']

    # Configure proxy handling for production deployment behind nginx
    if config_class.ENV_NAME == 'production':
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # Setup logging system
    setup_logging(app)
    app.logger.info(f"Starting shop application in {config_class.ENV_NAME} mode")

    # Pipeline order matters; see the module docstring
    init_access_log(app)
    configure_security(app)

    configure_database(app)
    app.session_interface = DatabaseSessionInterface()

    init_pipeline(app)

    register_blueprints(app)
    configure_error_handlers(app)
    register_commands(app)

    app.logger.info("Flask application factory completed successfully")
    return app


def main() -> int:
    """Connect to the database, then serve; without a database nothing binds"""
    app = create_app(os.environ.get('FLASK_ENV'))

    if not connect_database(app):
        app.logger.error("Not starting HTTP listener: database unavailable")
        return 1

    app.run(host=app.config['HOST'], port=app.config['PORT'], debug=app.debug)
    return 0


if __name__ == '__main__':
    sys.exit(main())
