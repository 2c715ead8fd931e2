# wsgi.py
"""Production WSGI entry point, e.g. ``gunicorn wsgi:application``"""

from app import create_app
from core.database import connect_database

# Production WSGI application
application = create_app()

if not connect_database(application):
    raise SystemExit("Database unavailable, refusing to serve")
