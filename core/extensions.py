# core/extensions.py
"""
Flask extension instances, bound to an app in ``create_app``.
"""

from flask_compress import Compress
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()
compress = Compress()

# Rate limiter for authentication endpoints
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[]
)
