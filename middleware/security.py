# middleware/security.py
"""
Security Middleware for Request Processing
"""

from flask import current_app, g, redirect, request, session, url_for
from functools import wraps
import logging

logger = logging.getLogger(__name__)


def build_csp(policy):
    """Render a CSP dict as a header value"""
    return '; '.join(f"{directive} {value}" for directive, value in policy.items())


def security_headers(response):
    """Add security headers to all responses"""
    config = current_app.config
    for header, value in config.get('SECURITY_HEADERS', {}).items():
        response.headers.setdefault(header, value)

    policy = config.get('CSP_POLICY')
    if policy:
        response.headers.setdefault('Content-Security-Policy', build_csp(policy))

    # do not advertise the stack
    response.headers.pop('X-Powered-By', None)

    return response


def login_required(f):
    """Decorator to require a logged-in session, otherwise go to the login page"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('is_logged_in') or g.get('user') is None:
            logger.info(f"Anonymous access to {request.endpoint} redirected to login")
            return redirect(url_for('auth.login'))
        return f(*args, **kwargs)
    return decorated_function
