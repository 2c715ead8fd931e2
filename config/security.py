# config/security.py
"""
Security Configuration for the Shop
"""

import os
import secrets
from datetime import timedelta


class SecurityConfig:
    """Security configuration settings"""

    # Session settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_urlsafe(32)
    SESSION_COOKIE_NAME = 'session'
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = timedelta(days=14)

    # Rate limiting
    RATELIMIT_STORAGE_URI = 'memory://'
    RATELIMIT_STRATEGY = 'fixed-window'
    RATELIMIT_HEADERS_ENABLED = True
    LOGIN_RATE_LIMIT = '5 per minute'

    # CSRF protection
    WTF_CSRF_ENABLED = True
    WTF_CSRF_METHODS = ['POST', 'PUT', 'PATCH', 'DELETE']
    WTF_CSRF_TIME_LIMIT = None  # token lives as long as the session

    # Content Security Policy
    CSP_POLICY = {
        'default-src': "'self'",
        'base-uri': "'self'",
        'font-src': "'self' https: data:",
        'form-action': "'self'",
        'frame-ancestors': "'self'",
        'img-src': "'self' data:",
        'object-src': "'none'",
        'script-src': "'self'",
        'script-src-attr': "'none'",
        'style-src': "'self' https: 'unsafe-inline'",
    }

    # Security headers
    SECURITY_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'SAMEORIGIN',
        'X-DNS-Prefetch-Control': 'off',
        'X-Download-Options': 'noopen',
        'X-Permitted-Cross-Domain-Policies': 'none',
        'X-XSS-Protection': '0',
        'Strict-Transport-Security': 'max-age=15552000; includeSubDomains',
        'Referrer-Policy': 'no-referrer',
        'Cross-Origin-Opener-Policy': 'same-origin',
        'Cross-Origin-Resource-Policy': 'same-origin',
        'Origin-Agent-Cluster': '?1',
        'Permissions-Policy': 'camera=(), microphone=(), geolocation=()'
    }

    # Compression
    COMPRESS_MIMETYPES = [
        'text/html', 'text/css', 'text/plain', 'text/javascript',
        'application/javascript', 'application/json', 'image/svg+xml'
    ]
    COMPRESS_MIN_SIZE = 500

    # File upload security
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB
    UPLOAD_FIELD = 'image'
    UPLOAD_MIMETYPES = frozenset({'image/png', 'image/jpg', 'image/jpeg'})
