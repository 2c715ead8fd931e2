# config/__init__.py
"""
Environment-based configuration classes.

``create_app`` picks one of these by name ('development', 'testing',
'production'); environment variables are layered on top by
``Config.from_environ``.
"""

import os
from pathlib import Path
from urllib.parse import quote_plus

from config.security import SecurityConfig

BASE_DIR = Path(__file__).resolve().parent.parent


def build_database_url(environ=None) -> str:
    """
    Compose the database URL from the environment.

    ``DATABASE_URL`` wins. Otherwise ``DATABASE_USER``/``DATABASE_PASSWORD``/
    ``DATABASE_HOST``/``DATABASE_NAME`` form a PostgreSQL URL, and with none
    of them set the app falls back to a local SQLite file.
    """
    environ = os.environ if environ is None else environ

    if environ.get('DATABASE_URL'):
        return environ['DATABASE_URL']

    user = environ.get('DATABASE_USER')
    name = environ.get('DATABASE_NAME')
    if not user and not name:
        return f"sqlite:///{BASE_DIR / 'shop.db'}"

    password = environ.get('DATABASE_PASSWORD', '')
    host = environ.get('DATABASE_HOST', 'localhost')
    credentials = quote_plus(user or '')
    if password:
        credentials += ':' + quote_plus(password)
    return f"postgresql+psycopg://{credentials}@{host}/{name or 'shop'}"


class Config(SecurityConfig):
    """Base configuration shared by every environment"""

    ENV_NAME = 'production'
    DEBUG = False
    TESTING = False
    LOG_LEVEL = 'INFO'
    LOG_DIR = None

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    PUBLIC_FOLDER = str(BASE_DIR / 'public')
    UPLOAD_FOLDER = str(BASE_DIR / 'images')
    ACCESS_LOG_PATH = str(BASE_DIR / 'access.log')

    PRODUCTS_PER_PAGE = 6

    HOST = '0.0.0.0'
    PORT = 3000

    @classmethod
    def from_environ(cls, environ=None) -> dict:
        """Settings overridden from environment variables"""
        environ = os.environ if environ is None else environ
        overrides = {
            'SQLALCHEMY_DATABASE_URI': build_database_url(environ),
            'HOST': environ.get('HOST', cls.HOST),
            'PORT': int(environ.get('PORT') or cls.PORT),
            'LOG_LEVEL': environ.get('LOG_LEVEL', cls.LOG_LEVEL),
        }
        if environ.get('SECRET_KEY'):
            overrides['SECRET_KEY'] = environ['SECRET_KEY']
        for key in ('ACCESS_LOG_PATH', 'UPLOAD_FOLDER', 'PUBLIC_FOLDER'):
            if environ.get(key):
                overrides[key] = environ[key]
        return overrides


class DevelopmentConfig(Config):
    ENV_NAME = 'development'
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    LOG_DIR = str(BASE_DIR / 'logs')
    SESSION_COOKIE_SECURE = False


class TestingConfig(Config):
    ENV_NAME = 'testing'
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    SESSION_COOKIE_SECURE = False
    RATELIMIT_ENABLED = False
    SQLALCHEMY_ENGINE_OPTIONS = {}


class ProductionConfig(Config):
    ENV_NAME = 'production'


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}


def get_config(name=None):
    """Resolve a config class by name, defaulting to ``FLASK_ENV``"""
    name = name or os.environ.get('FLASK_ENV', 'production')
    return CONFIGS.get(name, ProductionConfig)
