"""
Flask Configuration Management

Environment-specific configuration classes for development, testing and
production deployments. Values come from environment variables; a local
``.env`` file is loaded through python-dotenv before the classes are built.
"""

import os
from typing import Optional, Type

from dotenv import load_dotenv

load_dotenv()


class Config:
    """
    Base configuration class containing common settings for all environments.
    """

    # Flask Core Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-in-production'
    FLASK_ENV = os.environ.get('FLASK_ENV', 'production')

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'postgresql://localhost:5432/worktrack_dev'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_RECORD_QUERIES = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': int(os.environ.get('SQLALCHEMY_POOL_RECYCLE', '3600')),
    }

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'json')

    # Bearer token settings (itsdangerous)
    AUTH_TOKEN_SALT = os.environ.get('AUTH_TOKEN_SALT', 'worktrack-auth')
    AUTH_TOKEN_MAX_AGE = int(os.environ.get('AUTH_TOKEN_MAX_AGE', '3600'))

    # API settings
    API_PREFIX = os.environ.get('API_PREFIX', '/api/v1')
    DEFAULT_PAGE_SIZE = int(os.environ.get('DEFAULT_PAGE_SIZE', '20'))
    MAX_PAGE_SIZE = int(os.environ.get('MAX_PAGE_SIZE', '100'))

    @staticmethod
    def init_app(app):
        """
        Initialize application with configuration-specific settings.

        Args:
            app: Flask application instance
        """
        pass


class DevelopmentConfig(Config):
    """Development configuration with console logging and verbose SQL."""

    DEBUG = True
    FLASK_ENV = 'development'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'console')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        os.environ.get('DATABASE_URL') or 'sqlite:///worktrack_dev.db'


class TestingConfig(Config):
    """Testing configuration backed by an in-memory SQLite database."""

    TESTING = True
    DEBUG = False
    FLASK_ENV = 'testing'
    SECRET_KEY = 'test-secret-key-for-testing-only'
    SQLALCHEMY_DATABASE_URI = os.environ.get('TEST_DATABASE_URL') or 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_LEVEL = 'WARNING'
    LOG_FORMAT = 'console'


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False

    @staticmethod
    def init_app(app):
        if app.config['SECRET_KEY'] == 'dev-key-change-in-production':
            raise ValueError("SECRET_KEY must be set in production")


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}


def get_config(config_name: Optional[str] = None) -> Type[Config]:
    """
    Resolve a configuration class by name.

    Args:
        config_name: 'development', 'testing' or 'production'. Falls back to
            the FLASK_CONFIG environment variable, then to development.

    Returns:
        Configuration class
    """
    name = config_name or os.environ.get('FLASK_CONFIG', 'default')
    return config.get(name, config['default'])
