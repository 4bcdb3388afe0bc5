"""
Location Service Configuration Module

Configuration settings for database, authentication and server.
All sensitive values are loaded from environment variables.
"""

import os
from pathlib import Path


def _database_url(default_sqlite_path):
    """Resolve the database URL from the environment.

    DATABASE_URL wins. Otherwise, if DB_HOST is set, a PostgreSQL URL is
    assembled from DB_HOST/DB_PORT/DB_NAME/DB_USER/DB_PASSWORD. Falls back
    to a SQLite file.
    """
    url = os.environ.get('DATABASE_URL')
    if url:
        # Heroku-style URLs use the deprecated postgres:// scheme
        if url.startswith('postgres://'):
            url = 'postgresql://' + url[len('postgres://'):]
        return url

    if os.environ.get('DB_HOST'):
        return 'postgresql://{user}:{password}@{host}:{port}/{name}'.format(
            user=os.environ.get('DB_USER', 'postgres'),
            password=os.environ.get('DB_PASSWORD', 'postgres'),
            host=os.environ['DB_HOST'],
            port=os.environ.get('DB_PORT', '5432'),
            name=os.environ.get('DB_NAME', 'location_tracker'),
        )

    return f'sqlite:///{default_sqlite_path}'


class Config:
    """Base configuration class with default settings."""

    # Environment name; API key auth is skipped in 'development'
    ENV_NAME = 'development'
    VERSION = '1.0.0'

    # Base Directory
    BASE_DIR = Path(__file__).parent.resolve()

    # Database Settings
    DATABASE_PATH = Path(os.environ.get('TRACKER_DATABASE_PATH', BASE_DIR / 'data' / 'locations.db'))
    SQLALCHEMY_DATABASE_URI = _database_url(DATABASE_PATH)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
    }

    # Security
    API_KEY = os.environ.get('API_KEY') or None

    # CORS
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    # Server Settings
    PORT = int(os.environ.get('PORT', 3000))
    HOST = os.environ.get('HOST', '0.0.0.0')

    # Logging
    LOG_PATH = os.environ.get('LOG_PATH')

    # Query limits
    DEFAULT_LIST_LIMIT = 1000
    DEFAULT_NEARBY_RADIUS = 1000  # meters
    NEARBY_RESULT_CAP = 50

    @classmethod
    def init_app(cls, app):
        """Initialize application with this configuration."""
        if cls.SQLALCHEMY_DATABASE_URI.startswith('sqlite:///') and \
                cls.SQLALCHEMY_DATABASE_URI != 'sqlite:///:memory:':
            Path(cls.SQLALCHEMY_DATABASE_URI[len('sqlite:///'):]).parent.mkdir(
                parents=True, exist_ok=True
            )


class DevelopmentConfig(Config):
    """Development configuration with debug enabled."""

    ENV_NAME = 'development'
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration with an in-memory database."""

    ENV_NAME = 'testing'
    DEBUG = True
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('TEST_DATABASE_URL', 'sqlite:///:memory:')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    API_KEY = None
    LOG_PATH = None


class ProductionConfig(Config):
    """Production configuration with strict security settings."""

    ENV_NAME = 'production'
    DEBUG = False
    TESTING = False

    @classmethod
    def init_app(cls, app):
        """Production-specific initialization."""
        # Verify required environment variables are set
        required_vars = ['API_KEY']
        if not (os.environ.get('DATABASE_URL') or os.environ.get('DB_HOST')):
            required_vars.append('DATABASE_URL')
        missing = [var for var in required_vars if not os.environ.get(var)]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

        Config.init_app(app)


# Configuration mapping by environment name
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}


def get_config(env_name=None):
    """Get configuration class by environment name.

    Args:
        env_name: Environment name ('development', 'testing', 'production').
                  If None, reads from FLASK_ENV environment variable.

    Returns:
        Configuration class for the specified environment.
    """
    if env_name is None:
        env_name = os.environ.get('FLASK_ENV', 'development')
    return config.get(env_name, config['default'])
