"""
Flask application configuration classes.
Provides configuration for development, production, and testing environments.
"""

import os


class Config:
    """Base configuration class with common settings."""

    # Secret key for session signing
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or 'instance/coolcell.db'
    DATABASE_TIMEOUT = float(os.environ.get('DATABASE_TIMEOUT', 5.0))  # seconds waiting on the write lock

    JSON_SORT_KEYS = False

    # Timezone of the facilities (all stored timestamps are wall time here)
    TIMEZONE = os.environ.get('TIMEZONE', 'Europe/Brussels')

    # Scheduling rules
    DAY_BLOCK_MIN_REASON_LENGTH = int(os.environ.get('DAY_BLOCK_MIN_REASON_LENGTH', 8))
    COOL_CELL_BATCH_MAX = int(os.environ.get('COOL_CELL_BATCH_MAX', 50))

    # Calendar views
    DAY_VIEW_START_HOUR = int(os.environ.get('DAY_VIEW_START_HOUR', 8))
    DAY_VIEW_END_HOUR = int(os.environ.get('DAY_VIEW_END_HOUR', 24))
    WEEK_START_DAY = int(os.environ.get('WEEK_START_DAY', 0))  # 0 = Monday

    # Load demo cells and blocks on init-db
    SEED_DEMO_DATA = os.environ.get('SEED_DEMO_DATA', 'true').lower() == 'true'

    # Application settings
    APP_NAME = 'Koelcelplanning'
    APP_VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    TESTING = False

    SECRET_KEY = os.environ.get('SECRET_KEY') or Config.SECRET_KEY
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or Config.DATABASE_PATH

    @classmethod
    def validate(cls) -> None:
        """Validate that required production environment variables are set."""
        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        if not os.environ.get('DATABASE_PATH'):
            raise ValueError("DATABASE_PATH environment variable must be set in production")


class TestConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    DATABASE_PATH = os.environ.get('DATABASE_PATH', ':memory:')
    SEED_DEMO_DATA = False
    SECRET_KEY = 'test-secret-key'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig
}
