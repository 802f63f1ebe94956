"""
Application Configuration

FLOW OVERVIEW
- Config.__init__
  • Reads FLASK_ENV to select which .env file to load (dev/prod). Testing bypasses file load.
- Properties expose configuration values, defaulting to sensible development-safe defaults.
"""

import os
from dotenv import load_dotenv


class Config:
    """Base configuration class"""

    def __init__(self):
        # Load environment variables based on FLASK_ENV
        env_file = os.getenv('FLASK_ENV', 'development')
        if env_file == 'testing':
            # For testing, don't load config files, use environment variables directly
            pass
        elif env_file == 'production':
            load_dotenv('config.prod.env')
        else:
            load_dotenv('config.env')  # Default to development

    @property
    def SECRET_KEY(self):
        """Application secret key"""
        return os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """Database connection URI"""
        return os.getenv('DATABASE_URL', 'sqlite:///:memory:')

    @property
    def SQLALCHEMY_TRACK_MODIFICATIONS(self):
        """SQLAlchemy track modifications setting"""
        return False

    @property
    def DEFAULT_MAX_POINTS(self):
        """Display point budget when a request does not name one"""
        return int(os.getenv('DEFAULT_MAX_POINTS', 1000))

    @property
    def DEFAULT_DECIMATION_ALGORITHM(self):
        """lttb, minmax, simple or adaptive"""
        return os.getenv('DEFAULT_DECIMATION_ALGORITHM', 'lttb')

    @property
    def RATE_LIMIT_PER_MINUTE(self):
        """Requests allowed per client IP per minute"""
        return int(os.getenv('RATE_LIMIT_PER_MINUTE', 100))

    @property
    def MAX_REQUEST_BYTES(self):
        """Largest accepted request body in bytes"""
        return int(os.getenv('MAX_REQUEST_BYTES', 5 * 1024 * 1024))

    @property
    def CACHE_MAX_AGE(self):
        """Cache-Control max-age for chart responses in seconds"""
        return int(os.getenv('CACHE_MAX_AGE', 300))

    @property
    def LOG_LEVEL(self):
        """Root log level"""
        return os.getenv('LOG_LEVEL', 'INFO')
