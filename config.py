"""Application configuration module.

Provides configuration classes for different environments with
pathlib-based paths and environment overrides for the external
collaborators (ExifTool, reverse geocoder).
"""
import os
from pathlib import Path


# Base directories using pathlib
BASE_DIR = Path(__file__).parent.absolute()
INSTANCE_DIR = Path(os.environ['INSTANCE_DIR']) if os.environ.get('INSTANCE_DIR') else BASE_DIR / 'instance'


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration with common settings."""

    # Flask secret key
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    SQLALCHEMY_DATABASE_URI = f"sqlite:///{INSTANCE_DIR / 'imgverify.db'}"
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {
            'check_same_thread': False,
            'timeout': 5.0
        }
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upload limits
    MAX_CONTENT_LENGTH = 25 * 1024 * 1024
    ALLOWED_EXTENSIONS = {'jpg', 'jpeg', 'png'}

    # History store
    HISTORY_SLOT = 'ivs-history'
    HISTORY_CAPACITY = 20

    # Metadata decoding
    EXIFTOOL_PATH = os.environ.get('EXIFTOOL_PATH', 'exiftool')

    # Preview thumbnails embedded in history entries
    PREVIEW_SIZE = (128, 128)

    # Reverse geocoding (Nominatim)
    GEOCODING_ENABLED = _env_flag('GEOCODING_ENABLED', True)
    GEOCODER_URL = os.environ.get('GEOCODER_URL', 'https://nominatim.openstreetmap.org/reverse')
    GEOCODER_TIMEOUT = float(os.environ.get('GEOCODER_TIMEOUT', 5.0))
    GEOCODER_USER_AGENT = os.environ.get('GEOCODER_USER_AGENT', 'ImageVerify/1.0')

    # Debug mode (enables the raw metadata endpoint)
    DEBUG_MODE = False

    @classmethod
    def validate(cls):
        """Reject settings the history store and collaborators cannot work with."""
        if cls.HISTORY_CAPACITY < 1:
            raise ValueError(f"Invalid HISTORY_CAPACITY {cls.HISTORY_CAPACITY}: must be positive")
        if cls.GEOCODER_TIMEOUT <= 0:
            raise ValueError(f"Invalid GEOCODER_TIMEOUT {cls.GEOCODER_TIMEOUT}: must be positive")
        return True


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    DEBUG_MODE = True  # Enables /api/debug-metadata


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    DEBUG_MODE = False


class TestingConfig(Config):
    """Test configuration: in-memory database, no network."""

    TESTING = True
    DEBUG_MODE = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    GEOCODING_ENABLED = False


# Configuration dictionary for easy lookup
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
