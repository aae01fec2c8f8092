"""
Card Lens - Configuration
"""
import logging
import os
from pathlib import Path


def env_int(name: str, default: int) -> int:
    """Integer setting from the environment, falling back to the default on bad values"""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        # logger.py imports this module, so its handlers are not set up yet
        logging.getLogger('Card Lens.config').warning(
            f"Ignoring non-integer {name}={value!r}, using {default}"
        )
        return default


# Base directory
BASE_DIR = Path(__file__).parent

# Database (local card store)
DATABASE_PATH = BASE_DIR / 'Card Lens.db'
SQLALCHEMY_DATABASE_URI = os.environ.get('CARD_LENS_DATABASE_URI', f'sqlite:///{DATABASE_PATH}')

# Logging
LOG_DIR = Path(os.environ.get('LOG_DIR', BASE_DIR / 'logs'))
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG').upper()

# Upload settings
ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'bmp', 'webp'}
MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max file size

# API Configuration - Scryfall
SCRYFALL_API_BASE = os.environ.get('SCRYFALL_API_BASE', 'https://api.scryfall.com')
SCRYFALL_RATE_LIMIT = 10  # requests per second
SCRYFALL_USER_AGENT = 'CardLens/0.1.0'
SCRYFALL_TIMEOUT = 30  # seconds, search requests
WILDCARD_QUERY = '*'  # matches every card

# Thumbnail scoring
THUMBNAIL_IMAGE_SIZE = 'small'  # key into a card's image_uris
THUMBNAIL_TIMEOUT = 10  # seconds, per thumbnail download
RANKING_WINDOW = 30  # candidates visually re-ranked per search
SCORE_CONCURRENCY = env_int('SCORE_CONCURRENCY', 1)  # 1 = sequential
MAX_SCORE_CONCURRENCY = 8

# Local fingerprint matching (Hamming distances, 0-64)
LOCAL_MATCH_MAX_DISTANCE = 12  # exclusive upper bound for any usable match
LOCAL_MATCH_HIGH_CONFIDENCE_DISTANCE = 5  # inclusive, short-circuits remote search

# Flask settings
SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
DEBUG = os.environ.get('DEBUG', 'True') == 'True'
HOST = os.environ.get('HOST', '0.0.0.0')
PORT = env_int('PORT', 5000)
