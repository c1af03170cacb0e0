import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Load environment variables from .env (only for local development)
if os.getenv("FLASK_ENV") != "production":
    load_dotenv()
    logger.debug("Loaded .env file for local development.")


class Config:
    """Base configuration."""

    # General settings
    SECRET_KEY = os.getenv("SECRET_KEY", "default-secret-key")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///skillswap.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "default-jwt-secret-key")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=int(os.getenv("JWT_ACCESS_TOKEN_DAYS", "7")))

    # CORS configuration
    CORS_ORIGINS = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()
    ]

    # Matching
    MATCH_LIMIT = int(os.getenv("MATCH_LIMIT", "20"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Debug mode
    DEBUG = os.getenv("FLASK_ENV") != "production"


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    # A single shared connection so every session sees the same in-memory database
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    SECRET_KEY = "test-secret-key"
    LOG_LEVEL = "WARNING"
    BCRYPT_LOG_ROUNDS = 4
    CORS_ORIGINS = ["http://localhost:3000"]
