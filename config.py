"""
Configuration for PrintQueueWeb.

Every value can be overridden through the environment (or a .env file next
to this module). Collaborators that the app factory builds from these
settings can also be injected directly into create_app() for tests.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    MAX_CONTENT_LENGTH = 32 * 1024 * 1024  # 32 MB shared documents
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Print server
    # ==========================================================================
    # PRINT_SERVER_URL: multipart endpoint that accepts one document copy per
    #   request (fields: phone_number, is_a3, file)
    # UPLOAD_TIMEOUT_SECONDS: connect + read timeout for a single upload
    # ==========================================================================
    PRINT_SERVER_URL = os.environ.get(
        "PRINT_SERVER_URL", "https://print.kksoft.kr/upload_file/"
    )
    UPLOAD_TIMEOUT_SECONDS = float(
        os.environ.get("UPLOAD_TIMEOUT_SECONDS", "60")
    )

    # Seconds to wait for each upload thread on shutdown
    SESSION_SHUTDOWN_TIMEOUT = float(
        os.environ.get("SESSION_SHUTDOWN_TIMEOUT", "5")
    )

    # ==========================================================================
    # Queue persistence
    # ==========================================================================
    # QUEUE_STORE_PATH: JSON document holding the ordered queue and the
    #   per-document settings
    # SHARE_INBOX_FOLDER: where shared documents are copied before they are
    #   added to the queue
    # ==========================================================================
    QUEUE_STORE_PATH = os.environ.get(
        "QUEUE_STORE_PATH", str(BASE_DIR / "data" / "print_queue.json")
    )
    SHARE_INBOX_FOLDER = os.environ.get(
        "SHARE_INBOX_FOLDER", str(BASE_DIR / "data" / "inbox")
    )


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    UPLOAD_TIMEOUT_SECONDS = 5.0
    SESSION_SHUTDOWN_TIMEOUT = 1.0
