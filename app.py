"""
PrintQueueWeb - Flask Application Entry Point.

This is a slim app factory that:
1. Loads the persisted print queue (JSON file store)
2. Creates the upload service (thread-per-session)
3. Creates the share inbox (producer side of the queue)
4. Registers route blueprints
5. Sets up JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling
    └── Cleanup on shutdown (cancel running uploads)

    Upload Session Threads (one per submission)
    └── Aggregates results and owns the session counters

    Upload Unit Threads (one per document copy)
    └── Each runs one multipart POST and reports to its session

The print queue is the only state shared between request threads and
session threads, and it is always accessed through LockedPrintJobQueue.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from werkzeug.exceptions import RequestEntityTooLarge

from logging_config import setup_logging, get_logger
from core.upload_client import RequestsUploadClient, UploadClient
from modules.queue_store import JsonFileQueueStore, QueueStore
from services.print_queue import LockedPrintJobQueue, PrintJobQueue
from services.share_inbox import ShareInbox
from services.upload_service import UploadService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def create_app(
    config_object: str = "config.Config",
    queue_store: Optional[QueueStore] = None,
    upload_client: Optional[UploadClient] = None
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the configuration class
        queue_store: Queue persistence (JSON file at QUEUE_STORE_PATH if not provided)
        upload_client: Print server client (requests-based if not provided)

    Returns:
        Configured Flask application
    """
    # Use override=True so .env file always takes precedence over shell environment
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting PrintQueueWeb in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    if queue_store is None:
        queue_store = JsonFileQueueStore(Path(app.config["QUEUE_STORE_PATH"]))
        logger.info(f"Print queue stored at {queue_store.path}")

    print_queue = LockedPrintJobQueue(PrintJobQueue(queue_store))
    app.config["PRINT_QUEUE"] = print_queue
    logger.info(f"Print queue loaded with {len(print_queue)} document(s)")

    if upload_client is None:
        upload_client = RequestsUploadClient(
            app.config["PRINT_SERVER_URL"],
            timeout_seconds=app.config["UPLOAD_TIMEOUT_SECONDS"]
        )

    upload_service = UploadService(
        print_queue,
        upload_client,
        worker_join_timeout=app.config["SESSION_SHUTDOWN_TIMEOUT"]
    )
    app.config["UPLOAD_SERVICE"] = upload_service
    logger.info("Upload service initialized")

    app.config["SHARE_INBOX"] = ShareInbox(Path(app.config["SHARE_INBOX_FOLDER"]), print_queue)

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        upload_service.shutdown(app.config["SESSION_SHUTDOWN_TIMEOUT"])
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(e):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 32 * 1024 * 1024) / (1024 * 1024)
        return {
            "error": "file_too_large",
            "message": f"File too large. Maximum upload size is {max_mb:.0f} MB.",
        }, 413

    @app.errorhandler(404)
    def handle_not_found(e):
        return {"error": "not_found", "message": "Resource not found."}, 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return {"error": "method_not_allowed", "message": "Method not allowed."}, 405

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again.",
        }, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
