"""
Flask route blueprints for PrintQueueWeb.

- queue: Queue listing and editing
- share: Receiving shared documents
- uploads: Starting, polling and cancelling upload sessions
- api: Health check

Each blueprint is registered with the Flask app in create_app().
"""

from .queue import queue_bp
from .share import share_bp
from .uploads import uploads_bp
from .api import api_bp

__all__ = [
    "queue_bp",
    "share_bp",
    "uploads_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(queue_bp)
    app.register_blueprint(share_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(api_bp)
