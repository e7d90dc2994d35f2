"""
Service routes.

Handles:
- /health - Health check endpoint
"""

from flask import Blueprint, current_app

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    print_queue = current_app.config.get("PRINT_QUEUE")
    if print_queue is not None:
        health_status["checks"]["print_queue"] = "ok"
        health_status["queued_documents"] = len(print_queue)
    else:
        health_status["checks"]["print_queue"] = "not_available"
        health_status["status"] = "degraded"

    if current_app.config.get("UPLOAD_SERVICE") is not None:
        health_status["checks"]["upload_service"] = "ok"
    else:
        health_status["checks"]["upload_service"] = "not_available"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
