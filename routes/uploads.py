"""
Upload routes.

Handles:
- POST /api/uploads                    - Start uploading the queue
- GET  /api/uploads/<session_id>       - Poll session progress
- POST /api/uploads/<session_id>/cancel - Cancel a running session

Uploads run in background threads (see UploadService); these handlers only
start, poll and cancel.
"""

from flask import Blueprint, current_app, request

from core.exceptions import (
    EmptyQueueError,
    InvalidLocationError,
    InvalidPhoneNumberError,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

uploads_bp = Blueprint("uploads", __name__, url_prefix="/api/uploads")


def _upload_service():
    return current_app.config["UPLOAD_SERVICE"]


def _not_found(session_id: str):
    return {"error": "not_found", "message": f"Unknown upload session {session_id}"}, 404


@uploads_bp.route("", methods=["POST"])
def start_upload():
    """
    Upload every queued document to the print server.

    Body: {"phone_number": "010XXXXXXXX"}

    Returns 202 with the session id. Validation and planning errors are
    reported synchronously with 400 and nothing is uploaded.
    """
    payload = request.get_json(silent=True) or {}
    phone_number = payload.get("phone_number", "")

    try:
        session_id = _upload_service().submit(phone_number)
    except InvalidPhoneNumberError as e:
        return {"error": "invalid_phone_number", "message": e.message}, 400
    except EmptyQueueError as e:
        return {"error": "empty_queue", "message": e.user_message}, 400
    except InvalidLocationError as e:
        logger.warning(f"Upload rejected: {e}")
        return {"error": "invalid_location", "message": e.user_message}, 400

    status = _upload_service().peek_status(session_id)
    logger.info(f"Upload session {session_id[:8]} started")

    return {"session_id": session_id, "status": status.to_dict()}, 202


@uploads_bp.route("/<session_id>", methods=["GET"])
def upload_status(session_id: str):
    """
    Latest status of an upload session.

    The final status is reported once; later polls answer 404.
    """
    status = _upload_service().get_status(session_id)
    if status is None:
        return _not_found(session_id)
    return status.to_dict()


@uploads_bp.route("/<session_id>/cancel", methods=["POST"])
def cancel_upload(session_id: str):
    """Cancel a running session; finished sessions are left untouched."""
    service = _upload_service()
    if service.peek_status(session_id) is None:
        return _not_found(session_id)

    cancelled = service.cancel(session_id)
    return {"session_id": session_id, "cancelled": cancelled}, 202
