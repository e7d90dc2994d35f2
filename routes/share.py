"""
Share route.

Receives a document from a share sheet (multipart field ``file``), stores
it in the inbox and queues it.
"""

from flask import Blueprint, current_app, request

from core.exceptions import InvalidLocationError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

share_bp = Blueprint("share", __name__)


@share_bp.route("/api/share", methods=["POST"])
def share():
    """Store a shared document and add it to the print queue."""
    if "file" not in request.files:
        return {"error": "bad_request", "message": "No file part in request"}, 400

    upload = request.files["file"]
    if not upload.filename:
        return {"error": "bad_request", "message": "No file selected"}, 400

    inbox = current_app.config["SHARE_INBOX"]

    try:
        identifier = inbox.receive(upload.stream, upload.filename)
    except InvalidLocationError as e:
        logger.warning(f"Rejected shared file: {e}")
        return {"error": "invalid_location", "message": e.user_message}, 400

    jobs = current_app.config["PRINT_QUEUE"].job_descriptors()
    return {"identifier": identifier, "jobs": [d.to_dict() for d in jobs]}, 201
