"""
Print queue routes.

JSON endpoints a UI layer uses to show and edit the queue. Every mutation
answers with the resulting queue so clients never need a second request.
"""

from flask import Blueprint, current_app, request

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

queue_bp = Blueprint("queue", __name__, url_prefix="/api/queue")


def _queue():
    return current_app.config["PRINT_QUEUE"]


def _jobs_response(descriptors, status_code: int = 200):
    return {"jobs": [d.to_dict() for d in descriptors]}, status_code


def _bad_request(message: str):
    return {"error": "bad_request", "message": message}, 400


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@queue_bp.route("", methods=["GET"])
def list_jobs():
    """Current queue with normalized settings."""
    return _jobs_response(_queue().job_descriptors())


@queue_bp.route("", methods=["POST"])
def add_job():
    """Queue a document by identifier (a repeat add counts one more copy)."""
    payload = request.get_json(silent=True) or {}
    identifier = payload.get("identifier")

    if not isinstance(identifier, str) or not identifier.strip():
        return _bad_request("identifier is required")

    return _jobs_response(_queue().add_job(identifier), 201)


@queue_bp.route("/settings", methods=["PATCH"])
def update_settings():
    """
    Update copy count and/or A3 flag of one document.

    Body: {"identifier": str, "quantity": int?, "isA3": bool?}
    """
    payload = request.get_json(silent=True) or {}
    identifier = payload.get("identifier")

    if not isinstance(identifier, str) or not identifier.strip():
        return _bad_request("identifier is required")

    has_quantity = "quantity" in payload
    has_a3 = "isA3" in payload

    if not has_quantity and not has_a3:
        return _bad_request("quantity or isA3 is required")
    if has_quantity and not _is_int(payload["quantity"]):
        return _bad_request("quantity must be an integer")
    if has_a3 and not isinstance(payload["isA3"], bool):
        return _bad_request("isA3 must be a boolean")

    queue = _queue()
    descriptors = None
    if has_quantity:
        descriptors = queue.set_job_quantity(identifier, payload["quantity"])
    if has_a3:
        descriptors = queue.set_a3(identifier, payload["isA3"])

    return _jobs_response(descriptors)


@queue_bp.route("/<int(signed=True):index>", methods=["DELETE"])
def remove_job(index: int):
    """Remove the document at a position (out-of-range positions are ignored)."""
    return _jobs_response(_queue().remove_job(index))


@queue_bp.route("/remove", methods=["POST"])
def remove_jobs():
    """Remove several positions at once. Body: {"indices": [int, ...]}"""
    payload = request.get_json(silent=True) or {}
    indices = payload.get("indices")

    if not isinstance(indices, list) or not all(_is_int(i) for i in indices):
        return _bad_request("indices must be a list of integers")

    return _jobs_response(_queue().remove_jobs(indices))


@queue_bp.route("", methods=["DELETE"])
def remove_all_jobs():
    """Empty the queue."""
    logger.info("Clearing print queue on request")
    return _jobs_response(_queue().remove_all_jobs())


@queue_bp.route("/reload", methods=["POST"])
def reload_queue():
    """Re-read the store, folding in documents written by other producers."""
    return _jobs_response(_queue().reload())
