"""
Core module for PrintQueueWeb.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- upload_client: Print server upload client (one document copy per call)
"""

from .exceptions import (
    PrintQueueError,
    QueueStoreError,
    InvalidPhoneNumberError,
    UploadCancelledError,
    UploadError,
    EmptyQueueError,
    InvalidLocationError,
    DocumentNotFoundError,
    HttpStatusError,
    NetworkError,
    UnknownUploadError,
)
from .upload_client import UploadClient, RequestsUploadClient

__all__ = [
    "PrintQueueError",
    "QueueStoreError",
    "InvalidPhoneNumberError",
    "UploadCancelledError",
    "UploadError",
    "EmptyQueueError",
    "InvalidLocationError",
    "DocumentNotFoundError",
    "HttpStatusError",
    "NetworkError",
    "UnknownUploadError",
    "UploadClient",
    "RequestsUploadClient",
]
