"""
Custom exceptions for PrintQueueWeb.

Exception Hierarchy:
    PrintQueueError (base)
    ├── QueueStoreError          - Persistence failed (logged, never propagated by the queue)
    ├── InvalidPhoneNumberError  - Phone number does not match the login format
    ├── UploadCancelledError     - Session was cancelled (never shown to the user)
    └── UploadError              - Upload failed (user-visible)
        ├── EmptyQueueError          - Nothing to upload
        ├── InvalidLocationError     - Identifier is not a local file reference
        ├── DocumentNotFoundError    - Local file is missing
        ├── HttpStatusError          - Print server answered with a non-2xx status
        ├── NetworkError             - Transport failure
        └── UnknownUploadError       - Anything else

Usage:
    UploadCancelledError deliberately sits outside UploadError so that an
    ``except UploadError`` block reporting failures never catches a
    cancellation.
"""

from pathlib import Path
from typing import Optional, Dict, Any


class PrintQueueError(Exception):
    """
    Base exception for all PrintQueueWeb errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class QueueStoreError(PrintQueueError):
    """
    Reading or writing the durable queue store failed.

    PrintJobQueue logs these and keeps working from memory.
    """

    def __init__(self, operation: str, reason: str):
        message = f"Queue store {operation} failed: {reason}"
        super().__init__(message, {"operation": operation})
        self.operation = operation
        self.reason = reason


class InvalidPhoneNumberError(PrintQueueError):
    """The phone number used to address the print server is malformed."""

    def __init__(self, phone_number: str):
        super().__init__(
            "Phone number must be 11 digits starting with 010",
            {"phone_number": phone_number},
        )
        self.phone_number = phone_number


class UploadCancelledError(PrintQueueError):
    """
    The upload session was cancelled.

    Raised by UploadSession.start() and by clients that observe the cancel
    signal. Callers treat it as a silent outcome, not as a failure.
    """

    def __init__(self, message: str = "Upload cancelled"):
        super().__init__(message)


# =============================================================================
# UPLOAD ERRORS - surfaced to the user
# =============================================================================

class UploadError(PrintQueueError):
    """
    Base class for upload failures.

    Subclasses provide ``user_message``, the text a UI shows in its failure
    state.
    """

    @property
    def user_message(self) -> str:
        return self.message


class EmptyQueueError(UploadError):
    """There are no documents (or no units) to upload."""

    def __init__(self):
        super().__init__("Print queue is empty")

    @property
    def user_message(self) -> str:
        return "There are no documents in the print queue."


class InvalidLocationError(UploadError):
    """
    A queue identifier cannot be resolved to a local file.

    Raised by the planner before any network activity.
    """

    def __init__(self, identifier: str):
        super().__init__(
            f"Invalid file location: {identifier!r}",
            {"identifier": identifier},
        )
        self.identifier = identifier

    @property
    def user_message(self) -> str:
        return f"The file location is not valid: {self.identifier}"


class DocumentNotFoundError(UploadError):
    """The file behind an upload unit no longer exists on disk."""

    def __init__(self, path: Path):
        super().__init__(f"File not found: {path}", {"path": str(path)})
        self.path = Path(path)

    @property
    def user_message(self) -> str:
        return f"File not found: {self.path.name}"


class HttpStatusError(UploadError):
    """
    The print server answered with a non-2xx status.

    ``server_message`` is a short, sanitized excerpt of the response body,
    or None when the body carried nothing worth showing.
    """

    def __init__(self, status_code: int, server_message: Optional[str] = None):
        details: Dict[str, Any] = {"status_code": status_code}
        if server_message:
            details["server_message"] = server_message
        super().__init__(f"Print server returned HTTP {status_code}", details)
        self.status_code = status_code
        self.server_message = server_message

    @property
    def user_message(self) -> str:
        if self.server_message:
            return f"The server returned an error. (HTTP {self.status_code}) {self.server_message}"
        return f"The server returned an error. (HTTP {self.status_code})"


class NetworkError(UploadError):
    """Connection, TLS or timeout failure talking to the print server."""

    def __init__(self, reason: str):
        super().__init__(f"Network error: {reason}", {"reason": reason})
        self.reason = reason

    @property
    def user_message(self) -> str:
        return "A network error occurred."


class UnknownUploadError(UploadError):
    """An upload failed for a reason none of the other errors describe."""

    def __init__(self, reason: str = "unknown"):
        super().__init__(f"Upload failed: {reason}", {"reason": reason})
        self.reason = reason

    @property
    def user_message(self) -> str:
        return "An unknown error occurred."
