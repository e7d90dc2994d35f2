"""
Print server upload client.

Uploads one document copy per call as a multipart form POST:

    phone_number  - the user's phone number (the printer looks documents up by it)
    is_a3         - "true" or "false"
    file          - the document bytes

Any 2xx answer is a success.

THREAD SAFETY:
    - RequestsUploadClient keeps no per-call state; one instance is shared by
      every worker thread of every session
    - Each call opens its own file handle and its own HTTP request

CANCELLATION:
    - Callers pass the session's threading.Event
    - The event is checked before the request is sent, on every chunk of
      the streamed request body, and again once the round trip returns; a
      set event always wins over the HTTP outcome
    - Cancelling while the body is on the wire aborts the request and
      closes its connection, so the print server never gets a complete
      document
    - Once the body is sent, waiting for the answer is bounded by
      ``timeout_seconds``

Usage:
    client = RequestsUploadClient("https://print.example/upload_file/", timeout_seconds=60)
    client.upload(unit, phone_number="01012345678", cancel_event=session_event)
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

import bleach
import requests
from requests_toolbelt import MultipartEncoder, MultipartEncoderMonitor

from models.upload import UploadUnit
from .exceptions import (
    DocumentNotFoundError,
    HttpStatusError,
    NetworkError,
    UploadCancelledError,
)


# Server messages longer than this are cut and marked with an ellipsis
MAX_SERVER_MESSAGE_LENGTH = 120


def normalize_server_message(body: Optional[bytes]) -> Optional[str]:
    """
    Extract a short, displayable message from an error response body.

    Returns None for empty bodies, undecodable bytes and HTML pages.
    """
    if not body:
        return None

    try:
        raw = body.decode("utf-8")
    except UnicodeDecodeError:
        return None

    trimmed = raw.replace("\n", " ").replace("\r", " ").strip()

    # Full error pages from proxies are noise, not a message
    if "<html" in trimmed.lower():
        return None

    trimmed = bleach.clean(trimmed, tags=[], strip=True).strip()

    if len(trimmed) > MAX_SERVER_MESSAGE_LENGTH:
        return trimmed[:MAX_SERVER_MESSAGE_LENGTH] + "…"

    return trimmed or None


class UploadClient(ABC):
    """Uploads a single unit. Implementations must be safe to call from many threads."""

    @abstractmethod
    def upload(
        self,
        unit: UploadUnit,
        phone_number: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Upload one copy of a document.

        Raises:
            DocumentNotFoundError: The local file is missing
            HttpStatusError: Non-2xx answer from the print server
            NetworkError: Transport failure
            UploadCancelledError: ``cancel_event`` was set
        """


class RequestsUploadClient(UploadClient):
    """
    UploadClient implementation on top of ``requests``.

    Attributes:
        endpoint_url: Multipart upload endpoint of the print server
        timeout_seconds: Connect and read timeout per request
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout_seconds: float = 60.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the upload client.

        Args:
            endpoint_url: Multipart upload endpoint
            timeout_seconds: Per-request timeout
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If endpoint_url is empty
        """
        if not endpoint_url:
            raise ValueError("endpoint_url is required")

        self.endpoint_url = endpoint_url
        self.timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger("print_queue_web.core.upload_client")

    def upload(
        self,
        unit: UploadUnit,
        phone_number: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        path = unit.file_location

        if not path.is_file():
            self._logger.error(f"Upload source missing: {path}")
            raise DocumentNotFoundError(path)

        self._raise_if_cancelled(cancel_event)

        self._logger.debug(f"Uploading {path.name} (A3={unit.is_a3}) to {self.endpoint_url}")

        try:
            with open(path, "rb") as f:
                body = self._build_body(unit, phone_number, f, cancel_event)
                response = requests.post(
                    self.endpoint_url,
                    data=body,
                    headers={"Content-Type": body.content_type},
                    timeout=self.timeout_seconds,
                )
        except requests.exceptions.RequestException as e:
            self._raise_if_cancelled(cancel_event)
            self._logger.error(f"Upload of {path.name} failed in transport: {e}")
            raise NetworkError(str(e)) from e
        except OSError as e:
            # File vanished or became unreadable between the check and the open
            self._logger.error(f"Upload source unreadable: {path}: {e}")
            raise DocumentNotFoundError(path) from e

        self._raise_if_cancelled(cancel_event)

        if not 200 <= response.status_code < 300:
            message = normalize_server_message(response.content)
            self._logger.error(
                f"Print server rejected {path.name}: HTTP {response.status_code}"
                + (f" ({message})" if message else "")
            )
            raise HttpStatusError(response.status_code, message)

        self._logger.debug(f"Upload accepted: {path.name} (HTTP {response.status_code})")

    def _build_body(
        self,
        unit: UploadUnit,
        phone_number: str,
        file_obj,
        cancel_event: Optional[threading.Event]
    ) -> MultipartEncoderMonitor:
        """
        Streaming multipart body for one unit.

        The body is read chunk by chunk while it is sent. Each read checks
        the cancel event and raises UploadCancelledError, which aborts the
        request mid-transfer.
        """
        encoder = MultipartEncoder(
            fields={
                "phone_number": phone_number,
                "is_a3": "true" if unit.is_a3 else "false",
                "file": (unit.file_location.name, file_obj),
            }
        )

        def on_read(monitor: MultipartEncoderMonitor) -> None:
            if cancel_event is not None and cancel_event.is_set():
                self._logger.info(
                    f"Upload of {unit.file_location.name} aborted after "
                    f"{monitor.bytes_read}/{monitor.len} bytes"
                )
                raise UploadCancelledError()

        return MultipartEncoderMonitor(encoder, on_read)

    @staticmethod
    def _raise_if_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise UploadCancelledError()
