"""
Share inbox: the producer side of the print queue.

A shared document is copied into the inbox folder and queued under its
``file://`` URI. Sharing a file with the same name again overwrites the
copy and, because the identifier is unchanged, adds one to its quantity.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import BinaryIO, Union

from werkzeug.utils import secure_filename

from core.exceptions import InvalidLocationError
from logging_config import get_logger
from .print_queue import LockedPrintJobQueue, PrintJobQueue


# Module logger
logger = get_logger(__name__)


class ShareInbox:
    """Copies received documents into a folder and queues them."""

    def __init__(self, inbox_dir: Path, queue: Union[LockedPrintJobQueue, PrintJobQueue]):
        self._inbox_dir = Path(inbox_dir)
        self._queue = queue

    @property
    def inbox_dir(self) -> Path:
        return self._inbox_dir

    def receive(self, stream: BinaryIO, filename: str) -> str:
        """
        Store a shared document and add it to the queue.

        Args:
            stream: Readable binary stream with the document bytes
            filename: Name the document was shared under

        Returns:
            Queue identifier (``file://`` URI of the stored copy)

        Raises:
            InvalidLocationError: If no usable filename remains after sanitizing
        """
        safe_name = secure_filename(filename or "")
        if not safe_name:
            raise InvalidLocationError(filename or "")

        self._inbox_dir.mkdir(parents=True, exist_ok=True)
        target = (self._inbox_dir / safe_name).resolve()

        # Replace any previous copy with the same name
        with open(target, "wb") as f:
            shutil.copyfileobj(stream, f)

        identifier = target.as_uri()
        self._queue.add_job(identifier)

        logger.info(f"Received shared document {safe_name}")
        return identifier

