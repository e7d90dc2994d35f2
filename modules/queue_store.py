"""
Durable key-value storage for the print queue.

Two keys are kept, matching the records the share producer writes:
    printQueue          - ordered list of document identifiers
    printQueueSettings  - identifier -> {"quantity": int, "isA3": bool}

JsonFileQueueStore keeps both keys in one JSON document and replaces it
atomically on every write. InMemoryQueueStore is the fake used in tests.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Sequence, Mapping, Any, Optional

from core.exceptions import QueueStoreError
from logging_config import get_logger
from models.print_job import DocumentSettings


QUEUE_KEY = "printQueue"
SETTINGS_KEY = "printQueueSettings"

# Module logger
logger = get_logger(__name__)


class QueueStore(ABC):
    """
    Persistence boundary of PrintJobQueue.

    Implementations raise QueueStoreError when the backing storage fails.
    """

    @abstractmethod
    def load_queue(self) -> List[str]:
        """Return the stored identifiers in order (may contain duplicates)."""

    @abstractmethod
    def save_queue(self, queue: Sequence[str]) -> None:
        """Replace the stored identifiers."""

    @abstractmethod
    def clear_queue(self) -> None:
        """Remove the stored identifiers."""

    @abstractmethod
    def load_settings(self) -> Dict[str, DocumentSettings]:
        """Return the stored per-document settings."""

    @abstractmethod
    def save_settings(self, settings: Mapping[str, DocumentSettings]) -> None:
        """Replace the stored per-document settings."""

    @abstractmethod
    def clear_settings(self) -> None:
        """Remove the stored per-document settings."""


def _decode_queue(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, str)]


def _decode_settings(raw: Any) -> Dict[str, DocumentSettings]:
    if not isinstance(raw, dict):
        return {}
    return {
        identifier: DocumentSettings.from_dict(record)
        for identifier, record in raw.items()
        if isinstance(identifier, str)
    }


class JsonFileQueueStore(QueueStore):
    """
    Queue store backed by a single JSON file.

    A missing file reads as an empty queue. Writes go to a temporary file
    in the same directory followed by os.replace(), so a crash never leaves
    a half-written document behind.

    Thread Safety:
        An internal lock serializes read-modify-write cycles within this
        process. Writers in other processes are reconciled by
        PrintJobQueue.reload().
    """

    def __init__(self, path: Path):
        """
        Args:
            path: Location of the JSON document (parent dirs are created on write)
        """
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load_queue(self) -> List[str]:
        with self._lock:
            return _decode_queue(self._read().get(QUEUE_KEY))

    def save_queue(self, queue: Sequence[str]) -> None:
        with self._lock:
            self._update(QUEUE_KEY, list(queue))

    def clear_queue(self) -> None:
        with self._lock:
            self._update(QUEUE_KEY, None)

    def load_settings(self) -> Dict[str, DocumentSettings]:
        with self._lock:
            return _decode_settings(self._read().get(SETTINGS_KEY))

    def save_settings(self, settings: Mapping[str, DocumentSettings]) -> None:
        with self._lock:
            self._update(
                SETTINGS_KEY,
                {identifier: value.normalized.to_dict() for identifier, value in settings.items()},
            )

    def clear_settings(self) -> None:
        with self._lock:
            self._update(SETTINGS_KEY, None)

    def _read(self) -> Dict[str, Any]:
        """Read the whole document (caller holds the lock)."""
        if not self._path.exists():
            return {}

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except OSError as e:
            raise QueueStoreError("read", str(e)) from e
        except json.JSONDecodeError as e:
            raise QueueStoreError("read", f"invalid JSON in {self._path}: {e}") from e

        if not isinstance(document, dict):
            raise QueueStoreError("read", f"unexpected document type {type(document).__name__}")
        return document

    def _update(self, key: str, value: Any) -> None:
        """Set (or with None, delete) one key and write the document back."""
        try:
            document = self._read()
        except QueueStoreError as e:
            # A corrupted document must not block new writes
            logger.warning(f"Discarding unreadable queue store {self._path}: {e.reason}")
            document = {}

        if value is None:
            document.pop(key, None)
        else:
            document[key] = value

        self._write(document)

    def _write(self, document: Dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise QueueStoreError("write", str(e)) from e


class InMemoryQueueStore(QueueStore):
    """
    Queue store that keeps the raw records in a dict.

    ``records`` holds exactly what a durable store would hold, so tests can
    seed legacy data (duplicates, zero quantities) and inspect writes.
    """

    def __init__(
        self,
        queue: Sequence[str] = (),
        settings: Optional[Mapping[str, DocumentSettings]] = None,
    ):
        self.records: Dict[str, Any] = {}
        if queue:
            self.records[QUEUE_KEY] = list(queue)
        if settings:
            self.records[SETTINGS_KEY] = {k: v.to_dict() for k, v in settings.items()}

    def load_queue(self) -> List[str]:
        return _decode_queue(self.records.get(QUEUE_KEY))

    def save_queue(self, queue: Sequence[str]) -> None:
        self.records[QUEUE_KEY] = list(queue)

    def clear_queue(self) -> None:
        self.records.pop(QUEUE_KEY, None)

    def load_settings(self) -> Dict[str, DocumentSettings]:
        return _decode_settings(self.records.get(SETTINGS_KEY))

    def save_settings(self, settings: Mapping[str, DocumentSettings]) -> None:
        self.records[SETTINGS_KEY] = {k: v.normalized.to_dict() for k, v in settings.items()}

    def clear_settings(self) -> None:
        self.records.pop(SETTINGS_KEY, None)
