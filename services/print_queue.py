"""
Print job queue state.

PrintJobQueue is the authoritative in-memory copy of the queue: an ordered,
duplicate-free list of document identifiers plus a settings map keyed by
identifier. Every mutation is written through to the injected QueueStore
and returns the resulting descriptor snapshot.

Duplicate handling:
    - add_job() of an identifier already queued adds one copy to its
      quantity instead of queueing it twice.
    - reload() folds duplicates found in the store (written by producers
      that append without reading) into the quantity of the first
      occurrence.

Thread Safety:
    PrintJobQueue expects a single owner. Code that touches the queue from
    several threads (Flask request threads, upload session threads) goes
    through LockedPrintJobQueue, which funnels every call through one lock.

Persistence failures are logged and swallowed: the in-memory state stays
authoritative for the rest of the process.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Iterable, List

from core.exceptions import QueueStoreError
from logging_config import get_logger
from models.print_job import DocumentSettings, JobDescriptor, DEFAULT_SETTINGS
from modules.queue_store import QueueStore


# Module logger
logger = get_logger(__name__)

QueueListener = Callable[[List[JobDescriptor]], None]


class PrintJobQueue:
    """
    Ordered document queue with per-document print settings.

    Invariants:
        - jobs() never contains the same identifier twice
        - every queued identifier has exactly one settings entry
        - settings of an identifier are dropped when it leaves the queue
        - stored quantities are always >= 1
    """

    def __init__(self, store: QueueStore):
        """
        Initialize the queue and load its state from the store.

        Args:
            store: Durable queue store
        """
        self._store = store
        self._queue: List[str] = []
        self._settings: Dict[str, DocumentSettings] = {}
        self._listeners: List[QueueListener] = []

        self._load_state()

    # =========================================================================
    # READ API
    # =========================================================================

    def jobs(self) -> List[str]:
        """Current identifiers in insertion order."""
        return list(self._queue)

    def job_descriptors(self) -> List[JobDescriptor]:
        """Normalized view of every queue entry, in queue order."""
        descriptors = []
        for identifier in self._queue:
            settings = self._settings.get(identifier, DEFAULT_SETTINGS).normalized
            descriptors.append(
                JobDescriptor(
                    identifier=identifier,
                    quantity=settings.quantity,
                    is_a3=settings.is_a3,
                )
            )
        return descriptors

    def job_quantity(self, identifier: str) -> int:
        """Copies requested for a document (1 when unknown)."""
        return self._settings.get(identifier, DEFAULT_SETTINGS).normalized.quantity

    def is_a3(self, identifier: str) -> bool:
        """A3 flag for a document (False when unknown)."""
        return self._settings.get(identifier, DEFAULT_SETTINGS).is_a3

    def __len__(self) -> int:
        return len(self._queue)

    # =========================================================================
    # MUTATION API
    # =========================================================================

    def add_job(self, identifier: str) -> List[JobDescriptor]:
        """
        Queue a document.

        A repeat add of a queued identifier counts as one more copy.

        Args:
            identifier: Source URL string of the document

        Returns:
            Descriptor snapshot after the change
        """
        settings = dict(self._settings)

        if identifier in self._queue:
            current = settings.get(identifier, DEFAULT_SETTINGS).normalized
            settings[identifier] = DocumentSettings(
                quantity=current.quantity + 1,
                is_a3=current.is_a3,
            )
            logger.info(f"Job already queued, quantity now {current.quantity + 1}: {identifier}")
            self._update_settings(settings)
            return self._changed()

        self._update_queue(self._queue + [identifier])
        settings[identifier] = settings.get(identifier, DEFAULT_SETTINGS).normalized
        self._update_settings(settings)

        logger.info(f"Job added ({len(self._queue)} queued): {identifier}")
        return self._changed()

    def set_job_quantity(self, identifier: str, quantity: int) -> List[JobDescriptor]:
        """
        Set the copy count of a document; values below 1 are stored as 1.

        Does not change queue membership.
        """
        settings = dict(self._settings)
        current = settings.get(identifier, DEFAULT_SETTINGS)
        settings[identifier] = DocumentSettings(quantity=quantity, is_a3=current.is_a3).normalized

        logger.debug(f"Quantity of {identifier} set to {settings[identifier].quantity}")
        self._update_settings(settings)
        return self._changed()

    def set_a3(self, identifier: str, is_a3: bool) -> List[JobDescriptor]:
        """Set the A3 flag of a document. Does not change queue membership."""
        settings = dict(self._settings)
        current = settings.get(identifier, DEFAULT_SETTINGS)
        settings[identifier] = DocumentSettings(quantity=current.quantity, is_a3=bool(is_a3)).normalized

        logger.debug(f"A3 of {identifier} set to {bool(is_a3)}")
        self._update_settings(settings)
        return self._changed()

    def remove_job(self, index: int) -> List[JobDescriptor]:
        """
        Remove the document at ``index``.

        Out-of-range indices (negative ones included) are ignored.
        """
        return self.remove_jobs([index])

    def remove_jobs(self, indices: Iterable[int]) -> List[JobDescriptor]:
        """
        Remove the documents at the given positions.

        Indices are applied from the highest down so earlier removals do not
        shift later ones. Out-of-range indices are ignored.
        """
        queue = list(self._queue)
        settings = dict(self._settings)
        removed = 0

        for index in sorted(set(indices), reverse=True):
            if not 0 <= index < len(queue):
                logger.debug(f"Ignoring out-of-range index {index}")
                continue
            identifier = queue.pop(index)
            removed += 1
            if identifier not in queue:
                settings.pop(identifier, None)

        if not removed:
            return self.job_descriptors()

        self._update_queue(queue)
        self._update_settings(settings)

        logger.info(f"Removed {removed} job(s), {len(queue)} remaining")
        return self._changed()

    def remove_all_jobs(self) -> List[JobDescriptor]:
        """Empty the queue and clear both store keys."""
        self._update_queue([], clear=True)
        self._update_settings({}, clear=True)

        logger.info("Print queue cleared")
        return self._changed()

    def reload(self) -> List[JobDescriptor]:
        """
        Re-read the store and reconcile in-memory state with it.

        Returns:
            Descriptor snapshot after reconciliation
        """
        self._load_state()
        return self._changed()

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    def subscribe(self, listener: QueueListener) -> Callable[[], None]:
        """
        Register a listener called with the descriptor snapshot after every
        mutation.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _load_state(self) -> None:
        """
        Load the store and normalize it.

        Stored duplicates are collapsed into the first occurrence and each
        extra occurrence multiplies the stored quantity, so copies appended
        by an outside producer are not lost.
        """
        try:
            loaded_queue = self._store.load_queue()
            stored_settings = self._store.load_settings()
        except QueueStoreError as e:
            logger.error(f"Failed to load print queue, keeping in-memory state: {e}")
            return

        occurrences: Dict[str, int] = {}
        unique_queue: List[str] = []
        for identifier in loaded_queue:
            if identifier not in occurrences:
                unique_queue.append(identifier)
                occurrences[identifier] = 0
            occurrences[identifier] += 1

        normalized: Dict[str, DocumentSettings] = {}
        for identifier in unique_queue:
            base = stored_settings.get(identifier, DEFAULT_SETTINGS).normalized
            normalized[identifier] = DocumentSettings(
                quantity=base.quantity * max(occurrences[identifier], 1),
                is_a3=base.is_a3,
            )

        duplicates = len(loaded_queue) - len(unique_queue)
        if duplicates:
            logger.info(f"Folded {duplicates} duplicate stored entries into quantities")

        self._update_queue(unique_queue)
        self._update_settings(normalized)
        logger.debug(f"Loaded {len(unique_queue)} job(s) from store")

    def _update_queue(self, queue: List[str], clear: bool = False) -> None:
        self._queue = queue
        try:
            if clear:
                self._store.clear_queue()
            else:
                self._store.save_queue(queue)
        except QueueStoreError as e:
            logger.error(f"Failed to persist print queue: {e}")

    def _update_settings(self, settings: Dict[str, DocumentSettings], clear: bool = False) -> None:
        self._settings = settings
        try:
            if clear:
                self._store.clear_settings()
            else:
                self._store.save_settings(settings)
        except QueueStoreError as e:
            logger.error(f"Failed to persist print settings: {e}")

    def _changed(self) -> List[JobDescriptor]:
        """Notify listeners and return the current snapshot."""
        snapshot = self.job_descriptors()
        for listener in list(self._listeners):
            try:
                listener(list(snapshot))
            except Exception as e:
                logger.error(f"Queue listener failed: {e}", exc_info=True)
        return snapshot


class LockedPrintJobQueue:
    """
    Serializes access to a PrintJobQueue shared between threads.

    Every public method of PrintJobQueue is available here and runs under a
    single re-entrant lock.
    """

    def __init__(self, queue: PrintJobQueue):
        self._queue = queue
        self._lock = threading.RLock()

    def jobs(self) -> List[str]:
        with self._lock:
            return self._queue.jobs()

    def job_descriptors(self) -> List[JobDescriptor]:
        with self._lock:
            return self._queue.job_descriptors()

    def job_quantity(self, identifier: str) -> int:
        with self._lock:
            return self._queue.job_quantity(identifier)

    def is_a3(self, identifier: str) -> bool:
        with self._lock:
            return self._queue.is_a3(identifier)

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def add_job(self, identifier: str) -> List[JobDescriptor]:
        with self._lock:
            return self._queue.add_job(identifier)

    def set_job_quantity(self, identifier: str, quantity: int) -> List[JobDescriptor]:
        with self._lock:
            return self._queue.set_job_quantity(identifier, quantity)

    def set_a3(self, identifier: str, is_a3: bool) -> List[JobDescriptor]:
        with self._lock:
            return self._queue.set_a3(identifier, is_a3)

    def remove_job(self, index: int) -> List[JobDescriptor]:
        with self._lock:
            return self._queue.remove_job(index)

    def remove_jobs(self, indices: Iterable[int]) -> List[JobDescriptor]:
        with self._lock:
            return self._queue.remove_jobs(indices)

    def remove_all_jobs(self) -> List[JobDescriptor]:
        with self._lock:
            return self._queue.remove_all_jobs()

    def reload(self) -> List[JobDescriptor]:
        with self._lock:
            return self._queue.reload()

    def subscribe(self, listener: QueueListener) -> Callable[[], None]:
        with self._lock:
            return self._queue.subscribe(listener)
