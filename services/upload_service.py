"""
Upload submission service with thread-per-session architecture.

The service turns "upload my queue" into a background UploadSession and
keeps its status where request handlers can poll it.

Flow:
    1. Request thread calls upload_service.submit(phone_number)
    2. The phone number is validated and the queue snapshot is planned
       synchronously; planner errors reach the caller before any upload
    3. A session thread (Upload-<id8>) runs UploadSession.start()
    4. Each progress snapshot is written to the UploadStatusStore
    5. On success the session thread clears the print queue; on failure
       the queue is kept for a retry and the error message is recorded;
       on cancellation nothing is reported
    6. Request threads poll upload_service.get_status(session_id); the
       final status is consumed by the first read after the session ends

Thread Safety:
    - The print queue is shared with request threads, so it must be a
      LockedPrintJobQueue
    - UploadStatusStore uses threading.Lock for every access
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from core.exceptions import InvalidPhoneNumberError, UploadCancelledError, UploadError
from core.upload_client import UploadClient
from logging_config import get_logger, get_session_logger, set_thread_name
from models.upload import SessionState, UploadPlan, UploadProgress, UploadStatus
from modules.phone_number import is_valid_phone_number
from modules.upload_planner import UploadJobPlanner
from .print_queue import LockedPrintJobQueue, PrintJobQueue
from .upload_orchestrator import UploadSession


# Module logger
logger = get_logger(__name__)


class UploadStatusStore:
    """
    Thread-safe storage for upload session status.

    Session threads WRITE status here, request threads READ it.
    """

    def __init__(self):
        self._statuses: Dict[str, UploadStatus] = {}
        self._lock = threading.Lock()

    def put(self, status: UploadStatus) -> None:
        with self._lock:
            self._statuses[status.session_id] = status

    def get(self, session_id: str) -> Optional[UploadStatus]:
        with self._lock:
            return self._statuses.get(session_id)

    def pop(self, session_id: str) -> Optional[UploadStatus]:
        """Get and remove a status."""
        with self._lock:
            return self._statuses.pop(session_id, None)

    def record_progress(self, session_id: str, progress: UploadProgress) -> None:
        """Replace the progress of a running session."""
        with self._lock:
            current = self._statuses.get(session_id)
            if current is not None and not current.is_finished:
                self._statuses[session_id] = replace(current, progress=progress)

    def clear(self) -> int:
        """
        Remove all stored statuses.

        Returns:
            Number of statuses removed
        """
        with self._lock:
            count = len(self._statuses)
            self._statuses.clear()
            logger.info(f"Cleared {count} upload statuses from store")
            return count


class UploadService:
    """
    Runs upload sessions for the print queue in background threads.

    Attributes:
        status_store: UploadStatusStore for reading session status
    """

    def __init__(
        self,
        queue: Union[LockedPrintJobQueue, PrintJobQueue],
        client: UploadClient,
        planner: Optional[UploadJobPlanner] = None,
        worker_join_timeout: float = 5.0
    ):
        """
        Initialize upload service.

        Args:
            queue: Print queue (LockedPrintJobQueue when shared across threads)
            client: Upload client used by every session
            planner: Upload planner (default planner if not provided)
            worker_join_timeout: Seconds to wait per worker thread before a
                session's final status is recorded
        """
        self._queue = queue
        self._client = client
        self._planner = planner or UploadJobPlanner()
        self._worker_join_timeout = worker_join_timeout
        self._status_store = UploadStatusStore()

        # Active sessions and their threads, for cancellation and cleanup
        self._sessions: Dict[str, UploadSession] = {}
        self._threads: Dict[str, threading.Thread] = {}
        self._sessions_lock = threading.Lock()

        logger.info("UploadService initialized")

    @property
    def status_store(self) -> UploadStatusStore:
        return self._status_store

    def submit(self, phone_number: str) -> str:
        """
        Start uploading the current queue.

        Args:
            phone_number: Number the print server files the documents under

        Returns:
            session_id (UUID string)

        Raises:
            InvalidPhoneNumberError: If the phone number is malformed
            EmptyQueueError: If the queue is empty
            InvalidLocationError: If a queued identifier is not a local file
        """
        if not is_valid_phone_number(phone_number):
            raise InvalidPhoneNumberError(phone_number)

        plan = self._planner.make_plan(self._queue.job_descriptors())

        session = UploadSession(self._client)
        session_id = session.session_id

        self._status_store.put(
            UploadStatus(
                session_id=session_id,
                state=SessionState.RUNNING,
                progress=plan.initial_progress(),
            )
        )

        thread = threading.Thread(
            target=self._session_thread_main,
            args=(session, plan, phone_number),
            name=f"Upload-{session_id[:8]}",
            daemon=True
        )

        with self._sessions_lock:
            self._sessions[session_id] = session
            self._threads[session_id] = thread

        logger.info(f"Submitting upload session {session_id[:8]}: {plan.total_count} unit(s)")
        thread.start()

        return session_id

    def get_status(self, session_id: str) -> Optional[UploadStatus]:
        """
        Latest status of a session (consumes finished statuses).

        A terminal status is removed by the first read after its session
        thread has exited, so finished sessions do not accumulate.

        Returns:
            UploadStatus, or None if the session is unknown or already reported
        """
        status = self._status_store.get(session_id)
        if status is not None and status.is_finished and not self.is_session_pending(session_id):
            self._status_store.pop(session_id)
            logger.debug(f"Reported final status of session {session_id[:8]}")
        return status

    def peek_status(self, session_id: str) -> Optional[UploadStatus]:
        """Latest status of a session without consuming it."""
        return self._status_store.get(session_id)

    def cancel(self, session_id: str) -> bool:
        """
        Cancel a running session.

        Returns:
            True if the session was still active
        """
        with self._sessions_lock:
            session = self._sessions.get(session_id)

        if session is None:
            return False

        session.cancel()
        return True

    def is_session_pending(self, session_id: str) -> bool:
        """True while the session thread is running."""
        with self._sessions_lock:
            thread = self._threads.get(session_id)
            return thread is not None and thread.is_alive()

    def shutdown(self, timeout_per_thread: float = 5.0) -> None:
        """
        Cancel every active session and wait for its threads.

        Call this during application shutdown.
        """
        with self._sessions_lock:
            active = list(self._sessions.items())
            threads = dict(self._threads)

        if not active:
            logger.info("No active upload sessions to wait for")
            self._status_store.clear()
            return

        logger.info(f"Cancelling {len(active)} upload session(s)...")

        for session_id, session in active:
            session.cancel()
            thread = threads.get(session_id)
            if thread is not None and thread.is_alive():
                thread.join(timeout=timeout_per_thread)
                if thread.is_alive():
                    logger.warning(f"Upload session {session_id[:8]} did not stop in time")
            session.wait_for_workers(timeout_per_thread)

        self._status_store.clear()
        logger.info("Upload service shutdown complete")

    def _session_thread_main(
        self,
        session: UploadSession,
        plan: UploadPlan,
        phone_number: str
    ) -> None:
        """Body of the per-session thread."""
        session_id = session.session_id
        set_thread_name(f"Upload-{session_id[:8]}")
        session_logger = get_session_logger(session_id)

        def on_progress(progress: UploadProgress) -> None:
            self._status_store.record_progress(session_id, progress)

        state = SessionState.FAILED
        error_message: Optional[str] = None

        try:
            session.start(plan.units, phone_number, on_progress=on_progress)
            state = SessionState.SUCCEEDED

            # Success empties the queue; failures keep it for a retry
            self._queue.remove_all_jobs()
            session_logger.info("All units uploaded, print queue cleared")

        except UploadCancelledError:
            state = SessionState.CANCELLED
            session_logger.info("Upload session cancelled")

        except UploadError as e:
            error_message = e.user_message
            session_logger.error(f"Upload session failed: {e}")

        except Exception as e:
            error_message = "An unknown error occurred."
            session_logger.error(f"Upload session crashed: {e}", exc_info=True)

        finally:
            # A cancelled or failed session is only reported once its
            # workers have stopped sending
            if not session.wait_for_workers(self._worker_join_timeout):
                session_logger.warning("Reporting session with upload workers still running")

            current = self._status_store.get(session_id)
            self._status_store.put(
                UploadStatus(
                    session_id=session_id,
                    state=state,
                    progress=session.progress or plan.initial_progress(),
                    error_message=error_message,
                    started_at=current.started_at if current else datetime.now(timezone.utc),
                    finished_at=datetime.now(timezone.utc),
                )
            )

            with self._sessions_lock:
                self._sessions.pop(session_id, None)
                self._threads.pop(session_id, None)

            session_logger.info("Session thread exiting")
