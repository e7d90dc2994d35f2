"""
Concurrent upload orchestration.

One UploadSession uploads a fixed set of units in parallel and ends in
exactly one terminal state.

Thread Model:
    Caller thread (runs start())
    ├── aggregator: reads the result channel, owns every counter,
    │   emits progress snapshots
    └── Upload-<id8>-<n> worker threads (one per unit)
        └── client.upload(), then put (unit, error_or_None) on the channel

Workers never touch shared counters; the aggregator is the only writer of
success_count / completed_per_group and the only caller of on_progress.

Failure semantics:
    - The first failing unit fails the whole session (fail-fast). Units
      still in flight are cancelled and their results are discarded.
    - Cancellation raises UploadCancelledError, which is not an UploadError.
      Once cancel() is called no further progress is emitted, even for
      results already waiting on the channel.
    - Workers share the session's cancel event with the client, so a
      cancel aborts uploads that are still sending.

Usage:
    session = UploadSession(client)
    try:
        final = session.start(plan.units, phone_number, on_progress=show)
    except UploadCancelledError:
        pass                      # user backed out, nothing to report
    except UploadError as e:
        report(e.user_message)    # queue is kept for a retry
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from core.exceptions import (
    EmptyQueueError,
    UnknownUploadError,
    UploadCancelledError,
    UploadError,
)
from core.upload_client import UploadClient
from logging_config import get_session_logger
from models.upload import SessionState, UploadProgress, UploadUnit


ProgressCallback = Callable[[UploadProgress], None]

# Wakes the aggregator when cancel() is called from another thread
_CANCEL_SIGNAL = object()


class UploadSession:
    """
    Single-use upload session.

    State machine:
        IDLE -> RUNNING -> (SUCCEEDED | FAILED | CANCELLED)

    Calling start() twice is a programming error and raises RuntimeError.
    cancel() may be called from any thread at any time.
    """

    def __init__(
        self,
        client: UploadClient,
        session_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            client: Upload client shared by all worker threads
            session_id: Session identifier (generated if not provided)
            logger: Logger instance (session logger if not provided)
        """
        self._client = client
        self._session_id = session_id or str(uuid.uuid4())
        self._logger = logger or get_session_logger(self._session_id)

        self._state = SessionState.IDLE
        self._state_lock = threading.Lock()
        self._started = False

        self._cancel_event = threading.Event()
        self._results: "queue.Queue[object]" = queue.Queue()
        self._workers: List[threading.Thread] = []
        self._progress: Optional[UploadProgress] = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            return self._state

    @property
    def progress(self) -> Optional[UploadProgress]:
        """Latest progress snapshot (None before start)."""
        return self._progress

    def start(
        self,
        units: Sequence[UploadUnit],
        phone_number: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> UploadProgress:
        """
        Upload every unit concurrently and block until a terminal state.

        Args:
            units: Units to upload (one per physical copy)
            phone_number: Credential sent with every unit
            on_progress: Called with a new snapshot after each successful unit,
                always from this thread

        Returns:
            Final progress (success_count == total_count)

        Raises:
            EmptyQueueError: If units is empty (the session never runs)
            UploadError: The first unit failure
            UploadCancelledError: If the session was cancelled
            RuntimeError: If start() was already called on this session
        """
        units = tuple(units)

        with self._state_lock:
            if self._started:
                raise RuntimeError("UploadSession is single-use; start() was already called")
            self._started = True

            if not units:
                raise EmptyQueueError()

            if self._cancel_event.is_set():
                self._state = SessionState.CANCELLED
                self._logger.info("Session cancelled before start")
                raise UploadCancelledError()

            self._state = SessionState.RUNNING

        total_count = len(units)
        completed_per_group: Dict[str, int] = {}
        for unit in units:
            completed_per_group.setdefault(unit.group_id, 0)
        success_count = 0

        self._progress = UploadProgress(0, total_count, dict(completed_per_group))
        self._logger.info(
            f"Session started: {total_count} unit(s) for {len(completed_per_group)} document(s)"
        )

        self._dispatch(units, phone_number)

        try:
            while True:
                message = self._results.get()

                # Results queued ahead of the cancel signal are discarded
                if message is _CANCEL_SIGNAL or self._cancel_event.is_set():
                    self._finish(SessionState.CANCELLED)
                    raise UploadCancelledError()

                unit, error = message

                if error is None:
                    success_count += 1
                    completed_per_group[unit.group_id] += 1
                    progress = UploadProgress(
                        success_count=success_count,
                        total_count=total_count,
                        completed_per_group=dict(completed_per_group),
                    )
                    self._progress = progress
                    self._logger.debug(f"Progress {success_count}/{total_count}")

                    if on_progress is not None:
                        on_progress(progress)

                    if success_count == total_count:
                        self._finish(SessionState.SUCCEEDED)
                        return progress
                    continue

                if isinstance(error, UploadCancelledError):
                    self._finish(SessionState.CANCELLED)
                    raise error

                self._logger.error(f"Unit for {unit.group_id} failed, cancelling session: {error}")
                self._finish(SessionState.FAILED)
                raise error
        finally:
            # An exception escaping the loop (e.g. from on_progress) must not
            # leave the session running with live workers
            with self._state_lock:
                if self._state is SessionState.RUNNING:
                    self._state = SessionState.FAILED
                    self._cancel_event.set()
                    self._logger.error("Session aborted by an unexpected error")

    def cancel(self) -> None:
        """
        Cancel the session.

        RUNNING sessions end CANCELLED; a session cancelled before start()
        resolves CANCELLED without uploading. No-op once terminal.
        """
        with self._state_lock:
            if self._state.is_terminal:
                return

            self._cancel_event.set()
            if self._state is SessionState.RUNNING:
                self._results.put(_CANCEL_SIGNAL)

        self._logger.info("Cancellation requested")

    def wait_for_workers(self, timeout_per_thread: float = 5.0) -> bool:
        """
        Join outstanding worker threads.

        Returns:
            True if every worker has exited
        """
        all_done = True
        for worker in list(self._workers):
            worker.join(timeout=timeout_per_thread)
            if worker.is_alive():
                self._logger.warning(f"Worker {worker.name} still running after {timeout_per_thread}s")
                all_done = False
        return all_done

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _dispatch(self, units: Tuple[UploadUnit, ...], phone_number: str) -> None:
        short_id = self._session_id[:8]
        for number, unit in enumerate(units, start=1):
            worker = threading.Thread(
                target=self._run_unit,
                args=(unit, phone_number),
                name=f"Upload-{short_id}-{number}",
                daemon=True
            )
            self._workers.append(worker)
            worker.start()

    def _run_unit(self, unit: UploadUnit, phone_number: str) -> None:
        """Worker thread body: upload one unit and report the outcome."""
        if self._cancel_event.is_set():
            self._results.put((unit, UploadCancelledError()))
            return

        try:
            self._client.upload(unit, phone_number, cancel_event=self._cancel_event)
        except (UploadError, UploadCancelledError) as e:
            self._results.put((unit, e))
            return
        except Exception as e:
            self._logger.error(
                f"Unexpected error uploading {unit.file_location.name}: {e}", exc_info=True
            )
            self._results.put((unit, UnknownUploadError(str(e))))
            return

        self._results.put((unit, None))

    def _finish(self, state: SessionState) -> None:
        with self._state_lock:
            self._state = state
            if state is not SessionState.SUCCEEDED:
                self._cancel_event.set()
        self._logger.info(f"Session finished: {state.value}")
