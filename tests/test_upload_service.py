"""
Unit tests for UploadService and UploadStatusStore.
"""

import threading
import time
from pathlib import Path

import pytest

from core.exceptions import (
    EmptyQueueError,
    InvalidLocationError,
    InvalidPhoneNumberError,
    NetworkError,
    UploadCancelledError,
)
from core.upload_client import UploadClient
from models.upload import SessionState, UploadProgress, UploadStatus
from modules.queue_store import InMemoryQueueStore
from services.print_queue import LockedPrintJobQueue, PrintJobQueue
from services.upload_service import UploadService, UploadStatusStore


PHONE = "01012345678"
WAIT = 5.0

A = "file:///docs/a.pdf"
B = "file:///docs/b.pdf"


class AcceptingClient(UploadClient):
    def __init__(self):
        self.count = 0
        self._lock = threading.Lock()

    def upload(self, unit, phone_number, cancel_event=None):
        with self._lock:
            self.count += 1


class NetworkDownClient(UploadClient):
    def upload(self, unit, phone_number, cancel_event=None):
        raise NetworkError("connection refused")


class BlockingClient(UploadClient):
    def __init__(self):
        self.started = threading.Event()
        self.cancelled = threading.Event()

    def upload(self, unit, phone_number, cancel_event=None):
        self.started.set()
        cancel_event.wait(WAIT)
        if cancel_event.is_set():
            self.cancelled.set()
            raise UploadCancelledError()


def wait_until_idle(service, session_id, timeout=WAIT):
    """Wait for the session thread to exit without reading its status."""
    deadline = time.monotonic() + timeout
    while service.is_session_pending(session_id) and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not service.is_session_pending(session_id)


def wait_until_finished(service, session_id, timeout=WAIT):
    """Poll the status store until the session reaches a terminal state."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        status = service.get_status(session_id)
        if status is not None and status.is_finished:
            return status
        time.sleep(0.01)
    raise AssertionError(f"Session {session_id} did not finish in {timeout}s")


# Fixtures

@pytest.fixture
def queue():
    q = LockedPrintJobQueue(PrintJobQueue(InMemoryQueueStore()))
    q.add_job(A)
    q.add_job(B)
    q.set_job_quantity(A, 2)
    return q


@pytest.fixture
def empty_queue():
    return LockedPrintJobQueue(PrintJobQueue(InMemoryQueueStore()))


# Tests for UploadStatusStore

class TestUploadStatusStore:

    def test_put_get_pop(self):
        store = UploadStatusStore()
        status = UploadStatus("s1", SessionState.RUNNING, UploadProgress(0, 1))

        store.put(status)

        assert store.get("s1") is status
        assert store.pop("s1") is status
        assert store.get("s1") is None

    def test_record_progress_running_only(self):
        store = UploadStatusStore()
        store.put(UploadStatus("s1", SessionState.RUNNING, UploadProgress(0, 2)))
        store.put(UploadStatus("s2", SessionState.CANCELLED, UploadProgress(0, 2)))

        store.record_progress("s1", UploadProgress(1, 2))
        store.record_progress("s2", UploadProgress(1, 2))
        store.record_progress("unknown", UploadProgress(1, 2))

        assert store.get("s1").progress.success_count == 1
        assert store.get("s2").progress.success_count == 0

    def test_clear(self):
        store = UploadStatusStore()
        store.put(UploadStatus("s1", SessionState.RUNNING, UploadProgress(0, 1)))

        assert store.clear() == 1
        assert store.get("s1") is None


# Tests for submission checks

class TestSubmitValidation:

    def test_invalid_phone_number(self, queue):
        service = UploadService(queue, AcceptingClient())

        with pytest.raises(InvalidPhoneNumberError):
            service.submit("010-1234-5678")

    def test_empty_queue(self, empty_queue):
        service = UploadService(empty_queue, AcceptingClient())

        with pytest.raises(EmptyQueueError):
            service.submit(PHONE)

    def test_invalid_location(self, empty_queue):
        empty_queue.add_job("https://example.com/a.pdf")
        client = AcceptingClient()
        service = UploadService(empty_queue, client)

        with pytest.raises(InvalidLocationError):
            service.submit(PHONE)

        assert client.count == 0

    def test_initial_status(self, queue):
        service = UploadService(queue, BlockingClient())

        session_id = service.submit(PHONE)
        status = service.get_status(session_id)

        assert status.progress.total_count == 3
        assert status.progress.completed_per_group == {A: 0, B: 0}

        service.cancel(session_id)
        wait_until_finished(service, session_id)


# Tests for session outcomes

class TestSessionOutcomes:

    def test_success_clears_queue(self, queue):
        client = AcceptingClient()
        service = UploadService(queue, client)

        session_id = service.submit(PHONE)
        status = wait_until_finished(service, session_id)

        assert status.state is SessionState.SUCCEEDED
        assert status.error_message is None
        assert status.finished_at is not None
        assert status.progress == UploadProgress(3, 3, {A: 2, B: 1})
        assert client.count == 3
        assert len(queue) == 0

    def test_failure_keeps_queue(self, queue):
        service = UploadService(queue, NetworkDownClient())

        session_id = service.submit(PHONE)
        status = wait_until_finished(service, session_id)

        assert status.state is SessionState.FAILED
        assert status.error_message == "A network error occurred."
        assert queue.jobs() == [A, B]

    def test_cancel_keeps_queue_and_reports_nothing(self, queue):
        client = BlockingClient()
        service = UploadService(queue, client)

        session_id = service.submit(PHONE)
        assert client.started.wait(WAIT)

        assert service.cancel(session_id) is True
        status = wait_until_finished(service, session_id)

        assert status.state is SessionState.CANCELLED
        assert status.error_message is None
        assert queue.jobs() == [A, B]

    def test_cancel_unknown_session(self, queue):
        service = UploadService(queue, AcceptingClient())

        assert service.cancel("no-such-session") is False

    def test_final_status_reported_once(self, queue):
        service = UploadService(queue, AcceptingClient())

        session_id = service.submit(PHONE)
        wait_until_idle(service, session_id)

        assert service.get_status(session_id).state is SessionState.SUCCEEDED
        assert service.get_status(session_id) is None
        assert service.status_store.get(session_id) is None

    def test_peek_does_not_consume(self, queue):
        service = UploadService(queue, AcceptingClient())

        session_id = service.submit(PHONE)
        wait_until_idle(service, session_id)

        assert service.peek_status(session_id).state is SessionState.SUCCEEDED
        assert service.peek_status(session_id).state is SessionState.SUCCEEDED
        assert service.get_status(session_id).state is SessionState.SUCCEEDED
        assert service.peek_status(session_id) is None

    def test_cancelled_session_reported_after_workers_stop(self, queue):
        client = BlockingClient()
        service = UploadService(queue, client)

        session_id = service.submit(PHONE)
        assert client.started.wait(WAIT)

        service.cancel(session_id)
        wait_until_idle(service, session_id)

        assert client.cancelled.is_set()
        assert service.get_status(session_id).state is SessionState.CANCELLED


# Tests for shutdown

class TestShutdown:

    def test_shutdown_cancels_running_sessions(self, queue):
        client = BlockingClient()
        service = UploadService(queue, client)

        session_id = service.submit(PHONE)
        assert client.started.wait(WAIT)

        service.shutdown(timeout_per_thread=WAIT)

        assert client.cancelled.is_set()
        assert not service.is_session_pending(session_id)
        # Shutdown drops every stored status
        assert service.get_status(session_id) is None

    def test_shutdown_without_sessions(self, queue):
        UploadService(queue, AcceptingClient()).shutdown()
