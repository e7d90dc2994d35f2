"""
Unit tests for PrintJobQueue.

The queue is backed by InMemoryQueueStore so every test can inspect what
would have been persisted.
"""

import threading
from unittest.mock import MagicMock

import pytest

from core.exceptions import QueueStoreError
from models.print_job import DocumentSettings, JobDescriptor
from modules.queue_store import QUEUE_KEY, SETTINGS_KEY, InMemoryQueueStore
from services.print_queue import LockedPrintJobQueue, PrintJobQueue


A = "file:///docs/a.pdf"
B = "file:///docs/b.pdf"
C = "file:///docs/c.pdf"


# Fixtures

@pytest.fixture
def store():
    return InMemoryQueueStore()


@pytest.fixture
def queue(store):
    return PrintJobQueue(store)


@pytest.fixture
def filled_queue(store):
    """Queue holding A, B and C with default settings."""
    q = PrintJobQueue(store)
    for identifier in (A, B, C):
        q.add_job(identifier)
    return q


# Tests for adding jobs

class TestAddJob:

    def test_add_to_empty_queue(self, queue, store):
        descriptors = queue.add_job(A)

        assert descriptors == [JobDescriptor(A, 1, False)]
        assert queue.jobs() == [A]
        assert store.records[QUEUE_KEY] == [A]
        assert store.records[SETTINGS_KEY] == {A: {"quantity": 1, "isA3": False}}

    def test_add_keeps_order(self, filled_queue):
        assert filled_queue.jobs() == [A, B, C]

    def test_repeat_add_increments_quantity(self, queue, store):
        """The same document added twice is queued once with two copies."""
        queue.add_job(A)
        descriptors = queue.add_job(A)

        assert queue.jobs() == [A]
        assert descriptors == [JobDescriptor(A, 2, False)]
        assert store.records[QUEUE_KEY] == [A]

    def test_repeat_add_keeps_a3(self, queue):
        queue.add_job(A)
        queue.set_a3(A, True)

        queue.add_job(A)

        assert queue.is_a3(A) is True
        assert queue.job_quantity(A) == 2

    def test_add_uses_pre_existing_settings(self, queue):
        """Settings set before the document is queued are kept."""
        queue.set_job_quantity(A, 3)

        queue.add_job(A)

        assert queue.job_quantity(A) == 3


# Tests for settings

class TestSettings:

    def test_set_quantity(self, filled_queue, store):
        descriptors = filled_queue.set_job_quantity(B, 4)

        assert descriptors[1] == JobDescriptor(B, 4, False)
        assert store.records[SETTINGS_KEY][B] == {"quantity": 4, "isA3": False}

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_set_quantity_clamped(self, filled_queue, quantity):
        filled_queue.set_job_quantity(A, quantity)

        assert filled_queue.job_quantity(A) == 1

    def test_set_quantity_keeps_a3(self, filled_queue):
        filled_queue.set_a3(A, True)
        filled_queue.set_job_quantity(A, 2)

        assert filled_queue.is_a3(A) is True

    def test_set_a3(self, filled_queue, store):
        filled_queue.set_a3(C, True)

        assert filled_queue.is_a3(C) is True
        assert store.records[SETTINGS_KEY][C]["isA3"] is True

    def test_settings_do_not_change_membership(self, queue):
        """Settings for an unqueued document do not queue it."""
        descriptors = queue.set_job_quantity(A, 2)

        assert descriptors == []
        assert queue.jobs() == []

    def test_unknown_identifier_defaults(self, queue):
        assert queue.job_quantity("file:///nope.pdf") == 1
        assert queue.is_a3("file:///nope.pdf") is False


# Tests for removal

class TestRemoveJobs:

    def test_remove_single(self, filled_queue, store):
        filled_queue.set_job_quantity(B, 3)

        descriptors = filled_queue.remove_job(1)

        assert [d.identifier for d in descriptors] == [A, C]
        assert B not in store.records[SETTINGS_KEY]

    def test_remove_several(self, filled_queue):
        descriptors = filled_queue.remove_jobs([0, 2])

        assert [d.identifier for d in descriptors] == [B]

    def test_remove_order_independent(self, store):
        """Indices refer to positions before any removal."""
        q = PrintJobQueue(store)
        for identifier in (A, B, C):
            q.add_job(identifier)

        q.remove_jobs([2, 0])

        assert q.jobs() == [B]

    def test_duplicate_indices_count_once(self, filled_queue):
        filled_queue.remove_jobs([1, 1])

        assert filled_queue.jobs() == [A, C]

    @pytest.mark.parametrize("index", [3, 99, -1])
    def test_out_of_range_ignored(self, filled_queue, index):
        descriptors = filled_queue.remove_job(index)

        assert [d.identifier for d in descriptors] == [A, B, C]

    def test_out_of_range_does_not_persist(self, store):
        q = PrintJobQueue(store)
        q.add_job(A)
        store.save_queue = MagicMock()

        q.remove_jobs([5])

        store.save_queue.assert_not_called()

    def test_remove_all(self, filled_queue, store):
        descriptors = filled_queue.remove_all_jobs()

        assert descriptors == []
        assert len(filled_queue) == 0
        assert QUEUE_KEY not in store.records
        assert SETTINGS_KEY not in store.records


# Tests for loading and reload

class TestLoadAndReload:

    def test_loads_existing_state(self):
        store = InMemoryQueueStore(
            queue=[A, B],
            settings={A: DocumentSettings(quantity=2, is_a3=True)},
        )

        q = PrintJobQueue(store)

        assert q.job_descriptors() == [
            JobDescriptor(A, 2, True),
            JobDescriptor(B, 1, False),
        ]
        # Missing settings are materialized on load
        assert store.records[SETTINGS_KEY][B] == {"quantity": 1, "isA3": False}

    def test_legacy_zero_quantity_normalized(self):
        store = InMemoryQueueStore(queue=[A], settings={A: DocumentSettings(quantity=0)})

        q = PrintJobQueue(store)

        assert q.job_quantity(A) == 1
        assert store.records[SETTINGS_KEY][A]["quantity"] == 1

    def test_stored_duplicates_fold_into_quantity(self):
        """Each stored occurrence multiplies the stored quantity."""
        store = InMemoryQueueStore(
            queue=[A, B, A, A],
            settings={A: DocumentSettings(quantity=2)},
        )

        q = PrintJobQueue(store)

        assert q.jobs() == [A, B]
        assert q.job_quantity(A) == 6
        assert store.records[QUEUE_KEY] == [A, B]

    def test_reload_picks_up_external_writes(self, queue, store):
        """A producer appending to the store is seen after reload()."""
        queue.add_job(A)
        store.records[QUEUE_KEY] = [A, B]

        descriptors = queue.reload()

        assert [d.identifier for d in descriptors] == [A, B]

    def test_load_failure_keeps_memory_state(self, queue):
        queue.add_job(A)
        queue._store = MagicMock()
        queue._store.load_queue.side_effect = QueueStoreError("read", "disk gone")

        descriptors = queue.reload()

        assert [d.identifier for d in descriptors] == [A]


# Tests for persistence failures

class TestPersistenceFailures:

    def test_write_failure_keeps_in_memory_change(self):
        store = MagicMock()
        store.load_queue.return_value = []
        store.load_settings.return_value = {}
        store.save_queue.side_effect = QueueStoreError("write", "read-only")
        store.save_settings.side_effect = QueueStoreError("write", "read-only")

        q = PrintJobQueue(store)
        descriptors = q.add_job(A)

        assert descriptors == [JobDescriptor(A, 1, False)]


# Tests for subscription

class TestSubscribe:

    def test_listener_receives_snapshots(self, queue):
        received = []
        queue.subscribe(received.append)

        queue.add_job(A)
        queue.set_a3(A, True)

        assert received == [
            [JobDescriptor(A, 1, False)],
            [JobDescriptor(A, 1, True)],
        ]

    def test_unsubscribe(self, queue):
        listener = MagicMock()
        unsubscribe = queue.subscribe(listener)

        unsubscribe()
        queue.add_job(A)

        listener.assert_not_called()

    def test_failing_listener_does_not_break_mutation(self, queue):
        queue.subscribe(MagicMock(side_effect=RuntimeError("boom")))

        descriptors = queue.add_job(A)

        assert [d.identifier for d in descriptors] == [A]


# Tests for LockedPrintJobQueue

class TestLockedPrintJobQueue:

    def test_delegates(self, store):
        locked = LockedPrintJobQueue(PrintJobQueue(store))

        locked.add_job(A)
        locked.set_job_quantity(A, 2)

        assert locked.jobs() == [A]
        assert locked.job_quantity(A) == 2
        assert len(locked) == 1

    def test_concurrent_adds_are_not_lost(self, store):
        """Many threads adding the same document sum up to the right quantity."""
        locked = LockedPrintJobQueue(PrintJobQueue(store))
        start = threading.Barrier(8)

        def worker():
            start.wait()
            for _ in range(25):
                locked.add_job(A)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert locked.jobs() == [A]
        assert locked.job_quantity(A) == 200
