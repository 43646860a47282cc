"""Tests for a single pairing worker."""

import logging
import threading

from log_pairing.index import PendingMatchIndex
from log_pairing.store import EventStoreWriter, fetch_events, initialize_schema
from log_pairing.work_queue import WorkQueue
from log_pairing.worker import PairingWorker


def _run_worker(db_path, lines, index=None, writer=None):
    initialize_schema(db_path)
    q = WorkQueue()
    for line in lines:
        q.enqueue(line)
    stop = threading.Event()
    worker = PairingWorker(
        "w-test", q, index or PendingMatchIndex(),
        writer or EventStoreWriter(db_path), stop, idle_interval=0.01,
    )
    stop.set()
    worker.start()
    worker.join(timeout=5)
    return worker, q


class TestWorkerLoop:
    def test_pairs_and_stores(self, db_path, make_line):
        worker, q = _run_worker(db_path, [make_line("a", 100), make_line("a", 105)])
        assert not worker.is_alive()
        assert q.empty()
        assert worker.processed == 2
        assert worker.paired == 1
        assert [e.duration for e in fetch_events(db_path)] == [5]

    def test_malformed_line_skipped(self, db_path, make_line, caplog):
        caplog.set_level(logging.WARNING)
        worker, _ = _run_worker(db_path, ["{broken", make_line("b", 1)])
        assert worker.decode_errors == 1
        assert worker.processed == 2
        assert worker.failed is False
        assert "Skipping malformed line" in caplog.text

    def test_drains_queue_after_stop(self, db_path, make_line):
        lines = [make_line(f"id-{i}", t) for i in range(50) for t in (0, 3)]
        worker, q = _run_worker(db_path, lines)
        assert q.empty()
        assert worker.paired == 50

    def test_write_failure_counted(self, db_path, make_line):
        writer = EventStoreWriter(db_path)
        writer.close()
        worker, _ = _run_worker(db_path, [make_line("a", 1), make_line("a", 2)], writer=writer)
        assert worker.paired == 0
        assert worker.write_failures == 1
        assert fetch_events(db_path) == []


class TestWorkerFailure:
    def test_unexpected_error_recorded(self, db_path, make_line, exploding_index, caplog):
        worker, q = _run_worker(
            db_path, [make_line("boom", 1), make_line("a", 1)], index=exploding_index,
        )
        assert not worker.is_alive()
        assert worker.failed is True
        assert worker.failure.worker_name == "w-test"
        assert isinstance(worker.failure.cause, RuntimeError)
        assert q.size() == 1
        assert "Worker w-test failed" in caplog.text

    def test_oversized_duration_counted_as_write_failure(self, db_path, make_line):
        worker, q = _run_worker(db_path, [
            make_line("big", 0), make_line("big", 2 ** 70),
            make_line("a", 1), make_line("a", 2),
        ])
        assert worker.failed is False
        assert worker.write_failures == 1
        assert worker.paired == 1
        assert q.empty()
