"""Tests for the work queue."""

import threading
import time

from log_pairing.work_queue import WorkQueue


class TestWorkQueue:
    def test_empty_returns_none(self):
        q = WorkQueue()
        assert q.try_dequeue() is None
        assert q.empty()

    def test_fifo(self):
        q = WorkQueue()
        for i in range(3):
            q.enqueue(f"line-{i}")
        assert q.size() == 3
        assert [q.try_dequeue() for _ in range(3)] == ["line-0", "line-1", "line-2"]
        assert q.empty()

    def test_timeout_is_bounded(self):
        q = WorkQueue()
        start = time.monotonic()
        assert q.try_dequeue(timeout=0.05) is None
        assert time.monotonic() - start < 1.0

    def test_each_line_delivered_once(self):
        """4 consumers x 1000 lines: every line seen exactly once."""
        q = WorkQueue()
        for i in range(1000):
            q.enqueue(str(i))
        seen = []
        lock = threading.Lock()

        def consumer():
            while True:
                line = q.try_dequeue(timeout=0.01)
                if line is None:
                    return
                with lock:
                    seen.append(line)

        threads = [threading.Thread(target=consumer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(seen, key=int) == [str(i) for i in range(1000)]
