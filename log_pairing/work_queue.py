"""Unbounded thread-safe work queue of raw lines."""

import queue


class WorkQueue:
    """FIFO of raw lines; each line is handed to exactly one consumer."""

    def __init__(self):
        self._queue: queue.Queue[str] = queue.Queue()

    def enqueue(self, line: str):
        self._queue.put(line)

    def try_dequeue(self, timeout: float = 0.0) -> str | None:
        """Return the next line, or None if nothing arrived within *timeout* seconds."""
        try:
            if timeout > 0:
                return self._queue.get(timeout=timeout)
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def size(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()
