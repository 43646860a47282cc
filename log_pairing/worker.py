"""PairingWorker: consumer thread that decodes lines and correlates them."""

import logging
import threading

from log_pairing.decoder import decode_line
from log_pairing.errors import DecodeError, WorkerFailure
from log_pairing.index import PendingMatchIndex
from log_pairing.models import pair_records
from log_pairing.store import EventStoreWriter
from log_pairing.work_queue import WorkQueue


class PairingWorker(threading.Thread):
    """Pulls lines until told to stop, then drains what is left and exits.

    The store writer is owned by this worker alone and closed when the loop
    ends. An unexpected exception ends the loop; it is logged and kept on
    ``failure`` for the coordinator to inspect.
    """

    def __init__(self, name: str, work_queue: WorkQueue, index: PendingMatchIndex,
                 writer: EventStoreWriter, stop_event: threading.Event,
                 alert_threshold: int = 4, idle_interval: float = 0.5,
                 logger: logging.Logger | None = None):
        super().__init__(name=name, daemon=True)
        self._queue = work_queue
        self._index = index
        self._writer = writer
        self._stop_event = stop_event
        self._alert_threshold = alert_threshold
        self._idle_interval = idle_interval
        self._logger = logger or logging.getLogger(__name__)
        self._counter_lock = threading.Lock()
        self._processed = 0
        self._decode_errors = 0
        self._paired = 0
        self._write_failures = 0
        self.failure: WorkerFailure | None = None

    @property
    def processed(self) -> int:
        with self._counter_lock:
            return self._processed

    @property
    def decode_errors(self) -> int:
        with self._counter_lock:
            return self._decode_errors

    @property
    def paired(self) -> int:
        with self._counter_lock:
            return self._paired

    @property
    def write_failures(self) -> int:
        with self._counter_lock:
            return self._write_failures

    @property
    def failed(self) -> bool:
        return self.failure is not None

    def run(self):
        try:
            while True:
                line = self._queue.try_dequeue(timeout=self._idle_interval)
                if line is None:
                    if self._stop_event.is_set():
                        break
                    continue
                self.process_line(line)
        except Exception as e:
            self.failure = WorkerFailure(self.name, e)
            self._logger.exception("Worker %s failed, leaving the pool", self.name)
        finally:
            self._writer.close()

    def process_line(self, line: str):
        """Decode one line, correlate it, and store the pair if it completes one."""
        try:
            record = decode_line(line)
        except DecodeError as e:
            self._logger.warning("Skipping malformed line: %s", e)
            with self._counter_lock:
                self._processed += 1
                self._decode_errors += 1
            return

        first = self._index.check_and_insert_or_remove(record.id, record)
        with self._counter_lock:
            self._processed += 1
        if first is None:
            return

        pair = pair_records(first, record, self._alert_threshold)
        if self._writer.write_pair(pair):
            with self._counter_lock:
                self._paired += 1
        else:
            with self._counter_lock:
                self._write_failures += 1
