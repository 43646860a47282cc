"""Lifecycle coordinator: owns the worker pool and decides when it stops.

Termination contract is drain-then-stop. ``stop()`` moves the pool from
RUNNING to DRAINING; workers keep pulling until the queue is empty, finish
whatever they hold, and exit. Once every worker has exited the state is
STOPPED. Unmatched records left in the index never hold up stopping; an
optional bounded grace period (``wait_for_pairs``) gives late counterparts a
chance to arrive first.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from log_pairing.config import Config
from log_pairing.errors import StoreConnectionError
from log_pairing.index import PendingMatchIndex
from log_pairing.source import read_lines
from log_pairing.store import EventStoreWriter, initialize_schema
from log_pairing.work_queue import WorkQueue
from log_pairing.worker import PairingWorker


class LifecycleState(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PoolHealth:
    alive: int
    failed: int

    @property
    def degraded(self) -> bool:
        return self.failed > 0


@dataclass(frozen=True)
class RunSummary:
    lines: int
    pairs_written: int
    decode_errors: int
    write_failures: int
    orphans: int
    undrained: int
    degraded: bool


def default_worker_count() -> int:
    """One less than the available cores, never below one."""
    return max((os.cpu_count() or 1) - 1, 1)


class PairingCoordinator:
    def __init__(self, config: Config, index: PendingMatchIndex | None = None,
                 work_queue: WorkQueue | None = None,
                 logger: logging.Logger | None = None):
        self._config = config
        self._index = index if index is not None else PendingMatchIndex()
        self._queue = work_queue if work_queue is not None else WorkQueue()
        self._logger = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()
        self._stop_requested = threading.Event()
        self._state_lock = threading.Lock()
        self._state: LifecycleState | None = None
        self._workers: list[PairingWorker] = []
        self._submitted = 0
        self._undrained = 0

    @property
    def index(self) -> PendingMatchIndex:
        return self._index

    @property
    def work_queue(self) -> WorkQueue:
        return self._queue

    @property
    def workers(self) -> list[PairingWorker]:
        return list(self._workers)

    @property
    def state(self) -> LifecycleState | None:
        with self._state_lock:
            return self._state

    def start(self):
        """Create the schema, open one connection per worker, start the pool.

        Connections are all opened before any thread starts so a store
        failure aborts the run with nothing processed.
        """
        with self._state_lock:
            if self._state is not None:
                raise RuntimeError(f"coordinator already started (state={self._state.value})")

            initialize_schema(self._config.db_path)
            count = self._config.workers or default_worker_count()

            writers: list[EventStoreWriter] = []
            try:
                for _ in range(count):
                    writers.append(EventStoreWriter(self._config.db_path, logger=self._logger))
            except StoreConnectionError:
                for w in writers:
                    w.close()
                raise

            self._workers = [
                PairingWorker(
                    name=f"pairing-worker-{i}",
                    work_queue=self._queue,
                    index=self._index,
                    writer=writer,
                    stop_event=self._stop_event,
                    alert_threshold=self._config.alert_threshold,
                    idle_interval=self._config.idle_interval,
                    logger=self._logger,
                )
                for i, writer in enumerate(writers)
            ]
            for worker in self._workers:
                worker.start()
            self._state = LifecycleState.RUNNING
        self._logger.info("Started %d workers", len(self._workers))

    def submit(self, line: str):
        with self._state_lock:
            if self._state is not LifecycleState.RUNNING:
                raise RuntimeError("coordinator is not accepting input")
            self._submitted += 1
            self._queue.enqueue(line)

    def feed(self, lines: Iterable[str]) -> int:
        """Submit lines in order until exhausted or a stop is requested.

        Returns how many were submitted.
        """
        count = 0
        for line in lines:
            if self._stop_requested.is_set():
                self._logger.info("Stop requested, no more input after %d lines", count)
                break
            self.submit(line)
            count += 1
        return count

    def request_stop(self):
        """Ask a running ``run_file`` to stop reading input.

        Takes no locks, so it is safe to call from a signal handler.
        """
        self._stop_requested.set()

    def health(self) -> PoolHealth:
        alive = sum(1 for w in self._workers if w.is_alive())
        failed = sum(1 for w in self._workers if w.failed)
        return PoolHealth(alive=alive, failed=failed)

    def evict_orphans(self) -> int:
        """Apply the configured size/age bound to the index, if any."""
        evicted = self._index.evict(
            max_pending=self._config.max_pending,
            max_age=self._config.max_age,
        )
        return len(evicted)

    def wait_for_pairs(self, timeout: float) -> bool:
        """Wait up to *timeout* seconds for the queue and the index to empty.

        Returns True if both emptied, False on timeout or if no worker is
        left alive to make progress.
        """
        deadline = time.monotonic() + timeout
        while True:
            self.evict_orphans()
            if self._queue.empty() and self._index.is_empty():
                return True
            if self._stop_requested.is_set():
                return False
            if self.health().alive == 0:
                self._logger.error("No live workers left while waiting for pairs")
                return False
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            time.sleep(min(self._config.idle_interval, remaining))

    def stop(self) -> LifecycleState:
        """Drain the queue and stop every worker. Safe to call repeatedly."""
        with self._state_lock:
            if self._state is None:
                self._state = LifecycleState.STOPPED
                return self._state
            if self._state is not LifecycleState.RUNNING:
                return self._state
            self._state = LifecycleState.DRAINING
        self._logger.info("Draining %d queued lines", self._queue.size())
        self._stop_event.set()

        for worker in self._workers:
            worker.join()

        self._undrained = self._queue.size()
        if self._undrained:
            self._logger.error("Pool lost all workers, %d lines left unprocessed",
                               self._undrained)
        health = self.health()
        if health.degraded:
            for worker in self._workers:
                if worker.failure is not None:
                    self._logger.error("Degraded run: %s", worker.failure)
        self.evict_orphans()

        with self._state_lock:
            self._state = LifecycleState.STOPPED
        self._logger.info("Stopped all workers")
        return LifecycleState.STOPPED

    def summary(self) -> RunSummary:
        return RunSummary(
            lines=self._submitted,
            pairs_written=sum(w.paired for w in self._workers),
            decode_errors=sum(w.decode_errors for w in self._workers),
            write_failures=sum(w.write_failures for w in self._workers),
            orphans=self._index.size(),
            undrained=self._undrained,
            degraded=self.health().degraded,
        )

    def run_file(self, path: str) -> RunSummary:
        """Process one log file end to end and stop the pool."""
        if self.state is None:
            self.start()
        try:
            self.feed(read_lines(path))
            if self._config.grace_seconds > 0:
                if not self.wait_for_pairs(self._config.grace_seconds):
                    self._logger.info("Grace period over with %d records unmatched",
                                      self._index.size())
        finally:
            self.stop()
        return self.summary()
