"""SQLite event store: schema setup and per-worker pair writer."""

import logging
import os
import sqlite3
from contextlib import closing

from log_pairing.errors import StoreConnectionError, StoreWriteError
from log_pairing.models import PairedEvent

logger = logging.getLogger(__name__)

SCHEMA_EVENTS = """
CREATE TABLE IF NOT EXISTS events (
    id TEXT NOT NULL,
    duration INTEGER,
    type TEXT,
    host TEXT,
    alert INTEGER
)
"""

INSERT_EVENT = "INSERT INTO events (id, duration, type, host, alert) VALUES (?, ?, ?, ?, ?)"

DEFAULT_TIMEOUT = 5.0


def connect(db_path: str, timeout: float = DEFAULT_TIMEOUT) -> sqlite3.Connection:
    """Open a connection usable from the thread that ends up owning it."""
    parent = os.path.dirname(db_path)
    try:
        if parent:
            os.makedirs(parent, exist_ok=True)
        conn = sqlite3.connect(db_path, timeout=timeout, check_same_thread=False)
        conn.execute("PRAGMA journal_mode = WAL")
    except (sqlite3.Error, OSError) as e:
        raise StoreConnectionError(f"cannot open event store {db_path}: {e}") from e
    return conn


def initialize_schema(db_path: str) -> None:
    """Create the events table. Any failure aborts the run."""
    conn = connect(db_path)
    try:
        with conn:
            conn.execute(SCHEMA_EVENTS)
    except sqlite3.Error as e:
        raise StoreConnectionError(f"cannot create schema in {db_path}: {e}") from e
    finally:
        conn.close()
    logger.info("Created table events in %s", db_path)


def fetch_events(db_path: str) -> list[PairedEvent]:
    """Read back every stored pair, in insertion order."""
    conn = connect(db_path)
    with closing(conn):
        rows = conn.execute(
            "SELECT id, duration, type, host, alert FROM events ORDER BY rowid"
        ).fetchall()
    return [
        PairedEvent(id=r[0], duration=r[1], type=r[2], host=r[3], alert=bool(r[4]))
        for r in rows
    ]


class EventStoreWriter:
    """Writes paired events over one private connection.

    Each pair is its own transaction. A failed write is logged and the pair
    dropped: persistence is at-most-once and never retried.
    """

    def __init__(self, db_path: str, logger: logging.Logger | None = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self._db_path = db_path
        self._logger = logger or logging.getLogger(__name__)
        self._conn: sqlite3.Connection | None = connect(db_path, timeout=timeout)

    def insert(self, pair: PairedEvent):
        """Insert and commit one pair, raising StoreWriteError on failure."""
        if self._conn is None:
            raise StoreWriteError(f"writer for {self._db_path} is closed")
        try:
            with self._conn:
                self._conn.execute(
                    INSERT_EVENT,
                    (pair.id, pair.duration, pair.type, pair.host, 1 if pair.alert else 0),
                )
        except (sqlite3.Error, OverflowError) as e:
            # OverflowError: an integer outside SQLite's 64-bit range
            raise StoreWriteError(f"insert of id={pair.id} failed: {e}") from e

    def write_pair(self, pair: PairedEvent) -> bool:
        """Persist one pair. Returns True if committed, False if dropped."""
        try:
            self.insert(pair)
        except StoreWriteError as e:
            self._logger.error("Storing in DB failed, dropping pair: %s", e)
            return False
        self._logger.debug("Stored pair id=%s duration=%d alert=%s",
                           pair.id, pair.duration, pair.alert)
        return True

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None
