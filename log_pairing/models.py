"""Record, pending-entry and paired-event models for the pairing engine."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Record:
    id: str          # correlation id, appears at most twice per stream
    type: str
    host: str
    timestamp: int


@dataclass(frozen=True)
class PendingEntry:
    record: Record
    inserted_at: float   # time.monotonic() at insertion


@dataclass(frozen=True)
class PairedEvent:
    id: str
    duration: int
    type: str
    host: str
    alert: bool


def pair_records(first: Record, second: Record, alert_threshold: int) -> PairedEvent:
    """Build the derived event for two records sharing an id.

    Duration is the absolute timestamp difference, so the result does not
    depend on which record arrived first. Type and host come from ``first``.
    """
    duration = abs(first.timestamp - second.timestamp)
    return PairedEvent(
        id=first.id,
        duration=duration,
        type=first.type,
        host=first.host,
        alert=duration > alert_threshold,
    )
