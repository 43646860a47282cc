"""Diagnostics: dump the pending-match index to spot orphans."""

import json
import logging
import os
import tempfile
from dataclasses import asdict
from datetime import datetime, timezone

from log_pairing.index import PendingMatchIndex

logger = logging.getLogger(__name__)


def report_pending(index: PendingMatchIndex, logger: logging.Logger | None = None) -> list[str]:
    """Log every record still waiting for its counterpart and return their ids."""
    log = logger or logging.getLogger(__name__)
    entries = index.snapshot()
    for entry in entries:
        log.info("pending: id=%s type=%s host=%s timestamp=%d",
                 entry.record.id, entry.record.type, entry.record.host,
                 entry.record.timestamp)
    log.info("%d unmatched records in the index", len(entries))
    return [e.record.id for e in entries]


def write_pending_dump(index: PendingMatchIndex, path: str) -> int:
    """Write the pending records as JSON, atomically. Returns the count."""
    entries = index.snapshot()
    payload = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "count": len(entries),
        "pending": [asdict(e.record) for e in entries],
    }

    out_dir = os.path.dirname(os.path.abspath(path))
    os.makedirs(out_dir, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(dir=out_dir, suffix=".tmp")
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.info("Wrote %d pending records to %s", len(entries), path)
    return len(entries)
