"""Line source: reads the input log file line by line."""

import logging
import os
from typing import Iterator

logger = logging.getLogger(__name__)

LOG_FILENAME = "logfile.txt"


def resolve_log_file(input_dir: str, filename: str = LOG_FILENAME) -> str:
    """Return the path of the log file inside *input_dir*."""
    return os.path.join(input_dir, filename)


def read_lines(path: str) -> Iterator[str]:
    """Yield non-empty stripped lines from *path* in file order."""
    count = 0
    # undecodable bytes become U+FFFD and surface as DecodeError downstream
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            stripped = line.strip()
            if stripped:
                count += 1
                yield stripped
    logger.info("Read %d lines from %s", count, path)
