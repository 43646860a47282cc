import json
import os

import pytest

from log_pairing.config import Config
from log_pairing.index import PendingMatchIndex
from log_pairing.models import Record


class ExplodingIndex(PendingMatchIndex):
    """Index that fails unexpectedly on the id "boom"."""

    def check_and_insert_or_remove(self, key, record):
        if key == "boom":
            raise RuntimeError("index blew up")
        return super().check_and_insert_or_remove(key, record)


def _make_line(id_, timestamp, type_="req", host="h1") -> str:
    return json.dumps({"id": id_, "type": type_, "host": host, "timestamp": timestamp})


@pytest.fixture
def make_line():
    """Build one JSON log line."""
    return _make_line


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "db" / "events.sqlite")


@pytest.fixture
def config(tmp_path, db_path):
    return Config(
        input_dir=str(tmp_path),
        db_path=db_path,
        workers=2,
        idle_interval=0.02,
    )


@pytest.fixture
def record_a():
    return Record(id="a", type="req", host="h1", timestamp=100)


@pytest.fixture
def write_logfile(tmp_path):
    """Write lines to <tmp_path>/logfile.txt and return the path."""
    def _write(lines: list[str]) -> str:
        path = os.path.join(str(tmp_path), "logfile.txt")
        with open(path, "w", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
        return path
    return _write


@pytest.fixture
def exploding_index():
    return ExplodingIndex()
