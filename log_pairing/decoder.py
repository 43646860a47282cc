"""Record decoder: one JSON line in, one Record out."""

import json

from log_pairing.errors import DecodeError
from log_pairing.models import Record

_STRING_FIELDS = ("id", "type", "host")


def decode_line(line: str) -> Record:
    """Parse a raw JSON line into a Record.

    Expected shape:
        {"id": "a", "type": "req", "host": "h1", "timestamp": 100}

    Raises DecodeError for anything that is not an object carrying the four
    fields with the right types. Extra keys are ignored.
    """
    stripped = line.strip()
    if not stripped:
        raise DecodeError(line, "empty line")

    try:
        data = json.loads(stripped)
    except (json.JSONDecodeError, TypeError) as e:
        raise DecodeError(line, f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError(line, "expected JSON object")

    for key in _STRING_FIELDS:
        if not isinstance(data.get(key), str):
            raise DecodeError(line, f"missing or non-string field: {key}")

    timestamp = data.get("timestamp")
    # bool is an int subclass; reject it explicitly
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        raise DecodeError(line, "missing or non-integer field: timestamp")

    return Record(
        id=data["id"],
        type=data["type"],
        host=data["host"],
        timestamp=timestamp,
    )
