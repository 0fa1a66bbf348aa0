"""Append-only NDJSON log store backing the sink."""

import json
import logging
import os
import threading

from log_relay.models import utc_timestamp

logger = logging.getLogger(__name__)


class LogStore:
    """Newline-delimited JSON file with append, tail and clear operations."""

    def __init__(self, path: str):
        self._path = os.path.abspath(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    def exists(self) -> bool:
        return os.path.isfile(self._path)

    def ensure_exists(self):
        """Create the file (and its directory) if absent."""
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not self.exists():
            with open(self._path, "a", encoding="utf-8"):
                pass

    def append(self, record: dict):
        """Append one record as a JSON line. Raises OSError on write failure."""
        line = json.dumps(record, default=str) + "\n"
        with self._lock:
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(line)

    def write_record(self, level: str, fields: dict) -> dict:
        """Stamp a receipt time and level onto ``fields`` and append it.

        Returns the stored record.
        """
        record = {"timestamp": utc_timestamp(), "level": level}
        record.update(fields)
        self.append(record)
        logger.info("[%s] [%s] %s", record["timestamp"], level, fields.get("message"))
        return record

    def tail(self, count: int) -> tuple[list, int]:
        """Return (last ``count`` records, total non-blank lines).

        Lines that are not valid JSON come back as ``{"raw": line}``.
        """
        with open(self._path, "r", encoding="utf-8") as f:
            content = f.read()

        lines = [line for line in content.strip().split("\n") if line]
        records = []
        for line in lines[-count:] if count > 0 else []:
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                records.append({"raw": line})
        return records, len(lines)

    def clear(self):
        """Truncate the store to empty."""
        with self._lock:
            with open(self._path, "w", encoding="utf-8"):
                pass
