from __future__ import annotations

import json
import os
import threading
import time
from typing import Any, Dict, Iterator, Optional, TextIO


class TelemetryLogger:
    """Structured JSONL logger for simulator run events.

    Thread-safe, append-only logging of dict records, one JSON object per line.
    Each record is stamped with the wall-clock time and the event name.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        self._lock = threading.Lock()
        self._fp: Optional[TextIO] = open(self.path, "a", encoding="utf-8")

    def log_event(self, event: str, record: Dict[str, Any]) -> None:
        """Append a single event record to the JSONL file."""
        if self._fp is None:
            return
        line = json.dumps(
            {"time": time.time(), "event": event, **record},
            separators=(",", ":"),
            default=str,
        )
        with self._lock:
            self._fp.write(line + "\n")
            self._fp.flush()

    def close(self) -> None:
        if self._fp is not None:
            self._fp.close()
            self._fp = None

    def __enter__(self) -> "TelemetryLogger":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def read_events(path: str, event: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """Yield records from a telemetry file, optionally only one event type."""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            record = json.loads(line)
            if event is None or record.get("event") == event:
                yield record
