from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict

# One lock per resolved trace file: HTTP requests share a trace path across threads.
_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.expanduser().resolve())
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.Lock()
        return lock


class TraceStoreJSONL:
    """
    Append-only JSONL file, one event per line.

    Values json cannot encode natively (datetimes, paths) are written with str().
    """

    def __init__(self, path: Path):
        self._path = path
        self._lock = _lock_for(path)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: dict[str, Any]) -> None:
        line = json.dumps(event, ensure_ascii=False, default=str) + "\n"
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
