from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional


class Replay:
    """
    Reads a JSONL trace back, optionally narrowed to one run or one event type.
    """

    def __init__(self, path: Path):
        self._path = path

    def iter_events(self, *, run_id: Optional[str] = None, event_type: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        if not self._path.exists():
            return
        with self._path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                event = json.loads(line)
                if run_id is not None and event.get("run_id") != run_id:
                    continue
                if event_type is not None and event.get("event_type") != event_type:
                    continue
                yield event

    def run_ids(self) -> List[str]:
        # First-seen order.
        seen: Dict[str, None] = {}
        for e in self.iter_events():
            rid = e.get("run_id")
            if isinstance(rid, str):
                seen.setdefault(rid, None)
        return list(seen)
