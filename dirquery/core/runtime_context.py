from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .errors import QueryCancelled


class CancelToken:
    """
    Cooperative cancellation flag shared between a running query and its caller.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str = "") -> None:
        if self._event.is_set():
            raise QueryCancelled(code="query.cancelled", message="Query was cancelled", data={"at": where} if where else None)


@dataclass(frozen=True)
class RuntimeContext:
    """
    Per-run settings for a single query.

    trace_path=None disables the JSONL trace.
    """

    run_id: str
    trace_path: Optional[Path] = None
    cancel: Optional[CancelToken] = None
    meta: dict[str, Any] = field(default_factory=dict)
