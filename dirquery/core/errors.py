from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class DirQueryError(Exception):
    code: str
    message: str
    data: dict[str, Any] | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(DirQueryError):
    pass


class UnknownIntentType(DirQueryError):
    pass


class QueryCancelled(DirQueryError):
    pass


class ScopeDenied(DirQueryError):
    pass


class ConfigError(DirQueryError):
    pass
