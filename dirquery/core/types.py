from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import UnknownIntentType, ValidationError


NO_EXTENSION_LABEL = "(no extension)"
DEFAULT_THRESHOLD_MB = 50.0
DEFAULT_QUERY = "TODO"


class IntentType(str, Enum):
    LARGE_FILES = "LARGE_FILES"
    COUNT_BY_EXT = "COUNT_BY_EXT"
    TEXT_SEARCH = "TEXT_SEARCH"


@dataclass(frozen=True)
class LargeFilesParams:
    threshold: float = DEFAULT_THRESHOLD_MB  # megabytes
    max_depth: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"threshold": self.threshold}
        if self.max_depth is not None:
            out["maxDepth"] = self.max_depth
        return out


@dataclass(frozen=True)
class CountByExtParams:
    max_depth: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"maxDepth": self.max_depth} if self.max_depth is not None else {}


@dataclass(frozen=True)
class TextSearchParams:
    query: str = DEFAULT_QUERY
    extensions: Optional[Tuple[str, ...]] = None
    is_regex: bool = False
    max_depth: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"query": self.query, "isRegex": self.is_regex}
        if self.extensions is not None:
            out["extensions"] = list(self.extensions)
        if self.max_depth is not None:
            out["maxDepth"] = self.max_depth
        return out


IntentParams = Union[LargeFilesParams, CountByExtParams, TextSearchParams]


def _optional_depth(params: Dict[str, Any]) -> Optional[int]:
    v = params.get("maxDepth")
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise ValidationError(code="intent.invalid", message="params.maxDepth must be a non-negative integer", data={"maxDepth": v})
    return v


@dataclass(frozen=True)
class Intent:
    """
    Structured form of a user goal: an intent type plus its typed params.
    """

    type: IntentType
    params: IntentParams

    @property
    def max_depth(self) -> Optional[int]:
        return self.params.max_depth

    def to_dict(self) -> Dict[str, Any]:
        return {"type": getattr(self.type, "value", self.type), "params": self.params.to_dict()}

    @classmethod
    def from_dict(cls, obj: Any) -> "Intent":
        if not isinstance(obj, dict):
            raise ValidationError(code="intent.invalid", message="Intent must be an object")
        raw_type = obj.get("type")
        try:
            intent_type = IntentType(raw_type)
        except ValueError as e:
            raise UnknownIntentType(code="intent.unknown", message=f"Unknown intent type: {raw_type}", data={"type": raw_type}) from e

        params = obj.get("params") if obj.get("params") is not None else {}
        if not isinstance(params, dict):
            raise ValidationError(code="intent.invalid", message="params must be an object")
        max_depth = _optional_depth(params)

        if intent_type is IntentType.LARGE_FILES:
            threshold = params.get("threshold", DEFAULT_THRESHOLD_MB)
            if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or threshold <= 0:
                raise ValidationError(code="intent.invalid", message="params.threshold must be a positive number", data={"threshold": threshold})
            return cls(type=intent_type, params=LargeFilesParams(threshold=float(threshold), max_depth=max_depth))

        if intent_type is IntentType.COUNT_BY_EXT:
            return cls(type=intent_type, params=CountByExtParams(max_depth=max_depth))

        query = params.get("query", DEFAULT_QUERY)
        if not isinstance(query, str) or not query:
            raise ValidationError(code="intent.invalid", message="params.query must be a non-empty string")
        extensions = params.get("extensions")
        if extensions is not None:
            if not isinstance(extensions, list) or any((not isinstance(x, str) or not x) for x in extensions):
                raise ValidationError(code="intent.invalid", message="params.extensions must be an array of strings when provided")
            extensions = tuple(x.lower().lstrip(".") for x in extensions) or None
        return cls(
            type=intent_type,
            params=TextSearchParams(
                query=query,
                extensions=extensions,
                is_regex=bool(params.get("isRegex", False)),
                max_depth=max_depth,
            ),
        )


@dataclass(frozen=True)
class FileRecord:
    path: str
    name: str
    size: int
    extension: str
    depth: int
    last_modified: Optional[datetime] = None
    content: Optional[str] = None

    def with_content(self, content: str) -> "FileRecord":
        return replace(self, content=content)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "path": self.path,
            "name": self.name,
            "size": self.size,
            "extension": self.extension,
            "depth": self.depth,
        }
        if self.last_modified is not None:
            out["lastModified"] = self.last_modified.isoformat().replace("+00:00", "Z")
        if self.content is not None:
            out["content"] = self.content
        return out


@dataclass(frozen=True)
class ExtensionAggregate:
    extension: str
    count: int
    total_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {"extension": self.extension, "count": self.count, "totalSize": self.total_size}


@dataclass(frozen=True)
class WalkWarning:
    path: str
    kind: str  # file|directory|listing|resolve
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "kind": self.kind, "error": self.error}


@dataclass
class WalkResult:
    records: List[FileRecord] = field(default_factory=list)
    warnings: List[WalkWarning] = field(default_factory=list)


Row = Union[FileRecord, ExtensionAggregate]


@dataclass(frozen=True)
class QueryResult:
    intent: Intent
    rows: List[Row]
    warnings: List[WalkWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.to_dict(),
            "rows": [r.to_dict() for r in self.rows],
            "warnings": [w.to_dict() for w in self.warnings],
        }


def get_file_extension(name: str) -> str:
    # Dotfiles such as ".env" have no extension; neither does a suffix with whitespace
    # ("notes.final draft"), so no extension can equal NO_EXTENSION_LABEL.
    last_dot = name.rfind(".")
    if last_dot <= 0:
        return ""
    ext = name[last_dot + 1 :]
    if any(c.isspace() for c in ext):
        return ""
    return ext.lower()


def format_file_size(size: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    if idx == 0:
        return f"{int(value)} {units[idx]}"
    return f"{value:.1f} {units[idx]}"
