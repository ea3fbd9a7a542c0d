from .errors import DirQueryError, QueryCancelled, UnknownIntentType, ValidationError
from .runtime_context import CancelToken, RuntimeContext
from .types import (
    CountByExtParams,
    ExtensionAggregate,
    FileRecord,
    Intent,
    IntentType,
    LargeFilesParams,
    QueryResult,
    TextSearchParams,
    WalkResult,
    WalkWarning,
)
from .classifier import GUIDANCE_MESSAGE, classify

__all__ = [
  "DirQueryError",
  "QueryCancelled",
  "UnknownIntentType",
  "ValidationError",
  "CancelToken",
  "RuntimeContext",
  "CountByExtParams",
  "ExtensionAggregate",
  "FileRecord",
  "Intent",
  "IntentType",
  "LargeFilesParams",
  "QueryResult",
  "TextSearchParams",
  "WalkResult",
  "WalkWarning",
  "GUIDANCE_MESSAGE",
  "classify",
]
