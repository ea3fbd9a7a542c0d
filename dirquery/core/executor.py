from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

from dirquery.config import EngineConfig
from dirquery.fs.handles import DirectoryHandle

from .errors import UnknownIntentType
from .queries import count_by_extension, find_large_files, search_text
from .runtime_context import CancelToken
from .types import Intent, IntentType, QueryResult, Row, WalkWarning


QueryFunc = Callable[[DirectoryHandle, Any, EngineConfig, Optional[CancelToken]], Tuple[List[Row], List[WalkWarning]]]


class QueryRegistry:
    """
    Maps each intent type to the query executor that answers it.
    """

    def __init__(self) -> None:
        self._impls: Dict[IntentType, QueryFunc] = {}

    def register(self, intent_type: IntentType, impl: QueryFunc) -> None:
        self._impls[intent_type] = impl

    def get(self, intent_type: Any) -> Optional[QueryFunc]:
        if not isinstance(intent_type, IntentType):
            return None
        return self._impls.get(intent_type)

    def list_types(self) -> List[IntentType]:
        return sorted(self._impls.keys(), key=lambda t: t.value)


def build_query_registry() -> QueryRegistry:
    reg = QueryRegistry()
    reg.register(IntentType.LARGE_FILES, find_large_files)
    reg.register(IntentType.COUNT_BY_EXT, count_by_extension)
    reg.register(IntentType.TEXT_SEARCH, search_text)
    return reg


_DEFAULT_REGISTRY = build_query_registry()


def execute(
    root: DirectoryHandle,
    intent: Intent,
    *,
    config: Optional[EngineConfig] = None,
    cancel: Optional[CancelToken] = None,
    registry: Optional[QueryRegistry] = None,
) -> QueryResult:
    """
    Run a resolved intent against `root`.

    Per-file faults are recovered inside the executors and surface as warnings;
    an unknown intent type is the only error raised here.
    """
    impl = (registry or _DEFAULT_REGISTRY).get(intent.type)
    if impl is None:
        raise UnknownIntentType(
            code="intent.unknown",
            message=f"Unknown intent type: {getattr(intent.type, 'value', intent.type)}",
            data={"type": str(getattr(intent.type, "value", intent.type))},
        )
    rows, warnings = impl(root, intent.params, config or EngineConfig(), cancel)
    return QueryResult(intent=intent, rows=rows, warnings=warnings)
