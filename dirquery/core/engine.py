from __future__ import annotations

import logging
from typing import Optional

from dirquery.config import EngineConfig
from dirquery.contract_store import core_contracts
from dirquery.fs.handles import DirectoryHandle
from dirquery.trace.trace_emitter import TraceEmitter
from dirquery.trace.trace_store_jsonl import TraceStoreJSONL

from .classifier import GUIDANCE_MESSAGE, matching_rule
from .errors import UnknownIntentType, ValidationError
from .executor import QueryRegistry, execute
from .runtime_context import RuntimeContext
from .types import Intent, IntentType, QueryResult


logger = logging.getLogger(__name__)


class Engine:
    """
    Local orchestration: Goal -> Intent -> Query -> Trace.

    Hard rules:
    - read-only: handles are only listed and read, never modified.
    - partial results over failure: per-entry faults become warnings.
    - trace every stage when the context carries a trace path.
    """

    def __init__(self, config: Optional[EngineConfig] = None, registry: Optional[QueryRegistry] = None):
        self._config = config or EngineConfig()
        self._registry = registry

    @property
    def config(self) -> EngineConfig:
        return self._config

    def _trace(self, ctx: RuntimeContext) -> TraceEmitter:
        store = TraceStoreJSONL(ctx.trace_path) if ctx.trace_path is not None else None
        return TraceEmitter(store=store, run_id=ctx.run_id)

    def run_goal(self, ctx: RuntimeContext, root: DirectoryHandle, goal: str) -> Optional[QueryResult]:
        """
        Classify `goal` and run it. Returns None on a classification miss.
        """
        trace = self._trace(ctx)
        trace.emit("goal_received", message="Goal received", data={"goal": goal})

        rule = matching_rule(goal)
        if rule is None:
            trace.emit("classification_miss", message=GUIDANCE_MESSAGE, data={"goal": goal})
            logger.info("No intent matched goal %r", goal)
            return None

        intent = Intent(type=rule.intent_type, params=rule.extract(goal.strip()))  # type: ignore[arg-type]
        trace.emit(
            "intent_classified",
            intent_type=intent.type.value,
            message="Intent classified",
            data={"rule_id": rule.rule_id, "intent": intent.to_dict()},
        )
        return self._run(ctx, trace, root, intent)

    def run_intent(self, ctx: RuntimeContext, root: DirectoryHandle, intent: Intent) -> QueryResult:
        trace = self._trace(ctx)
        return self._run(ctx, trace, root, intent)

    def run_intent_dict(self, ctx: RuntimeContext, root: DirectoryHandle, intent: dict) -> QueryResult:
        """
        Validate a JSON-shaped intent against intent.schema.json, then run it.
        """
        raw_type = intent.get("type") if isinstance(intent, dict) else None
        if isinstance(raw_type, str) and raw_type not in {t.value for t in IntentType}:
            raise UnknownIntentType(code="intent.unknown", message=f"Unknown intent type: {raw_type}", data={"type": raw_type})

        errors = core_contracts().validate("intent.schema.json", intent)
        if errors:
            raise ValidationError(code="intent.schema_invalid", message="Intent does not validate against intent.schema.json", data={"errors": errors})
        return self.run_intent(ctx, root, Intent.from_dict(intent))

    def _run(self, ctx: RuntimeContext, trace: TraceEmitter, root: DirectoryHandle, intent: Intent) -> QueryResult:
        intent_type = str(getattr(intent.type, "value", intent.type))
        trace.emit("query_started", intent_type=intent_type, message="Query started", data={"intent": intent.to_dict()})
        try:
            result = execute(root, intent, config=self._config, cancel=ctx.cancel, registry=self._registry)
        except Exception as e:  # noqa: BLE001
            trace.emit("error", intent_type=intent_type, message="Query failed", data={"error": repr(e)})
            raise

        for w in result.warnings:
            trace.emit("walk_warning", intent_type=intent_type, message="Entry skipped", data=w.to_dict())
        trace.emit(
            "query_finished",
            intent_type=intent_type,
            message="Query finished",
            data={"rows": len(result.rows), "warnings": len(result.warnings)},
        )
        return result
