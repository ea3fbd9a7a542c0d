from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Dict, Optional

from dirquery.config import EngineConfig
from dirquery.core.classifier import GUIDANCE_MESSAGE, matching_rule
from dirquery.core.engine import Engine
from dirquery.core.errors import ScopeDenied, UnknownIntentType, ValidationError
from dirquery.core.runtime_context import RuntimeContext
from dirquery.core.scope import is_within_any_root, normalize_roots
from dirquery.fs.handles import open_local_root


logger = logging.getLogger(__name__)


def _json_response(handler: BaseHTTPRequestHandler, status: int, obj: Dict[str, Any]) -> None:
    raw = json.dumps(obj, ensure_ascii=False, indent=2).encode("utf-8")
    handler.send_response(status)
    handler.send_header("Content-Type", "application/json; charset=utf-8")
    handler.send_header("Content-Length", str(len(raw)))
    handler.end_headers()
    handler.wfile.write(raw)


def _read_json_body(handler: BaseHTTPRequestHandler) -> Dict[str, Any]:
    try:
        n = int(handler.headers.get("Content-Length", "0") or "0")
    except ValueError as e:
        raise ValidationError(code="http.invalid_json", message="Content-Length must be an integer") from e
    raw = handler.rfile.read(n) if n > 0 else b""
    if not raw:
        return {}
    try:
        obj = json.loads(raw.decode("utf-8"))
    except Exception as e:  # noqa: BLE001
        raise ValidationError(code="http.invalid_json", message="Request body must be valid JSON") from e
    if not isinstance(obj, dict):
        raise ValidationError(code="http.invalid_json", message="Request body must be a JSON object")
    return obj


def _require_goal(body: Dict[str, Any]) -> str:
    goal = body.get("goal")
    if not isinstance(goal, str) or not goal.strip():
        raise ValidationError(code="http.invalid", message="goal must be a non-empty string")
    return goal


@dataclass(frozen=True)
class HttpApiConfig:
    host: str = "127.0.0.1"
    port: int = 8787
    engine: EngineConfig = field(default_factory=EngineConfig)
    # Optional JSONL trace for every request; None disables tracing.
    trace_path: Optional[str] = None
    # This reference server supports a simple bearer token when set.
    bearer_token: Optional[str] = None


def serve_http_api(config: HttpApiConfig) -> ThreadingHTTPServer:
    engine = Engine(config.engine)
    allowed_roots = normalize_roots(config.engine.allowed_roots)

    class Handler(BaseHTTPRequestHandler):
        def _auth_ok(self) -> bool:
            if not config.bearer_token:
                return True
            v = self.headers.get("Authorization", "")
            return v == f"Bearer {config.bearer_token}"

        def _open_root(self, body: Dict[str, Any]):
            root = body.get("root")
            if not isinstance(root, str) or not root:
                raise ValidationError(code="http.invalid", message="root must be a non-empty string")
            if not is_within_any_root(root, allowed_roots):
                raise ScopeDenied(
                    code="scope.denied",
                    message="root is outside the allowed roots",
                    data={"root": root, "allowed_roots": [str(r) for r in allowed_roots]},
                )
            return open_local_root(root)

        def do_POST(self) -> None:  # noqa: N802
            if not self._auth_ok():
                _json_response(self, 401, {"error": {"code": "auth.unauthorized", "message": "Unauthorized"}})
                return

            try:
                body = _read_json_body(self)
                if self.path == "/classify":
                    goal = _require_goal(body)
                    rule = matching_rule(goal)
                    if rule is None:
                        _json_response(self, 422, {"error": {"code": "intent.no_match", "message": GUIDANCE_MESSAGE}})
                        return
                    intent = rule.extract(goal.strip())
                    _json_response(
                        self,
                        200,
                        {"intent": {"type": rule.intent_type.value, "params": intent.to_dict()}, "rule_id": rule.rule_id},
                    )
                    return

                if self.path == "/query":
                    root = self._open_root(body)
                    ctx = RuntimeContext(
                        run_id=str(body.get("run_id") or f"run_http_{uuid.uuid4().hex[:12]}"),
                        trace_path=Path(config.trace_path) if config.trace_path else None,
                    )
                    if isinstance(body.get("intent"), dict):
                        result = engine.run_intent_dict(ctx, root, body["intent"])
                    else:
                        result = engine.run_goal(ctx, root, _require_goal(body))
                        if result is None:
                            _json_response(self, 422, {"error": {"code": "intent.no_match", "message": GUIDANCE_MESSAGE}})
                            return
                    _json_response(self, 200, {"run_id": ctx.run_id, **result.to_dict()})
                    return

                _json_response(self, 404, {"error": {"code": "http.not_found", "message": "Not found"}})
            except ScopeDenied as e:
                _json_response(self, 403, {"error": {"code": e.code, "message": e.message, "data": e.data or {}}})
            except (ValidationError, UnknownIntentType) as e:
                _json_response(self, 400, {"error": {"code": e.code, "message": e.message, "data": e.data or {}}})
            except Exception as e:  # noqa: BLE001
                logger.exception("Unhandled error for %s", self.path)
                _json_response(self, 500, {"error": {"code": "http.error", "message": "Internal error", "data": {"error": repr(e)}}})

        def log_message(self, fmt: str, *args: Any) -> None:
            logger.debug("%s - " + fmt, self.address_string(), *args)

    return ThreadingHTTPServer((config.host, config.port), Handler)
