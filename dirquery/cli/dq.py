from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List

from dirquery.config import default_config_path, load_config, render_default_config
from dirquery.contract_store import core_contracts
from dirquery.core.classifier import GUIDANCE_MESSAGE, matching_rule
from dirquery.core.engine import Engine
from dirquery.core.errors import DirQueryError, ValidationError
from dirquery.core.runtime_context import RuntimeContext
from dirquery.core.types import ExtensionAggregate, QueryResult, format_file_size
from dirquery.fs.handles import open_local_root
from dirquery.http_api import HttpApiConfig, serve_http_api
from dirquery.trace.replay import Replay


EXIT_NO_MATCH = 2


def _load_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _format_cli_error(e: Exception) -> str:
    """
    Print-friendly error formatting for CLI commands.
    - Always includes code/message (via __str__) when it's a DirQueryError
    - Includes structured `data` payload when present
    """
    if isinstance(e, DirQueryError) and isinstance(e.data, dict) and e.data:
        return str(e) + "\n" + json.dumps(e.data, ensure_ascii=False, indent=2)
    return str(e)


def _render_table(result: QueryResult) -> str:
    if not result.rows:
        return "(no results)"
    if isinstance(result.rows[0], ExtensionAggregate):
        header = ["Extension", "Count", "Total Size"]
        body = [[r.extension, str(r.count), format_file_size(r.total_size)] for r in result.rows]  # type: ignore[union-attr]
    else:
        header = ["Path", "Size", "Depth"]
        body = [[r.path, format_file_size(r.size), str(r.depth)] for r in result.rows]  # type: ignore[union-attr]
    widths = [max(len(row[i]) for row in [header, *body]) for i in range(len(header))]
    lines = ["  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip() for row in [header, *body]]
    lines.insert(1, "  ".join("-" * w for w in widths))
    return "\n".join(lines)


def cmd_classify(args: argparse.Namespace) -> int:
    rule = matching_rule(args.goal)
    if rule is None:
        print(GUIDANCE_MESSAGE)
        return EXIT_NO_MATCH
    params = rule.extract(args.goal.strip())
    out: Dict[str, Any] = {"type": rule.intent_type.value, "params": params.to_dict()}
    if args.explain:
        out = {"intent": out, "rule_id": rule.rule_id}
    print(json.dumps(out, ensure_ascii=False, indent=2))
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    if bool(args.goal) == bool(args.intent):
        raise ValidationError(code="cli.invalid", message="Pass exactly one of --goal or --intent")

    config = load_config(args.config)
    engine = Engine(config)
    root = open_local_root(args.root)
    ctx = RuntimeContext(
        run_id=args.run_id,
        trace_path=Path(args.trace) if args.trace else None,
    )

    try:
        if args.intent:
            result = engine.run_intent_dict(ctx, root, _load_json(Path(args.intent)))
        else:
            result = engine.run_goal(ctx, root, args.goal)
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130

    if result is None:
        print(GUIDANCE_MESSAGE)
        return EXIT_NO_MATCH

    if args.table:
        print(_render_table(result))
        if result.warnings:
            print(f"\n{len(result.warnings)} entries skipped (see --log-level warning)", file=sys.stderr)
    else:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0


def cmd_show_trace(args: argparse.Namespace) -> int:
    path = Path(args.trace)
    replay = Replay(path)
    if args.list_runs:
        for rid in replay.run_ids():
            print(rid)
        return 0

    events = list(replay.iter_events(run_id=args.run_id, event_type=args.event_type))

    if args.tail is not None and args.tail >= 0:
        events = events[-args.tail :] if args.tail else []

    if args.pretty:
        for e in events:
            print(json.dumps(e, ensure_ascii=False, indent=2))
    else:
        for e in events:
            print(json.dumps(e, ensure_ascii=False))
    return 0


def cmd_check_contracts(_args: argparse.Namespace) -> int:
    store = core_contracts()
    problems: List[str] = [f"{name}: {msg}" for name, msg in store.check_schemas()]
    if problems:
        for p in problems:
            print(p)
        return 1
    print("Contracts OK")
    return 0


def cmd_init_config(args: argparse.Namespace) -> int:
    content = render_default_config()
    if not args.output:
        print(content, end="")
        return 0
    p = Path(args.output).expanduser()
    if p.exists() and not args.force:
        raise ValidationError(code="config.exists", message=f"Config already exists: {p} (use --force to overwrite)")
    _write_text(p, content)
    print(f"OK: wrote config to {p}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    if args.allowed_root:
        config = replace(config, allowed_roots=tuple(args.allowed_root))
    server = serve_http_api(
        HttpApiConfig(host=args.host, port=args.port, engine=config, trace_path=args.trace, bearer_token=args.bearer_token)
    )
    host, port = server.server_address[:2]
    print(f"Serving on http://{host}:{port}", file=sys.stderr)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="dq", description="Ask questions about a local directory")
    parser.add_argument("--log-level", default="WARNING", help="Logging level for stderr (default: WARNING)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_classify = sub.add_parser("classify", help="Goal text -> Intent JSON (no filesystem access)")
    p_classify.add_argument("--goal", required=True, help="Free-text goal, e.g. 'find files >50MB'")
    p_classify.add_argument("--explain", action="store_true", help="Also print which rule matched")
    p_classify.set_defaults(func=cmd_classify)

    p_run = sub.add_parser("run", help="Classify a goal (or load an intent) and run it against a directory")
    p_run.add_argument("--root", required=True, help="Directory to query")
    p_run.add_argument("--goal", help="Free-text goal")
    p_run.add_argument("--intent", help="Path to intent JSON (instead of --goal)")
    p_run.add_argument("--config", help=f"Engine config YAML (default: {default_config_path()})")
    p_run.add_argument("--table", action="store_true", help="Print a text table instead of JSON")
    p_run.add_argument("--trace", help="Trace output path (jsonl); omitted means no trace")
    p_run.add_argument("--run-id", default="run_cli", help="Run ID for trace correlation")
    p_run.set_defaults(func=cmd_run)

    p_show_trace = sub.add_parser("show-trace", help="Show trace events from a JSONL file")
    p_show_trace.add_argument("--trace", required=True, help="Trace path (jsonl)")
    p_show_trace.add_argument("--event-type", help="Filter by event_type")
    p_show_trace.add_argument("--run-id", help="Filter by run_id")
    p_show_trace.add_argument("--list-runs", action="store_true", help="Print the run ids in the trace and exit")
    p_show_trace.add_argument("--tail", type=int, help="Show only last N events")
    p_show_trace.add_argument("--pretty", action="store_true", help="Pretty-print each event as JSON")
    p_show_trace.set_defaults(func=cmd_show_trace)

    p_check = sub.add_parser("check-contracts", help="Validate the shipped JSON Schemas")
    p_check.set_defaults(func=cmd_check_contracts)

    p_init = sub.add_parser("init-config", help="Print or write a scaffold engine config")
    p_init.add_argument("--output", help="Write config to file instead of stdout")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    p_init.set_defaults(func=cmd_init_config)

    p_serve = sub.add_parser("serve", help="Run the local HTTP API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8787)
    p_serve.add_argument("--config", help="Engine config YAML")
    p_serve.add_argument("--allowed-root", action="append", default=[], help="Directory the API may query (repeatable)")
    p_serve.add_argument("--trace", help="Trace output path (jsonl)")
    p_serve.add_argument("--bearer-token", help="Require 'Authorization: Bearer <token>'")
    p_serve.set_defaults(func=cmd_serve)

    ns = parser.parse_args(argv)
    logging.basicConfig(level=str(ns.log_level).upper(), format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)
    try:
        return int(ns.func(ns))
    except Exception as e:  # noqa: BLE001
        print(_format_cli_error(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
