import json
import threading
import unittest
from http.client import HTTPConnection
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any, Dict

from dirquery.config import EngineConfig
from dirquery.http_api import HttpApiConfig, serve_http_api
from dirquery.trace.replay import Replay


def _post_json(host: str, port: int, path: str, payload: Dict[str, Any], headers: Dict[str, str] | None = None) -> tuple[int, Dict[str, Any]]:
    conn = HTTPConnection(host, port, timeout=5)
    body = json.dumps(payload).encode("utf-8")
    h = {"Content-Type": "application/json", "Content-Length": str(len(body))}
    if headers:
        h.update(headers)
    conn.request("POST", path, body=body, headers=h)
    resp = conn.getresponse()
    raw = resp.read().decode("utf-8", errors="replace")
    obj = json.loads(raw) if raw else {}
    conn.close()
    return resp.status, obj


class TestHttpApi(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.td = Path(self._tmp.name)
        self.root = self.td / "allowed"
        self.root.mkdir()
        (self.root / "todo.py").write_text("# TODO: remove", encoding="utf-8")
        (self.root / "readme.md").write_text("hello", encoding="utf-8")
        self.trace_path = self.td / "trace.jsonl"

        self.server = serve_http_api(
            HttpApiConfig(
                host="127.0.0.1",
                port=0,
                engine=EngineConfig(allowed_roots=(str(self.root),)),
                trace_path=str(self.trace_path),
                bearer_token="secret",
            )
        )
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        self.host, self.port = self.server.server_address[:2]
        self.auth = {"Authorization": "Bearer secret"}

    def tearDown(self) -> None:
        self.server.shutdown()
        self.server.server_close()
        self._tmp.cleanup()

    def test_requires_bearer_token(self) -> None:
        status, obj = _post_json(self.host, self.port, "/classify", {"goal": "file types"})
        self.assertEqual(status, 401)
        self.assertEqual(obj["error"]["code"], "auth.unauthorized")

    def test_classify_returns_intent(self) -> None:
        status, obj = _post_json(self.host, self.port, "/classify", {"goal": "list huge files depth 2"}, self.auth)
        self.assertEqual(status, 200)
        self.assertEqual(obj["rule_id"], "large_files")
        self.assertEqual(obj["intent"]["params"], {"threshold": 50.0, "maxDepth": 2})

    def test_classify_miss_is_422(self) -> None:
        status, obj = _post_json(self.host, self.port, "/classify", {"goal": "make coffee"}, self.auth)
        self.assertEqual(status, 422)
        self.assertEqual(obj["error"]["code"], "intent.no_match")

    def test_query_goal_runs_and_traces(self) -> None:
        status, obj = _post_json(
            self.host,
            self.port,
            "/query",
            {"root": str(self.root), "goal": "search for \"todo\" in .py files", "run_id": "run_http_test"},
            self.auth,
        )
        self.assertEqual(status, 200)
        self.assertEqual(obj["run_id"], "run_http_test")
        self.assertEqual([r["path"] for r in obj["rows"]], ["todo.py"])
        self.assertEqual(obj["rows"][0]["content"], "# TODO: remove")

        events = list(Replay(self.trace_path).iter_events())
        self.assertEqual(events[-1]["event_type"], "query_finished")
        self.assertTrue(all(e["run_id"] == "run_http_test" for e in events))

    def test_query_intent_runs(self) -> None:
        status, obj = _post_json(
            self.host,
            self.port,
            "/query",
            {"root": str(self.root), "intent": {"type": "COUNT_BY_EXT", "params": {}}},
            self.auth,
        )
        self.assertEqual(status, 200)
        self.assertTrue(obj["run_id"].startswith("run_http_"))
        self.assertEqual(sorted(r["extension"] for r in obj["rows"]), ["md", "py"])

    def test_query_unknown_intent_is_400(self) -> None:
        status, obj = _post_json(
            self.host,
            self.port,
            "/query",
            {"root": str(self.root), "intent": {"type": "WIPE", "params": {}}},
            self.auth,
        )
        self.assertEqual(status, 400)
        self.assertEqual(obj["error"]["code"], "intent.unknown")

    def test_query_outside_allowed_roots_is_403(self) -> None:
        status, obj = _post_json(self.host, self.port, "/query", {"root": str(self.td), "goal": "file types"}, self.auth)
        self.assertEqual(status, 403)
        self.assertEqual(obj["error"]["code"], "scope.denied")

    def test_query_does_not_follow_symlinks_out_of_the_root(self) -> None:
        outside = self.td / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("TOP SECRET password=hunter2", encoding="utf-8")
        (self.root / "notes.txt").write_text("password reset steps", encoding="utf-8")
        try:
            (self.root / "link.txt").symlink_to(outside / "secret.txt")
        except (OSError, NotImplementedError):
            self.skipTest("symlinks not supported")

        status, obj = _post_json(self.host, self.port, "/query", {"root": str(self.root), "goal": "search for \"password\""}, self.auth)
        self.assertEqual(status, 200)
        self.assertEqual([r["path"] for r in obj["rows"]], ["notes.txt"])
        self.assertNotIn("hunter2", json.dumps(obj))

        status, obj = _post_json(
            self.host,
            self.port,
            "/query",
            {"root": str(self.root), "intent": {"type": "LARGE_FILES", "params": {"threshold": 0.000001}}},
            self.auth,
        )
        self.assertEqual(status, 200)
        self.assertNotIn("link.txt", [r["path"] for r in obj["rows"]])

    def test_non_numeric_content_length_is_400(self) -> None:
        conn = HTTPConnection(self.host, self.port, timeout=5)
        conn.putrequest("POST", "/classify")
        conn.putheader("Content-Length", "abc")
        conn.putheader("Authorization", "Bearer secret")
        conn.endheaders()
        resp = conn.getresponse()
        obj = json.loads(resp.read().decode("utf-8"))
        conn.close()
        self.assertEqual(resp.status, 400)
        self.assertEqual(obj["error"]["code"], "http.invalid_json")

    def test_unknown_route_is_404(self) -> None:
        status, _ = _post_json(self.host, self.port, "/nope", {}, self.auth)
        self.assertEqual(status, 404)


if __name__ == "__main__":
    unittest.main()
