import tempfile
import threading
import unittest
from datetime import datetime, timezone
from pathlib import Path

from dirquery.trace import Replay, TraceEmitter, TraceStoreJSONL


class TestTrace(unittest.TestCase):
    def test_emitter_without_store_is_a_no_op(self) -> None:
        emitter = TraceEmitter(store=None, run_id="r0")
        self.assertFalse(emitter.enabled)
        emitter.emit("goal_received", data={"goal": "x"})

    def test_replay_filters_by_run_and_type(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = TraceStoreJSONL(Path(td) / "nested" / "t.jsonl")
            for rid in ("r1", "r2", "r1"):
                TraceEmitter(store, rid).emit("query_started", intent_type="COUNT_BY_EXT")
            TraceEmitter(store, "r2").emit("query_finished", data={"rows": 0, "warnings": 0})

            replay = Replay(store.path)
            self.assertEqual(replay.run_ids(), ["r1", "r2"])
            self.assertEqual(len(list(replay.iter_events(run_id="r1"))), 2)
            finished = list(replay.iter_events(run_id="r2", event_type="query_finished"))
            self.assertEqual(len(finished), 1)
            self.assertEqual(finished[0]["data"], {"rows": 0, "warnings": 0})

    def test_missing_trace_reads_as_empty(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            self.assertEqual(list(Replay(Path(td) / "absent.jsonl").iter_events()), [])

    def test_non_json_values_are_stringified(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = TraceStoreJSONL(Path(td) / "t.jsonl")
            store.append({"run_id": "r", "event_type": "x", "data": {"at": datetime(2026, 1, 1, tzinfo=timezone.utc)}})
            (event,) = Replay(store.path).iter_events()
            self.assertEqual(event["data"]["at"], "2026-01-01 00:00:00+00:00")

    def test_concurrent_appends_keep_lines_intact(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "t.jsonl"

            def worker(n: int) -> None:
                emitter = TraceEmitter(TraceStoreJSONL(path), f"run_{n}")
                for i in range(50):
                    emitter.emit("walk_warning", data={"path": "x" * 200, "i": i})

            threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            events = list(Replay(path).iter_events())
            self.assertEqual(len(events), 200)
            self.assertEqual(len(Replay(path).run_ids()), 4)


if __name__ == "__main__":
    unittest.main()
