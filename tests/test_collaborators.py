import asyncio
import json
from pathlib import Path

from safe_py_grader.catalog import Catalog
from safe_py_grader.collaborators import (
    HintTutor,
    JsonSnapshotStore,
    MemoryProgressTracker,
    MemorySnapshotStore,
    snapshot_key,
)
from safe_py_grader.verdict import Verdict


def test_memory_snapshot_store_is_keyed_by_user_and_exercise() -> None:
    store = MemorySnapshotStore()
    store.save("ada", "1", "a")
    store.save("bob", "1", "b")
    assert store.load("ada", "1") == "a"
    assert store.load("bob", "1") == "b"
    assert store.load("ada", "2") is None


def test_json_snapshot_store_persists_across_instances(tmp_path: Path) -> None:
    directory = tmp_path / "snapshots"
    JsonSnapshotStore(directory).save("ada", "2", "print('hi')\n")
    again = JsonSnapshotStore(directory)
    assert again.load("ada", "2") == "print('hi')\n"
    data = json.loads((directory / "snapshots.json").read_text(encoding="utf-8"))
    assert data == {snapshot_key("ada", "2"): "print('hi')\n"}
    assert list(directory.iterdir()) == [directory / "snapshots.json"]


def test_progress_tracker_records_completions() -> None:
    tracker = MemoryProgressTracker()
    tracker.mark_completed("ada", "1")
    tracker.mark_completed("ada", "1")
    tracker.mark_completed(None, "2")
    assert tracker.is_completed("ada", "1")
    assert not tracker.is_completed("bob", "1")
    assert tracker.is_completed(None, "2")
    assert tracker.completed == {"ada": {"1"}, "anonymous": {"2"}}


def test_hint_tutor_offers_first_hint_on_failure() -> None:
    descriptor = Catalog.default().get("2")
    failed = Verdict(False, "FAIL: nope")
    text = asyncio.run(HintTutor().review(descriptor, "x = 1", failed))
    assert text.splitlines()[0] == "FAIL: nope"
    assert descriptor.hints[0] in text

    passed = Verdict(True, "PASS: ok")
    assert "All checks passed" in asyncio.run(HintTutor().review(descriptor, "x = 1", passed))
