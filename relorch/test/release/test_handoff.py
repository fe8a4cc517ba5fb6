from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import pytest

from relorch.core.result import Err, Ok, Result
from relorch.release import handoff as handoff_mod
from relorch.release.errors import HandoffConflict, HandoffError, HandoffStorageFailed, HandoffUnavailable
from relorch.release.handoff import FileHandoffStore, MemoryHandoffStore
from relorch.release.model import ReleaseHandle

HANDLE = ReleaseHandle(
    run_id="run-7",
    release_id="42",
    upload_url="https://uploads.github.com/repos/o/r/releases/42/assets{?name,label}",
)


class TestMemoryHandoffStore:
    def test_fetch_after_publish(self) -> None:
        store = MemoryHandoffStore()
        assert store.publish(HANDLE) == Ok(None)
        assert store.fetch("run-7", timeout=0) == Ok(HANDLE)

    def test_fetch_blocks_until_publish(self) -> None:
        store = MemoryHandoffStore()
        results: list[Result[ReleaseHandle, HandoffError]] = []

        reader = threading.Thread(target=lambda: results.append(store.fetch("run-7", timeout=5.0)))
        reader.start()
        time.sleep(0.05)
        assert results == []

        store.publish(HANDLE)
        reader.join(timeout=5.0)

        assert results == [Ok(HANDLE)]

    def test_every_reader_sees_the_same_handle(self) -> None:
        store = MemoryHandoffStore()
        results: list[Result[ReleaseHandle, HandoffError]] = []
        lock = threading.Lock()

        def read() -> None:
            r = store.fetch("run-7", timeout=5.0)
            with lock:
                results.append(r)

        readers = [threading.Thread(target=read) for _ in range(5)]
        for t in readers:
            t.start()
        store.publish(HANDLE)
        for t in readers:
            t.join(timeout=5.0)

        assert results == [Ok(HANDLE)] * 5

    def test_empty_store_times_out(self) -> None:
        result = MemoryHandoffStore().fetch("run-7", timeout=0.01)
        assert isinstance(result, Err)
        assert isinstance(result.error, HandoffUnavailable)
        assert result.error.run_id == "run-7"

    def test_other_run_is_not_visible(self) -> None:
        store = MemoryHandoffStore()
        store.publish(HANDLE)
        result = store.fetch("run-8", timeout=0.01)
        assert isinstance(result, Err)

    def test_second_publish_is_rejected(self) -> None:
        store = MemoryHandoffStore()
        store.publish(HANDLE)

        again = store.publish(ReleaseHandle(run_id="run-7", release_id="43", upload_url="x"))

        assert again == Err(HandoffConflict(run_id="run-7"))
        assert store.fetch("run-7", timeout=0) == Ok(HANDLE)

    def test_discard(self) -> None:
        store = MemoryHandoffStore()
        store.publish(HANDLE)
        store.discard("run-7")
        assert isinstance(store.fetch("run-7", timeout=0), Err)


class TestFileHandoffStore:
    def test_round_trip_through_disk(self, tmp_path: Path) -> None:
        writer = FileHandoffStore(tmp_path / "handoff")
        assert writer.publish(HANDLE) == Ok(None)

        # A separate process only shares the directory.
        reader = FileHandoffStore(tmp_path / "handoff")
        assert reader.fetch("run-7", timeout=0) == Ok(HANDLE)

    def test_record_is_typed_json(self, tmp_path: Path) -> None:
        store = FileHandoffStore(tmp_path)
        store.publish(HANDLE)

        data = json.loads(store.record_path("run-7").read_text(encoding="utf-8"))
        assert data == {
            "schema": 1,
            "run_id": "run-7",
            "release_id": "42",
            "upload_url": HANDLE.upload_url,
        }
        assert [p.name for p in tmp_path.iterdir()] == ["run-7.json"]

    def test_second_publish_is_rejected(self, tmp_path: Path) -> None:
        store = FileHandoffStore(tmp_path)
        store.publish(HANDLE)
        assert store.publish(HANDLE) == Err(HandoffConflict(run_id="run-7"))

    def test_missing_record_times_out(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        sleeps: list[float] = []
        monkeypatch.setattr(handoff_mod, "sleep", sleeps.append)
        clock = iter([0.0, 0.0, 0.4, 0.8, 1.2, 1.2])
        monkeypatch.setattr(handoff_mod, "monotonic", lambda: next(clock))

        result = FileHandoffStore(tmp_path, poll_interval=0.4).fetch("run-7", timeout=1.0)

        assert isinstance(result, Err)
        assert isinstance(result.error, HandoffUnavailable)
        assert len(sleeps) == 3

    def test_record_published_while_waiting(self, tmp_path: Path) -> None:
        store = FileHandoffStore(tmp_path, poll_interval=0.01)
        timer = threading.Timer(0.05, lambda: store.publish(HANDLE))
        timer.start()
        try:
            assert store.fetch("run-7", timeout=5.0) == Ok(HANDLE)
        finally:
            timer.cancel()

    def test_corrupt_record(self, tmp_path: Path) -> None:
        store = FileHandoffStore(tmp_path)
        store.record_path("run-7").write_text("https://uploads.example/assets\n", encoding="utf-8")

        result = store.fetch("run-7", timeout=0)

        assert isinstance(result, Err)
        assert isinstance(result.error, HandoffStorageFailed)

    def test_record_for_another_run(self, tmp_path: Path) -> None:
        store = FileHandoffStore(tmp_path)
        store.publish(HANDLE)
        store.record_path("run-7").rename(store.record_path("run-9"))

        result = store.fetch("run-9", timeout=0)

        assert isinstance(result, Err)
        assert isinstance(result.error, HandoffStorageFailed)

    @pytest.mark.parametrize("run_id", ["", "../etc", "a/b", ".hidden"])
    def test_invalid_run_ids(self, tmp_path: Path, run_id: str) -> None:
        store = FileHandoffStore(tmp_path)
        assert isinstance(store.fetch(run_id, timeout=0), Err)
        bad = ReleaseHandle(run_id=run_id, release_id="1", upload_url="u")
        assert isinstance(store.publish(bad), Err)

    def test_discard_removes_record(self, tmp_path: Path) -> None:
        store = FileHandoffStore(tmp_path)
        store.publish(HANDLE)
        store.discard("run-7")
        assert not store.record_path("run-7").exists()
