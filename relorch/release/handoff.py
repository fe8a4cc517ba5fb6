"""Artifact handoff store: one release handle, written once, read by every build task.

The release stage publishes the handle; each build task fetches it before
it may upload anything. ``fetch`` never answers before ``publish`` has
completed for the same run, and it gives up with ``HandoffUnavailable``
instead of waiting forever or guessing a value.

Two backends:
- MemoryHandoffStore: the whole pipeline runs in one process.
- FileHandoffStore: stages run as separate processes (or machines sharing
  a directory, e.g. a CI artifact). One JSON record per run id.
"""

from __future__ import annotations

import json
import os
import re
import threading
from pathlib import Path
from time import monotonic, sleep
from typing import Protocol
from uuid import uuid4

from relorch.core.result import Err, Ok, Result
from relorch.core.structured import as_str_dict, get_int, get_str
from relorch.release.errors import (
    HandoffConflict,
    HandoffError,
    HandoffStorageFailed,
    HandoffUnavailable,
)
from relorch.release.model import ReleaseHandle
from relorch.release.timeouts import HANDOFF_POLL_INTERVAL_SECONDS

__all__ = [
    "FileHandoffStore",
    "HandoffStore",
    "MemoryHandoffStore",
]

_RUN_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_RECORD_SCHEMA = 1


class HandoffStore(Protocol):
    def publish(self, handle: ReleaseHandle) -> Result[None, HandoffError]: ...

    def fetch(self, run_id: str, *, timeout: float) -> Result[ReleaseHandle, HandoffError]: ...

    def discard(self, run_id: str) -> None: ...


class MemoryHandoffStore:
    """In-process store. Fetchers block on a condition until publish."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._handles: dict[str, ReleaseHandle] = {}

    def publish(self, handle: ReleaseHandle) -> Result[None, HandoffError]:
        with self._cond:
            if handle.run_id in self._handles:
                return Err(HandoffConflict(run_id=handle.run_id))
            self._handles[handle.run_id] = handle
            self._cond.notify_all()
        return Ok(None)

    def fetch(self, run_id: str, *, timeout: float) -> Result[ReleaseHandle, HandoffError]:
        started = monotonic()
        with self._cond:
            ready = self._cond.wait_for(lambda: run_id in self._handles, timeout=timeout)
            if not ready:
                return Err(HandoffUnavailable(run_id=run_id, waited_seconds=monotonic() - started))
            return Ok(self._handles[run_id])

    def discard(self, run_id: str) -> None:
        with self._cond:
            self._handles.pop(run_id, None)


class FileHandoffStore:
    """Directory-backed store, keyed by run id.

    Publishing writes a temp file and hard-links it into place, so readers
    never observe a half-written record and a second publish for the same
    run fails instead of replacing the first.
    """

    def __init__(self, directory: Path, *, poll_interval: float = HANDOFF_POLL_INTERVAL_SECONDS) -> None:
        self._dir = directory
        self._poll_interval = poll_interval

    def record_path(self, run_id: str) -> Path:
        return self._dir / f"{run_id}.json"

    def publish(self, handle: ReleaseHandle) -> Result[None, HandoffError]:
        run_id = handle.run_id
        if not _RUN_ID_RE.match(run_id):
            return Err(HandoffStorageFailed(run_id=run_id, reason="invalid run id"))

        record = {
            "schema": _RECORD_SCHEMA,
            "run_id": run_id,
            "release_id": handle.release_id,
            "upload_url": handle.upload_url,
        }
        dest = self.record_path(run_id)
        tmp = self._dir / f".{run_id}.{uuid4().hex[:8]}.tmp"
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(record, indent=2) + "\n", encoding="utf-8")
            os.link(tmp, dest)
        except FileExistsError:
            return Err(HandoffConflict(run_id=run_id))
        except OSError as e:
            return Err(HandoffStorageFailed(run_id=run_id, reason=f"cannot write {dest}: {e}"))
        finally:
            tmp.unlink(missing_ok=True)

        return Ok(None)

    def fetch(self, run_id: str, *, timeout: float) -> Result[ReleaseHandle, HandoffError]:
        if not _RUN_ID_RE.match(run_id):
            return Err(HandoffStorageFailed(run_id=run_id, reason="invalid run id"))

        path = self.record_path(run_id)
        started = monotonic()
        deadline = started + timeout
        while True:
            if path.exists():
                return self._read(run_id, path)
            remaining = deadline - monotonic()
            if remaining <= 0:
                return Err(HandoffUnavailable(run_id=run_id, waited_seconds=monotonic() - started))
            sleep(min(self._poll_interval, remaining))

    def discard(self, run_id: str) -> None:
        if _RUN_ID_RE.match(run_id):
            self.record_path(run_id).unlink(missing_ok=True)

    def _read(self, run_id: str, path: Path) -> Result[ReleaseHandle, HandoffError]:
        try:
            obj: object = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            return Err(HandoffStorageFailed(run_id=run_id, reason=f"unreadable record {path}: {e}"))

        data = as_str_dict(obj)
        if data is None or get_int(data, "schema") != _RECORD_SCHEMA:
            return Err(HandoffStorageFailed(run_id=run_id, reason=f"unsupported record {path}"))

        release_id = get_str(data, "release_id")
        upload_url = get_str(data, "upload_url")
        if get_str(data, "run_id") != run_id or release_id is None or upload_url is None:
            return Err(HandoffStorageFailed(run_id=run_id, reason=f"record does not match run: {path}"))

        return Ok(ReleaseHandle(run_id=run_id, release_id=release_id, upload_url=upload_url))
