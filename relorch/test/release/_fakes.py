"""In-memory stand-ins for the pipeline's external collaborators."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from relorch.core.result import Err, Ok, Result
from relorch.release.errors import BuildError, BuildFailed, HandoffError, PlatformError
from relorch.release.github import CreatedRelease
from relorch.release.handoff import MemoryHandoffStore
from relorch.release.model import BuildTarget, ReleaseHandle, UploadedAsset


@dataclass(frozen=True, slots=True)
class CreateCall:
    tag: str
    title: str
    draft: bool
    prerelease: bool


class FakePlatform:
    """Records releases and keeps uploaded bytes per asset name."""

    def __init__(
        self,
        *,
        release_id: str = "R1",
        create_error: PlatformError | None = None,
        upload_errors: dict[str, PlatformError] | None = None,
    ) -> None:
        self.release_id = release_id
        self.create_error = create_error
        self.upload_errors = upload_errors or {}
        self.created: list[CreateCall] = []
        self.uploads: dict[str, bytes] = {}
        self.upload_urls: list[str] = []
        self._lock = threading.Lock()

    @property
    def upload_url(self) -> str:
        return f"https://uploads.example.test/releases/{self.release_id}/assets{{?name,label}}"

    def create_release(
        self,
        *,
        tag: str,
        title: str,
        draft: bool,
        prerelease: bool,
    ) -> Result[CreatedRelease, PlatformError]:
        with self._lock:
            self.created.append(CreateCall(tag=tag, title=title, draft=draft, prerelease=prerelease))
        if self.create_error is not None:
            return Err(self.create_error)
        return Ok(CreatedRelease(id=self.release_id, upload_url=self.upload_url))

    def upload_asset(
        self,
        *,
        upload_url: str,
        path: Path,
        asset_name: str,
        content_type: str,
    ) -> Result[UploadedAsset, PlatformError]:
        error = self.upload_errors.get(asset_name)
        if error is not None:
            return Err(error)
        data = path.read_bytes()
        with self._lock:
            self.upload_urls.append(upload_url)
            self.uploads[asset_name] = data
        return Ok(UploadedAsset(name=asset_name, size=len(data)))


class FakeToolchain:
    """Writes a known payload per target instead of compiling.

    Each platform builds into its own sub-directory, the way separate
    runners would, so targets sharing a ``local_path`` do not collide.
    """

    def __init__(
        self,
        root: Path,
        *,
        fail: set[str] | None = None,
        crash: set[str] | None = None,
        before_build: Callable[[BuildTarget], None] | None = None,
    ) -> None:
        self.root = root
        self.fail = fail or set()
        self.crash = crash or set()
        self.before_build = before_build
        self.built: list[str] = []
        self._lock = threading.Lock()

    @staticmethod
    def payload(target: BuildTarget) -> bytes:
        return f"binary for {target.platform}\x00\xff".encode("utf-8") + bytes(range(256))

    def build(self, target: BuildTarget) -> Result[Path, BuildError]:
        if self.before_build is not None:
            self.before_build(target)
        with self._lock:
            self.built.append(target.platform)
        if target.platform in self.crash:
            raise UnicodeDecodeError("utf-8", b"warn \xe9", 5, 6, "invalid continuation byte")
        if target.platform in self.fail:
            return Err(BuildFailed(platform=target.platform, returncode=101, detail="error[E0308]"))

        out = self.root / target.platform / target.local_path
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(self.payload(target))
        return Ok(out)


class RecordingStore:
    """MemoryHandoffStore that logs when publish and fetch complete."""

    def __init__(self) -> None:
        self.inner = MemoryHandoffStore()
        self.events: list[str] = []
        self._lock = threading.Lock()

    def _log(self, event: str) -> None:
        with self._lock:
            self.events.append(event)

    def publish(self, handle: ReleaseHandle) -> Result[None, HandoffError]:
        result = self.inner.publish(handle)
        self._log("publish")
        return result

    def fetch(self, run_id: str, *, timeout: float) -> Result[ReleaseHandle, HandoffError]:
        result = self.inner.fetch(run_id, timeout=timeout)
        if isinstance(result, Ok):
            self._log("fetch")
        return result

    def discard(self, run_id: str) -> None:
        self._log("discard")
        self.inner.discard(run_id)


class LossyStore(MemoryHandoffStore):
    """Accepts publish but never stores anything (a lost CI artifact)."""

    def publish(self, handle: ReleaseHandle) -> Result[None, HandoffError]:
        return Ok(None)
