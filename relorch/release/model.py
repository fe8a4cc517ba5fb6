from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from relorch.release.errors import PipelineError, TaskError

FailurePolicy = Literal["continue", "cancel"]
PipelineState = Literal["start", "release_creation", "build_fan_out", "done", "failed"]
PipelineStatus = Literal["success", "partial_failure", "build_failure", "release_failed"]


@dataclass(frozen=True, slots=True)
class BuildTarget:
    """One entry of the build matrix."""

    platform: str
    local_path: Path  # relative to the project dir
    asset_name: str


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    id: str
    tag: str
    title: str
    html_url: str | None = None
    # Fixed policy: releases are published straight away.
    draft: bool = False
    prerelease: bool = False


@dataclass(frozen=True, slots=True)
class ReleaseHandle:
    """What a build task needs to attach an asset to this run's release."""

    run_id: str
    release_id: str
    upload_url: str


@dataclass(frozen=True, slots=True)
class UploadedAsset:
    name: str
    size: int
    url: str | None = None


@dataclass(frozen=True, slots=True)
class TargetOutcome:
    target: BuildTarget
    asset: UploadedAsset | None = None
    error: TaskError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _no_outcomes() -> tuple[TargetOutcome, ...]:
    return ()


@dataclass(frozen=True, slots=True)
class PipelineOutcome:
    run_id: str
    tag: str
    state: PipelineState
    release: ReleaseRecord | None = None
    outcomes: tuple[TargetOutcome, ...] = field(default_factory=_no_outcomes)
    error: PipelineError | None = None

    @property
    def status(self) -> PipelineStatus:
        if self.state == "failed" or self.release is None:
            return "release_failed"
        if all(o.ok for o in self.outcomes):
            return "success"
        if any(o.ok for o in self.outcomes):
            return "partial_failure"
        return "build_failure"

    @property
    def failed_platforms(self) -> tuple[str, ...]:
        return tuple(o.target.platform for o in self.outcomes if not o.ok)

    @property
    def attached(self) -> tuple[UploadedAsset, ...]:
        return tuple(o.asset for o in self.outcomes if o.asset is not None)
