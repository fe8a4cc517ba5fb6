"""Error payloads for the release pipeline.

Each failure is a small frozen dataclass. They are grouped into unions by
where they can occur, which is also how the orchestrator decides their
blast radius: a ``PipelineError`` stops the whole run, a ``TaskError`` only
fails the build target it belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

PlatformErrorKind = Literal[
    "auth", "conflict", "not_found", "network", "rejected", "invalid_response"
]


@dataclass(frozen=True, slots=True)
class PlatformError:
    """Failure reported by the release hosting platform."""

    kind: PlatformErrorKind
    message: str
    status: int = 0


@dataclass(frozen=True, slots=True)
class InvalidTag:
    tag: str
    reason: str


@dataclass(frozen=True, slots=True)
class ReleaseCreateFailed:
    tag: str
    cause: PlatformError


@dataclass(frozen=True, slots=True)
class PipelineAlreadyRan:
    run_id: str


@dataclass(frozen=True, slots=True)
class RegistryInvalid:
    reason: str


@dataclass(frozen=True, slots=True)
class HandoffUnavailable:
    """No handle was published for the run within the fetch timeout."""

    run_id: str
    waited_seconds: float


@dataclass(frozen=True, slots=True)
class HandoffConflict:
    """A handle was already published for the run."""

    run_id: str


@dataclass(frozen=True, slots=True)
class HandoffStorageFailed:
    run_id: str
    reason: str


@dataclass(frozen=True, slots=True)
class BuildFailed:
    platform: str
    returncode: int
    detail: str = ""


@dataclass(frozen=True, slots=True)
class ArtifactMissing:
    platform: str
    path: Path


@dataclass(frozen=True, slots=True)
class UploadFailed:
    platform: str
    asset_name: str
    cause: PlatformError


@dataclass(frozen=True, slots=True)
class Cancelled:
    platform: str
    stage: Literal["build", "upload"]


@dataclass(frozen=True, slots=True)
class TaskCrashed:
    """A build task raised instead of returning an error."""

    platform: str
    detail: str


HandoffError = HandoffUnavailable | HandoffConflict | HandoffStorageFailed
BuildError = BuildFailed | ArtifactMissing
TaskError = HandoffError | BuildError | UploadFailed | Cancelled | TaskCrashed
PipelineError = (
    InvalidTag | ReleaseCreateFailed | RegistryInvalid | PipelineAlreadyRan | HandoffError
)
