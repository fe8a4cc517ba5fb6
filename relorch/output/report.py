"""Error presentation and the end-of-run report.

Centralized error formatting and exit code mapping, so that ``run``,
``create`` and ``build`` describe failures the same way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from relorch.core.errors import ErrorCode
from relorch.release.errors import (
    ArtifactMissing,
    BuildFailed,
    Cancelled,
    HandoffConflict,
    HandoffStorageFailed,
    HandoffUnavailable,
    InvalidTag,
    PipelineAlreadyRan,
    PipelineError,
    RegistryInvalid,
    ReleaseCreateFailed,
    TaskCrashed,
    TaskError,
    UploadFailed,
)

if TYPE_CHECKING:
    from relorch.output.console import ConsoleProtocol
    from relorch.release.model import PipelineOutcome, TargetOutcome

__all__ = [
    "describe_pipeline_error",
    "describe_task_error",
    "outcome_exit_code",
    "pipeline_error_exit_code",
    "print_outcome",
    "task_error_exit_code",
]


def describe_pipeline_error(error: PipelineError) -> str:
    match error:
        case InvalidTag(tag=tag, reason=reason):
            return f"invalid tag {tag!r}: {reason}"
        case ReleaseCreateFailed(tag=tag, cause=cause):
            return f"could not create release for {tag} ({cause.kind}): {cause.message}"
        case RegistryInvalid(reason=reason):
            return f"invalid build targets: {reason}"
        case PipelineAlreadyRan(run_id=run_id):
            return f"pipeline for run {run_id} already ran"
        case _:
            return _describe_handoff_error(error)


def describe_task_error(error: TaskError) -> str:
    match error:
        case BuildFailed(returncode=rc, detail=detail):
            msg = f"build failed (exit {rc})"
            return f"{msg}\n{detail}" if detail else msg
        case ArtifactMissing(path=path):
            return f"build succeeded but artifact not found: {path}"
        case UploadFailed(asset_name=asset_name, cause=cause):
            return f"upload of {asset_name} failed ({cause.kind}): {cause.message}"
        case Cancelled(stage=stage):
            return f"cancelled before {stage} after a sibling target failed"
        case TaskCrashed(detail=detail):
            return f"task crashed: {detail}"
        case _:
            return _describe_handoff_error(error)


def _describe_handoff_error(
    error: HandoffUnavailable | HandoffConflict | HandoffStorageFailed,
) -> str:
    match error:
        case HandoffUnavailable(run_id=run_id, waited_seconds=waited):
            return f"no release handle available for run {run_id} (waited {waited:.1f}s)"
        case HandoffConflict(run_id=run_id):
            return f"a release handle was already published for run {run_id}"
        case HandoffStorageFailed(reason=reason):
            return f"handoff store error: {reason}"


def pipeline_error_exit_code(error: PipelineError) -> int:
    match error:
        case InvalidTag() | PipelineAlreadyRan():
            return int(ErrorCode.USER_ERROR)
        case RegistryInvalid():
            return int(ErrorCode.ENV_ERROR)
        case ReleaseCreateFailed():
            return int(ErrorCode.RELEASE_FAILED)
        case HandoffUnavailable() | HandoffConflict() | HandoffStorageFailed():
            return int(ErrorCode.HANDOFF_FAILURE)


def task_error_exit_code(error: TaskError) -> int:
    """Exit code for a single ``build`` stage run in its own process."""
    match error:
        case HandoffUnavailable() | HandoffConflict() | HandoffStorageFailed():
            return int(ErrorCode.HANDOFF_FAILURE)
        case _:
            return int(ErrorCode.BUILD_FAILURE)


def outcome_exit_code(outcome: PipelineOutcome) -> int:
    match outcome.status:
        case "success":
            return int(ErrorCode.OK)
        case "partial_failure":
            return int(ErrorCode.PARTIAL_FAILURE)
        case "build_failure":
            return int(ErrorCode.BUILD_FAILURE)
        case "release_failed":
            if outcome.error is not None:
                return pipeline_error_exit_code(outcome.error)
            return int(ErrorCode.RELEASE_FAILED)


def _row(o: TargetOutcome) -> list[str]:
    if o.error is None:
        url = o.asset.url if o.asset is not None else None
        return [o.target.platform, o.target.asset_name, "attached", url or ""]
    detail = describe_task_error(o.error).splitlines()[0]
    return [o.target.platform, o.target.asset_name, "FAILED", detail]


def print_outcome(outcome: PipelineOutcome, console: ConsoleProtocol) -> None:
    """Print per-target results, then one line for the whole run."""
    if outcome.outcomes:
        console.table(
            f"Release {outcome.tag} (run {outcome.run_id})",
            ["target", "asset", "status", "detail"],
            [_row(o) for o in outcome.outcomes],
        )

    match outcome.status:
        case "success":
            console.success(f"{outcome.tag}: all {len(outcome.outcomes)} assets attached")
        case "partial_failure":
            failed = ", ".join(outcome.failed_platforms)
            console.error(
                f"{outcome.tag}: partial failure, {len(outcome.attached)}/{len(outcome.outcomes)} "
                f"assets attached; missing: {failed}"
            )
        case "build_failure":
            console.error(f"{outcome.tag}: release created but no asset was attached")
        case "release_failed":
            reason = describe_pipeline_error(outcome.error) if outcome.error else "release not created"
            console.error(f"{outcome.tag}: {reason}; no build was started")
