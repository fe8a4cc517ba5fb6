"""Build task: fetch the release handle, build one target, attach its artifact.

One task runs per build target. Tasks know nothing about each other; the
only thing they share is the handle, and a cancellation flag that is set
when the pipeline is aborted (or a sibling failed under the "cancel"
policy).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from relorch.core.result import Err
from relorch.output.console import ConsoleProtocol, PrefixedConsole
from relorch.output.report import describe_task_error
from relorch.release.errors import Cancelled, TaskError, UploadFailed
from relorch.release.github import ReleasePlatform
from relorch.release.handoff import HandoffStore
from relorch.release.model import BuildTarget, TargetOutcome
from relorch.release.toolchain import Toolchain


@dataclass(frozen=True, slots=True)
class TaskContext:
    run_id: str
    store: HandoffStore
    toolchain: Toolchain
    platform: ReleasePlatform
    console: ConsoleProtocol
    content_type: str
    fetch_timeout: float
    cancel: threading.Event = field(default_factory=threading.Event)


def run_build_task(target: BuildTarget, ctx: TaskContext) -> TargetOutcome:
    console = PrefixedConsole(ctx.console, target.platform)

    def fail(error: TaskError) -> TargetOutcome:
        console.error(describe_task_error(error))
        return TargetOutcome(target=target, error=error)

    # The only barrier in the pipeline: no upload target until the release exists.
    handle = ctx.store.fetch(ctx.run_id, timeout=ctx.fetch_timeout)
    if isinstance(handle, Err):
        return fail(handle.error)

    if ctx.cancel.is_set():
        return fail(Cancelled(platform=target.platform, stage="build"))

    console.info(f"building for release {handle.value.release_id}")
    built = ctx.toolchain.build(target)
    if isinstance(built, Err):
        return fail(built.error)

    if ctx.cancel.is_set():
        return fail(Cancelled(platform=target.platform, stage="upload"))

    console.info(f"uploading {built.value.name} as {target.asset_name}")
    uploaded = ctx.platform.upload_asset(
        upload_url=handle.value.upload_url,
        path=built.value,
        asset_name=target.asset_name,
        content_type=ctx.content_type,
    )
    if isinstance(uploaded, Err):
        return fail(
            UploadFailed(platform=target.platform, asset_name=target.asset_name, cause=uploaded.error)
        )

    console.success(f"attached {uploaded.value.name}")
    return TargetOutcome(target=target, asset=uploaded.value)
