"""Pipeline commands.

``run`` executes both stages in one process. ``create`` and ``build`` are
the same two stages split across processes (one ``create`` job, then one
``build`` job per target, typically on different CI runners), sharing the
handle through the file-backed handoff store.
"""

from __future__ import annotations

from enum import StrEnum

import typer

from relorch.cli.commands._helpers import exit_with_code, toolchain_for
from relorch.cli.context import build_context, release_platform, resolve_run_id
from relorch.core.errors import ErrorCode
from relorch.core.result import Err
from relorch.output.console import Style
from relorch.output.report import (
    describe_pipeline_error,
    outcome_exit_code,
    pipeline_error_exit_code,
    print_outcome,
    task_error_exit_code,
)
from relorch.platform.detection import host_platform
from relorch.release.handoff import FileHandoffStore, MemoryHandoffStore
from relorch.release.model import ReleaseHandle
from relorch.release.orchestrator import ReleasePipeline, release_stage
from relorch.release.registry import select_target
from relorch.release.task import TaskContext, run_build_task


class OnFailure(StrEnum):
    continue_ = "continue"
    cancel = "cancel"


def _dry_run_store(run_id: str) -> MemoryHandoffStore:
    """Store pre-loaded with a placeholder handle; a dry-run `create` publishes nothing."""
    store = MemoryHandoffStore()
    store.publish(ReleaseHandle(run_id=run_id, release_id="dry-run", upload_url="(dry-run)"))
    return store


def run(
    tag: str = typer.Option(..., "--tag", help="Version tag that triggered the release (e.g. v1.2.0)"),
    run_id: str | None = typer.Option(None, "--run-id", help="Run identity (default: CI run id)"),
    on_failure: OnFailure | None = typer.Option(
        None,
        "--on-failure",
        help="When a target fails: keep building the others, or cancel them",
        show_default=False,
    ),
    fetch_timeout: float | None = typer.Option(
        None, "--fetch-timeout", help="Seconds a build task waits for the release handle"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without creating anything"),
) -> None:
    """Create the release and build + attach every target, in one process."""
    ctx = build_context()
    cfg = ctx.config

    pipeline = ReleasePipeline(
        run_id=resolve_run_id(run_id),
        targets=cfg.targets,
        platform=release_platform(ctx, dry_run=dry_run),
        toolchain=toolchain_for(ctx, dry_run=dry_run),
        store=MemoryHandoffStore(),
        console=ctx.console,
        content_type=cfg.release.content_type,
        fetch_timeout=fetch_timeout if fetch_timeout is not None else cfg.pipeline.fetch_timeout,
        on_failure=on_failure.value if on_failure is not None else cfg.pipeline.on_failure,
        max_workers=cfg.pipeline.max_workers,
    )

    result = pipeline.run(tag)
    if isinstance(result, Err):
        ctx.console.error(describe_pipeline_error(result.error))
        exit_with_code(pipeline_error_exit_code(result.error))

    outcome = result.value
    print_outcome(outcome, ctx.console)
    code = outcome_exit_code(outcome)
    if code != int(ErrorCode.OK):
        exit_with_code(code)


def create(
    tag: str = typer.Option(..., "--tag", help="Version tag that triggered the release"),
    run_id: str | None = typer.Option(None, "--run-id", help="Run identity (default: CI run id)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions; nothing is published"),
) -> None:
    """Stage 1: create the release and publish its handle for `build` jobs."""
    ctx = build_context()
    rid = resolve_run_id(run_id)
    store = MemoryHandoffStore() if dry_run else FileHandoffStore(ctx.config.pipeline.handoff_dir)

    ctx.console.header(f"Release {tag} (run {rid})")
    result = release_stage(
        tag=tag,
        run_id=rid,
        platform=release_platform(ctx, dry_run=dry_run),
        store=store,
        console=ctx.console,
    )
    if isinstance(result, Err):
        ctx.console.error(describe_pipeline_error(result.error))
        exit_with_code(pipeline_error_exit_code(result.error))

    if isinstance(store, FileHandoffStore):
        ctx.console.print(f"handle: {store.record_path(rid)}", Style.DIM)
    typer.echo(rid)


def build(
    target: str | None = typer.Option(
        None, "--target", help="Platform id to build (default: this host's platform)"
    ),
    run_id: str | None = typer.Option(None, "--run-id", help="Run identity used by `create`"),
    fetch_timeout: float | None = typer.Option(
        None, "--fetch-timeout", help="Seconds to wait for the release handle"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the build and upload only"),
) -> None:
    """Stage 2: build one target and attach it to the run's release."""
    ctx = build_context()
    cfg = ctx.config

    platform_id = target or host_platform()
    if platform_id is None:
        ctx.console.error("cannot infer the target for this host; pass --target")
        exit_with_code(int(ErrorCode.USER_ERROR))

    selected = select_target(cfg.targets, platform_id)
    if isinstance(selected, Err):
        ctx.console.error(selected.error.reason)
        exit_with_code(int(ErrorCode.USER_ERROR))

    rid = resolve_run_id(run_id)
    outcome = run_build_task(
        selected.value,
        TaskContext(
            run_id=rid,
            store=_dry_run_store(rid) if dry_run else FileHandoffStore(cfg.pipeline.handoff_dir),
            toolchain=toolchain_for(ctx, dry_run=dry_run),
            platform=release_platform(ctx, dry_run=dry_run),
            console=ctx.console,
            content_type=cfg.release.content_type,
            fetch_timeout=fetch_timeout if fetch_timeout is not None else cfg.pipeline.fetch_timeout,
        ),
    )
    if outcome.error is not None:
        exit_with_code(task_error_exit_code(outcome.error))
