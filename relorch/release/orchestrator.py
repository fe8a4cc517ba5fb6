"""Pipeline orchestration.

    start -> release_creation -> build_fan_out -> done
                      |
                      +-> failed

The release is created exactly once; its handle is published to the
handoff store, then one build task per target runs concurrently. The run
is "done" once every task reported an outcome, whatever that outcome is.
A pipeline object is single-shot: calling ``run`` twice is rejected.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from relorch.core.result import Err, Ok, Result
from relorch.output.console import ConsoleProtocol, PrefixedConsole, Style
from relorch.output.report import describe_task_error
from relorch.release.creator import create_release
from relorch.release.errors import PipelineAlreadyRan, PipelineError, TaskCrashed
from relorch.release.github import ReleasePlatform
from relorch.release.handoff import HandoffStore
from relorch.release.model import (
    BuildTarget,
    FailurePolicy,
    PipelineOutcome,
    PipelineState,
    ReleaseHandle,
    ReleaseRecord,
    TargetOutcome,
)
from relorch.release.registry import validate_registry
from relorch.release.task import TaskContext, run_build_task
from relorch.release.toolchain import Toolchain

__all__ = ["ReleasePipeline", "release_stage"]


def release_stage(
    *,
    tag: str,
    run_id: str,
    platform: ReleasePlatform,
    store: HandoffStore,
    console: ConsoleProtocol,
) -> Result[tuple[ReleaseRecord, ReleaseHandle], PipelineError]:
    """Create the release, then publish its handle for the build stage."""
    created = create_release(tag=tag, run_id=run_id, platform=platform)
    if isinstance(created, Err):
        return created

    record, handle = created.value
    console.success(f"created {record.title!r} (id {record.id})")
    if record.html_url:
        console.print(record.html_url, Style.DIM)

    published = store.publish(handle)
    if isinstance(published, Err):
        return published
    console.print(f"release handle published for run {run_id}", Style.DIM)
    return Ok((record, handle))


class ReleasePipeline:
    """One release, built for every registered target."""

    def __init__(
        self,
        *,
        run_id: str,
        targets: Sequence[BuildTarget],
        platform: ReleasePlatform,
        toolchain: Toolchain,
        store: HandoffStore,
        console: ConsoleProtocol,
        content_type: str,
        fetch_timeout: float,
        on_failure: FailurePolicy = "continue",
        max_workers: int | None = None,
    ) -> None:
        self._run_id = run_id
        self._targets = tuple(targets)
        self._platform = platform
        self._toolchain = toolchain
        self._store = store
        self._console = console
        self._content_type = content_type
        self._fetch_timeout = fetch_timeout
        self._on_failure: FailurePolicy = on_failure
        self._max_workers = max_workers

        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._state: PipelineState = "start"
        self._tag = ""
        self._release: ReleaseRecord | None = None
        self._outcomes: tuple[TargetOutcome, ...] = ()
        self._error: PipelineError | None = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def abort(self) -> None:
        """Ask in-flight build tasks to stop before their next step."""
        self._cancel.set()

    def run(self, tag: str) -> Result[PipelineOutcome, PipelineAlreadyRan]:
        with self._lock:
            if self._state != "start":
                return Err(PipelineAlreadyRan(run_id=self._run_id))
            self._state = "release_creation"
        self._tag = tag

        steps: Mapping[PipelineState, Callable[[], PipelineState]] = {
            "release_creation": self._create_release,
            "build_fan_out": self._fan_out,
        }
        while (step := steps.get(self._state)) is not None:
            self._state = step()

        return Ok(
            PipelineOutcome(
                run_id=self._run_id,
                tag=self._tag,
                state=self._state,
                release=self._release,
                outcomes=self._outcomes,
                error=self._error,
            )
        )

    def _create_release(self) -> PipelineState:
        self._console.header(f"Release {self._tag} (run {self._run_id})")

        registry = validate_registry(self._targets)
        if isinstance(registry, Err):
            self._error = registry.error
            return "failed"

        result = release_stage(
            tag=self._tag,
            run_id=self._run_id,
            platform=self._platform,
            store=self._store,
            console=self._console,
        )
        if isinstance(result, Err):
            self._error = result.error
            return "failed"

        self._release, _ = result.value
        self._tag = self._release.tag
        return "build_fan_out"

    def _fan_out(self) -> PipelineState:
        ctx = TaskContext(
            run_id=self._run_id,
            store=self._store,
            toolchain=self._toolchain,
            platform=self._platform,
            console=self._console,
            content_type=self._content_type,
            fetch_timeout=self._fetch_timeout,
            cancel=self._cancel,
        )
        self._console.header(f"Building {len(self._targets)} targets")

        results: dict[str, TargetOutcome] = {}
        workers = self._max_workers or len(self._targets)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="relorch-build") as pool:
            futures = {pool.submit(run_build_task, t, ctx): t for t in self._targets}
            try:
                for future in as_completed(futures):
                    outcome = self._collect(futures[future], future)
                    results[outcome.target.platform] = outcome
                    if not outcome.ok and self._on_failure == "cancel":
                        self._cancel.set()
            except BaseException:
                # Ctrl-C or interpreter exit: let running tasks stop at their next step.
                self._cancel.set()
                raise

        self._outcomes = tuple(results[t.platform] for t in self._targets)
        self._store.discard(self._run_id)
        return "done"

    def _collect(self, target: BuildTarget, future: Future[TargetOutcome]) -> TargetOutcome:
        try:
            return future.result()
        except Exception as e:
            # A crash is local to its target; siblings keep their outcomes.
            error = TaskCrashed(platform=target.platform, detail=f"{type(e).__name__}: {e}")
            PrefixedConsole(self._console, target.platform).error(describe_task_error(error))
            return TargetOutcome(target=target, error=error)
