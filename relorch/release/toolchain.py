from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from relorch.core.result import Err, Ok, Result
from relorch.output.console import ConsoleProtocol, Style
from relorch.platform.process import run as run_process
from relorch.release.errors import ArtifactMissing, BuildError, BuildFailed
from relorch.release.model import BuildTarget
from relorch.release.timeouts import BUILD_TIMEOUT_SECONDS

__all__ = ["CommandToolchain", "Toolchain"]


class Toolchain(Protocol):
    def build(self, target: BuildTarget) -> Result[Path, BuildError]:
        """Build ``target`` and return the absolute path of its artifact."""
        ...


class CommandToolchain:
    """Runs a build command in the project dir, then checks the artifact exists.

    ``{platform}`` in any argument is replaced by the target's platform id,
    e.g. ``["make", "dist-{platform}"]``.
    """

    def __init__(
        self,
        *,
        project_dir: Path,
        command: Sequence[str],
        timeout: float = BUILD_TIMEOUT_SECONDS,
        console: ConsoleProtocol,
        dry_run: bool = False,
    ) -> None:
        self._project_dir = project_dir
        self._command = tuple(command)
        self._timeout = timeout
        self._console = console
        self._dry_run = dry_run

    def command_for(self, target: BuildTarget) -> list[str]:
        return [arg.replace("{platform}", target.platform) for arg in self._command]

    def build(self, target: BuildTarget) -> Result[Path, BuildError]:
        cmd = self.command_for(target)
        artifact = self._project_dir / target.local_path

        self._console.print(" ".join(cmd), Style.DIM)
        if self._dry_run:
            return Ok(artifact)

        result = run_process(cmd, cwd=self._project_dir, timeout=self._timeout)
        if isinstance(result, Err):
            e = result.error
            return Err(BuildFailed(platform=target.platform, returncode=e.returncode, detail=e.tail()))

        if not artifact.is_file():
            return Err(ArtifactMissing(platform=target.platform, path=artifact))
        return Ok(artifact)
