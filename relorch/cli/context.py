from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

import typer

from relorch.core.errors import ErrorCode
from relorch.core.result import Err
from relorch.net.http import RealHttpClient
from relorch.output.console import ConsoleProtocol, RichConsole
from relorch.release.config import DEFAULT_CONFIG_FILE, Config, load_config_or_default
from relorch.release.github import DryRunReleases, GitHubReleases, ReleasePlatform

CONFIG_ENV = "RELORCH_CONFIG"


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    config_path: Path
    console: ConsoleProtocol


def build_context() -> CLIContext:
    config_path = Path(os.environ.get(CONFIG_ENV) or DEFAULT_CONFIG_FILE).expanduser()
    result = load_config_or_default(config_path)
    if isinstance(result, Err):
        typer.echo(f"error: {result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(config=result.value, config_path=config_path, console=RichConsole())


def resolve_run_id(explicit: str | None) -> str:
    """Pick the run identity that scopes the handoff.

    CI runs reuse the provider's run id so every job of the run agrees on it
    without passing anything around; local runs get a fresh id.
    """
    if explicit:
        return explicit.strip()
    run_id = os.environ.get("GITHUB_RUN_ID")
    if run_id:
        attempt = os.environ.get("GITHUB_RUN_ATTEMPT")
        return f"{run_id}-{attempt}" if attempt else run_id
    return f"local-{uuid4().hex[:12]}"


def release_platform(ctx: CLIContext, *, dry_run: bool) -> ReleasePlatform:
    release = ctx.config.release
    repo = release.repo or os.environ.get("GITHUB_REPOSITORY")
    if not repo:
        ctx.console.error("no repository configured")
        typer.echo("hint: set [release] repo in the config, or GITHUB_REPOSITORY", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    if dry_run:
        return DryRunReleases(repo=repo, console=ctx.console)
    return GitHubReleases(
        http=RealHttpClient(),
        repo=repo,
        token=os.environ.get(release.token_env),
        api_url=release.api_url,
    )
