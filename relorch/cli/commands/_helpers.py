"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from relorch.release.toolchain import CommandToolchain

if TYPE_CHECKING:
    from relorch.cli.context import CLIContext


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)


def toolchain_for(ctx: CLIContext, *, dry_run: bool) -> CommandToolchain:
    return CommandToolchain(
        project_dir=ctx.config.pipeline.project_dir,
        command=ctx.config.build.command,
        timeout=ctx.config.build.timeout,
        console=ctx.console,
        dry_run=dry_run,
    )
