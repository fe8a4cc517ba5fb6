from __future__ import annotations

import os
from pathlib import Path

import typer

from relorch import __version__
from relorch.cli.commands.pipeline import build, create, run
from relorch.cli.commands.targets import targets
from relorch.cli.context import CONFIG_ENV
from relorch.core.errors import ErrorCode

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command()(run)
app.command()(create)
app.command()(build)
app.command()(targets)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        is_eager=True,
        callback=_show_version,
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Pipeline config file (default: ./relorch.toml)",
    ),
) -> None:
    if config is not None:
        path = config.expanduser()
        if not path.is_file():
            typer.echo(f"error: --config '{path}' does not exist", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        os.environ[CONFIG_ENV] = str(path)


def main() -> None:
    app()
