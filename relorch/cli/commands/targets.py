from __future__ import annotations

from relorch.cli.context import build_context


def targets() -> None:
    """List the build matrix: platform, artifact path and asset name."""
    ctx = build_context()
    project_dir = ctx.config.pipeline.project_dir
    ctx.console.table(
        f"Build targets ({ctx.config_path})",
        ["platform", "artifact", "asset"],
        [[t.platform, str(project_dir / t.local_path), t.asset_name] for t in ctx.config.targets],
    )
