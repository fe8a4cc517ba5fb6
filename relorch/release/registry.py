"""Release target registry.

The build matrix is static: it is fixed when the pipeline is defined and
every run builds the same set of targets. Validation guards the one
invariant the hosting platform will not enforce for us: two targets with
the same asset name would overwrite each other on the release.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path, PurePosixPath

from relorch.core.result import Err, Ok, Result
from relorch.core.structured import ObjList, as_str_dict, get_str
from relorch.release.errors import RegistryInvalid
from relorch.release.model import BuildTarget

REFERENCE_TARGETS: tuple[BuildTarget, ...] = (
    BuildTarget(
        platform="linux",
        local_path=Path("target/release/hyperlink"),
        asset_name="hyperlink-linux-x86_64",
    ),
    BuildTarget(
        platform="macos",
        local_path=Path("target/release/hyperlink"),
        asset_name="hyperlink-mac-x86_64",
    ),
    BuildTarget(
        platform="windows",
        local_path=Path("target/release/hyperlink.exe"),
        asset_name="hyperlink-windows-x86_64.exe",
    ),
)


def validate_registry(
    targets: Sequence[BuildTarget],
) -> Result[tuple[BuildTarget, ...], RegistryInvalid]:
    if not targets:
        return Err(RegistryInvalid(reason="no build targets configured"))

    platforms: set[str] = set()
    assets: set[str] = set()
    for t in targets:
        if not t.platform.strip():
            return Err(RegistryInvalid(reason="target with empty platform id"))
        if not t.asset_name.strip():
            return Err(RegistryInvalid(reason=f"{t.platform}: empty asset name"))
        # Asset names become a single path segment on the release.
        if PurePosixPath(t.asset_name).name != t.asset_name or "\\" in t.asset_name:
            return Err(RegistryInvalid(reason=f"{t.platform}: invalid asset name {t.asset_name!r}"))
        if t.platform in platforms:
            return Err(RegistryInvalid(reason=f"duplicate platform id: {t.platform}"))
        if t.asset_name in assets:
            return Err(RegistryInvalid(reason=f"duplicate asset name: {t.asset_name}"))
        platforms.add(t.platform)
        assets.add(t.asset_name)

    return Ok(tuple(targets))


def parse_targets(items: ObjList) -> Result[tuple[BuildTarget, ...], RegistryInvalid]:
    """Parse ``[[targets]]`` tables from the config file, then validate them."""
    out: list[BuildTarget] = []
    for i, item in enumerate(items):
        d = as_str_dict(item)
        if d is None:
            return Err(RegistryInvalid(reason=f"targets[{i}] must be a table"))

        platform = get_str(d, "platform")
        local_path = get_str(d, "local_path")
        asset_name = get_str(d, "asset_name")
        if platform is None or local_path is None or asset_name is None:
            return Err(
                RegistryInvalid(
                    reason=f"targets[{i}] needs platform, local_path and asset_name",
                )
            )
        out.append(BuildTarget(platform=platform, local_path=Path(local_path), asset_name=asset_name))

    return validate_registry(out)


def select_target(
    targets: Sequence[BuildTarget], platform: str
) -> Result[BuildTarget, RegistryInvalid]:
    for t in targets:
        if t.platform == platform:
            return Ok(t)
    available = ", ".join(t.platform for t in targets)
    return Err(RegistryInvalid(reason=f"unknown target {platform!r} (available: {available})"))
