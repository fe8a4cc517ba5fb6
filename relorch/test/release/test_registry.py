from __future__ import annotations

from pathlib import Path

from relorch.core.result import Err, Ok
from relorch.release.model import BuildTarget
from relorch.release.registry import REFERENCE_TARGETS, parse_targets, select_target, validate_registry


def _t(platform: str, asset: str) -> BuildTarget:
    return BuildTarget(platform=platform, local_path=Path("target/release/bin"), asset_name=asset)


def test_reference_registry_is_valid() -> None:
    assert validate_registry(REFERENCE_TARGETS) == Ok(REFERENCE_TARGETS)
    assert [t.asset_name for t in REFERENCE_TARGETS] == [
        "hyperlink-linux-x86_64",
        "hyperlink-mac-x86_64",
        "hyperlink-windows-x86_64.exe",
    ]


def test_duplicate_asset_names_rejected() -> None:
    result = validate_registry([_t("linux", "tool"), _t("macos", "tool")])
    assert isinstance(result, Err)
    assert "duplicate asset name" in result.error.reason


def test_duplicate_platforms_rejected() -> None:
    result = validate_registry([_t("linux", "a"), _t("linux", "b")])
    assert isinstance(result, Err)
    assert "duplicate platform" in result.error.reason


def test_empty_registry_rejected() -> None:
    assert isinstance(validate_registry([]), Err)


def test_asset_name_must_be_a_single_segment() -> None:
    assert isinstance(validate_registry([_t("linux", "dist/tool")]), Err)
    assert isinstance(validate_registry([_t("linux", "..")]), Err)
    assert isinstance(validate_registry([_t("windows", "dist\\tool.exe")]), Err)


def test_parse_targets_from_toml_tables() -> None:
    items: list[object] = [
        {"platform": "linux", "local_path": "out/tool", "asset_name": "tool-linux"},
        {"platform": "windows", "local_path": "out/tool.exe", "asset_name": "tool-windows.exe"},
    ]

    result = parse_targets(items)

    assert isinstance(result, Ok)
    assert result.value[1] == BuildTarget(
        platform="windows",
        local_path=Path("out/tool.exe"),
        asset_name="tool-windows.exe",
    )


def test_parse_targets_missing_key() -> None:
    result = parse_targets([{"platform": "linux", "asset_name": "x"}])
    assert isinstance(result, Err)
    assert "targets[0]" in result.error.reason


def test_parse_targets_not_a_table() -> None:
    assert isinstance(parse_targets(["linux"]), Err)


def test_select_target() -> None:
    assert select_target(REFERENCE_TARGETS, "macos") == Ok(REFERENCE_TARGETS[1])
    missing = select_target(REFERENCE_TARGETS, "freebsd")
    assert isinstance(missing, Err)
    assert "linux, macos, windows" in missing.error.reason
