"""Typed pipeline configuration.

Loaded from ``relorch.toml``. Every key is optional: an absent file or
section falls back to the reference pipeline (three cargo targets
published to GitHub).

Example:
    [release]
    repo = "owner/hyperlink"
    token_env = "GITHUB_TOKEN"

    [pipeline]
    fetch_timeout = 60
    on_failure = "cancel"

    [[targets]]
    platform = "linux"
    local_path = "target/release/hyperlink"
    asset_name = "hyperlink-linux-x86_64"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

from relorch.core.result import Err, Ok, Result
from relorch.core.structured import (
    StrDict,
    as_str_dict,
    get_float,
    get_int,
    get_list,
    get_str,
    get_str_list,
    get_table,
)
from relorch.release.errors import RegistryInvalid
from relorch.release.model import BuildTarget, FailurePolicy
from relorch.release.registry import REFERENCE_TARGETS, parse_targets
from relorch.release.timeouts import BUILD_TIMEOUT_SECONDS, HANDOFF_FETCH_TIMEOUT_SECONDS

__all__ = [
    "BuildConfig",
    "Config",
    "ConfigError",
    "PipelineConfig",
    "ReleaseConfig",
    "load_config",
    "load_config_or_default",
]

DEFAULT_CONFIG_FILE = "relorch.toml"
GITHUB_API_URL = "https://api.github.com"
DEFAULT_TOKEN_ENV = "GITHUB_TOKEN"
DEFAULT_CONTENT_TYPE = "application/zip"
DEFAULT_HANDOFF_DIR = ".relorch/handoff"
DEFAULT_BUILD_COMMAND: tuple[str, ...] = ("cargo", "build", "--verbose", "--release", "--locked")

_FAILURE_POLICIES: tuple[FailurePolicy, ...] = ("continue", "cancel")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Where releases are created."""

    repo: str | None = None  # owner/name; falls back to $GITHUB_REPOSITORY
    api_url: str = GITHUB_API_URL
    token_env: str = DEFAULT_TOKEN_ENV
    content_type: str = DEFAULT_CONTENT_TYPE


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    project_dir: Path = Path(".")
    handoff_dir: Path = Path(DEFAULT_HANDOFF_DIR)
    fetch_timeout: float = HANDOFF_FETCH_TIMEOUT_SECONDS
    on_failure: FailurePolicy = "continue"
    max_workers: int | None = None  # None: one worker per target


@dataclass(frozen=True, slots=True)
class BuildConfig:
    # "{platform}" in any argument is replaced by the target's platform id.
    command: tuple[str, ...] = DEFAULT_BUILD_COMMAND
    timeout: float = BUILD_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class Config:
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    targets: tuple[BuildTarget, ...] = REFERENCE_TARGETS

    @classmethod
    def from_dict(
        cls, data: Mapping[str, object], *, base_dir: Path
    ) -> Result[Config, ConfigError]:
        """Create Config from parsed TOML.

        Relative directories are resolved against ``base_dir`` (the folder
        holding the config file).
        """
        release: StrDict = get_table(data, "release") or {}
        pipeline: StrDict = get_table(data, "pipeline") or {}
        build: StrDict = get_table(data, "build") or {}

        on_failure = get_str(pipeline, "on_failure") or "continue"
        if on_failure not in _FAILURE_POLICIES:
            return Err(
                ConfigError(
                    f"pipeline.on_failure must be one of {', '.join(_FAILURE_POLICIES)}: {on_failure}"
                )
            )

        fetch_timeout = get_float(pipeline, "fetch_timeout")
        if fetch_timeout is not None and fetch_timeout < 0:
            return Err(ConfigError("pipeline.fetch_timeout must be >= 0"))

        max_workers = get_int(pipeline, "max_workers")
        if max_workers is not None and max_workers < 1:
            return Err(ConfigError("pipeline.max_workers must be >= 1"))

        command: tuple[str, ...] = DEFAULT_BUILD_COMMAND
        if "command" in build:
            raw_command = get_str_list(build, "command")
            if not raw_command:
                return Err(ConfigError("build.command must be a non-empty list of strings"))
            command = tuple(raw_command)

        targets: tuple[BuildTarget, ...] = REFERENCE_TARGETS
        if "targets" in data:
            raw_targets = get_list(data, "targets")
            if raw_targets is None:
                return Err(ConfigError("targets must be an array of tables"))
            parsed = parse_targets(raw_targets)
            if isinstance(parsed, Err):
                return Err(_registry_error(parsed.error))
            targets = parsed.value

        project_dir = base_dir / (get_str(pipeline, "project_dir") or ".")
        handoff_dir = project_dir / (get_str(pipeline, "handoff_dir") or DEFAULT_HANDOFF_DIR)

        return Ok(
            cls(
                release=ReleaseConfig(
                    repo=get_str(release, "repo"),
                    api_url=(get_str(release, "api_url") or GITHUB_API_URL).rstrip("/"),
                    token_env=get_str(release, "token_env") or DEFAULT_TOKEN_ENV,
                    content_type=get_str(release, "content_type") or DEFAULT_CONTENT_TYPE,
                ),
                pipeline=PipelineConfig(
                    project_dir=project_dir,
                    handoff_dir=handoff_dir,
                    fetch_timeout=(
                        fetch_timeout if fetch_timeout is not None else HANDOFF_FETCH_TIMEOUT_SECONDS
                    ),
                    on_failure=cast(FailurePolicy, on_failure),
                    max_workers=max_workers,
                ),
                build=BuildConfig(
                    command=command,
                    timeout=get_float(build, "timeout") or BUILD_TIMEOUT_SECONDS,
                ),
                targets=targets,
            )
        )


def _registry_error(error: RegistryInvalid) -> ConfigError:
    return ConfigError(f"invalid build targets: {error.reason}")


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and validate configuration from a TOML file."""
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    config = Config.from_dict(result.value, base_dir=path.parent)
    if isinstance(config, Err):
        return Err(ConfigError(config.error.message, path=path))
    return config


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Like load_config, but a missing file yields the reference pipeline.

    A file that exists but is invalid is still an error.
    """
    if not path.exists():
        base = path.parent
        return Ok(
            Config(
                pipeline=PipelineConfig(
                    project_dir=base,
                    handoff_dir=base / DEFAULT_HANDOFF_DIR,
                )
            )
        )
    return load_config(path)
